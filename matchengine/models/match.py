from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Float, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from matchengine.core.database import Base
from matchengine.utils.pairs import MatchKey
from matchengine.utils.time import utcnow


class Match(Base):
    __tablename__ = "matches"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_a_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    user_b_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)

    compatibility_score = Column(Float, nullable=False)
    # {"source": "mutual_like" | "event", "event_id": ..., "component_scores": {...}}
    match_context = Column(JSON, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    matched_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    unmatched_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    user_a = relationship("User", foreign_keys=[user_a_id])
    user_b = relationship("User", foreign_keys=[user_b_id])

    __table_args__ = (
        UniqueConstraint("user_a_id", "user_b_id", name="uq_matches_pair"),
        CheckConstraint("user_a_id < user_b_id", name="ck_matches_canonical_order"),
        CheckConstraint(
            "compatibility_score >= 1 AND compatibility_score <= 99",
            name="ck_matches_score_range",
        ),
    )

    @property
    def key(self) -> MatchKey:
        return MatchKey(self.user_a_id, self.user_b_id)

    def __repr__(self):
        return f"<Match(user_a_id={self.user_a_id}, user_b_id={self.user_b_id}, active={self.is_active})>"
