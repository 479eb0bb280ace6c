from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, JSON, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from matchengine.core.database import Base
from matchengine.models.enums import InteractionKind, enum_column
from matchengine.utils.time import utcnow


class Interaction(Base):
    __tablename__ = "interactions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    actor_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    target_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    kind = Column(enum_column(InteractionKind, length=16), nullable=False)

    # Write-once: flips to True when the reciprocal like lands
    is_mutual = Column(Boolean, nullable=False, default=False)

    # Undo tracking
    is_undone = Column(Boolean, nullable=False, default=False)
    undone_at = Column(DateTime(timezone=True), nullable=True)

    context = Column(JSON, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    actor = relationship("User", foreign_keys=[actor_id])
    target = relationship("User", foreign_keys=[target_id])

    __table_args__ = (
        # At most one live interaction per ordered pair
        Index(
            "uq_interactions_live_pair",
            "actor_id",
            "target_id",
            unique=True,
            postgresql_where=text("NOT is_undone"),
            sqlite_where=text("is_undone = 0"),
        ),
        Index("ix_interactions_actor_kind_created", "actor_id", "kind", "created_at"),
    )

    def __repr__(self):
        return f"<Interaction(actor_id={self.actor_id}, target_id={self.target_id}, kind={self.kind})>"
