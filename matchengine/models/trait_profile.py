from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Float, ForeignKey, Integer, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from matchengine.core.database import Base
from matchengine.models.enums import AttachmentStyle, enum_column
from matchengine.utils.time import utcnow

_SCORE_COLUMNS = (
    "openness",
    "conscientiousness",
    "extraversion",
    "agreeableness",
    "neuroticism",
    "secure_score",
    "anxious_score",
    "avoidant_score",
)


class TraitProfile(Base):
    __tablename__ = "trait_profiles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)

    # Big Five (0-100)
    openness = Column(Float, nullable=False)
    conscientiousness = Column(Float, nullable=False)
    extraversion = Column(Float, nullable=False)
    agreeableness = Column(Float, nullable=False)
    neuroticism = Column(Float, nullable=False)

    # Attachment (0-100 sub-scores + dominant style)
    attachment_style = Column(enum_column(AttachmentStyle, length=16), nullable=False)
    secure_score = Column(Float, nullable=False, default=0.0)
    anxious_score = Column(Float, nullable=False, default=0.0)
    avoidant_score = Column(Float, nullable=False, default=0.0)

    compatibility_keywords = Column(JSON, nullable=False, default=list)
    profile_strength = Column(Float, nullable=False, default=1.0)  # 0-1 confidence

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    algorithm_version = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    user = relationship("User", back_populates="trait_profiles")

    __table_args__ = tuple(
        CheckConstraint(f"{name} >= 0 AND {name} <= 100", name=f"ck_trait_profiles_{name}_range")
        for name in _SCORE_COLUMNS
    ) + (
        CheckConstraint(
            "profile_strength >= 0 AND profile_strength <= 1",
            name="ck_trait_profiles_profile_strength_range",
        ),
    )

    def __repr__(self):
        return f"<TraitProfile(user_id={self.user_id}, style={self.attachment_style}, active={self.is_active})>"
