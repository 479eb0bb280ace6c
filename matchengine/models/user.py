from sqlalchemy import Boolean, Column, Date, DateTime, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from matchengine.core.database import Base
from matchengine.utils.time import ensure_utc, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    display_name = Column(String(255))
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    # Subscription tier
    is_premium = Column(Boolean, nullable=False, default=False)
    premium_expires_at = Column(DateTime(timezone=True), nullable=True)

    # IANA timezone used for the daily quota boundary
    timezone = Column(String(64), nullable=False, default="UTC")
    date_of_birth = Column(Date, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    # Relationships
    trait_profiles = relationship("TraitProfile", back_populates="user")

    def has_premium(self, now=None) -> bool:
        """Premium iff flagged and not past ``premium_expires_at``."""
        if not self.is_premium:
            return False
        expires_at = ensure_utc(self.premium_expires_at)
        if expires_at is None:
            return True
        return expires_at > ensure_utc(now or utcnow())

    def __repr__(self):
        return f"<User(id={self.id}, is_premium={self.is_premium})>"
