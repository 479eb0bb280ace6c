from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from matchengine.core.database import Base
from matchengine.models.enums import (
    AcceptanceState,
    EventStatus,
    ParticipationStatus,
    QuestionType,
    enum_column,
)
from matchengine.utils.pairs import MatchKey
from matchengine.utils.time import utcnow


class WeeklyEvent(Base):
    __tablename__ = "weekly_events"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    # Free-form so unknown types fall back to the generic strategy
    event_type = Column(String(50), nullable=False, index=True)
    status = Column(enum_column(EventStatus, length=16), nullable=False, default=EventStatus.SCHEDULED, index=True)

    starts_at = Column(DateTime(timezone=True), nullable=False)
    ends_at = Column(DateTime(timezone=True), nullable=False, index=True)
    max_participants = Column(Integer, nullable=True)  # None = unlimited
    # Type-specific knobs such as theme or focus traits
    event_data = Column(JSON, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    # Relationships
    questions = relationship(
        "EventQuestion",
        back_populates="event",
        order_by="EventQuestion.display_order",
    )
    participations = relationship("EventParticipation", back_populates="event")

    def __repr__(self):
        return f"<WeeklyEvent(id={self.id}, type={self.event_type}, status={self.status})>"


class EventQuestion(Base):
    __tablename__ = "event_questions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    event_id = Column(UUID(as_uuid=True), ForeignKey("weekly_events.id"), nullable=False, index=True)
    question_type = Column(enum_column(QuestionType, length=20), nullable=False)
    question_text = Column(Text, nullable=False)

    options = Column(JSON, nullable=True)  # [{"value": "a", "label": "..."}]
    # {"a": {"openness": 1.5, "neuroticism": -1}, ...}
    psychological_weights = Column(JSON, nullable=True)
    scale_max = Column(Integer, nullable=False, default=5)
    is_required = Column(Boolean, nullable=False, default=True)
    display_order = Column(Integer, nullable=False, default=0)

    # Relationships
    event = relationship("WeeklyEvent", back_populates="questions")

    def __repr__(self):
        return f"<EventQuestion(id={self.id}, type={self.question_type})>"


class EventParticipation(Base):
    __tablename__ = "event_participations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    event_id = Column(UUID(as_uuid=True), ForeignKey("weekly_events.id"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    status = Column(
        enum_column(ParticipationStatus, length=16),
        nullable=False,
        default=ParticipationStatus.JOINED,
        index=True,
    )
    joined_at = Column(DateTime(timezone=True), default=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    event = relationship("WeeklyEvent", back_populates="participations")
    responses = relationship("EventResponse", back_populates="participation")

    __table_args__ = (UniqueConstraint("event_id", "user_id", name="uq_event_participations_event_user"),)

    def __repr__(self):
        return f"<EventParticipation(event_id={self.event_id}, user_id={self.user_id}, status={self.status})>"


class EventResponse(Base):
    __tablename__ = "event_responses"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    participation_id = Column(
        UUID(as_uuid=True), ForeignKey("event_participations.id"), nullable=False, index=True
    )
    question_id = Column(UUID(as_uuid=True), ForeignKey("event_questions.id"), nullable=False, index=True)
    response_value = Column(Text, nullable=False)
    response_time_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    participation = relationship("EventParticipation", back_populates="responses")
    question = relationship("EventQuestion")

    __table_args__ = (
        UniqueConstraint("participation_id", "question_id", name="uq_event_responses_participation_question"),
    )

    def __repr__(self):
        return f"<EventResponse(question_id={self.question_id}, value={self.response_value})>"


class EventMatch(Base):
    __tablename__ = "event_matches"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    event_id = Column(UUID(as_uuid=True), ForeignKey("weekly_events.id"), nullable=False, index=True)
    user_a_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    user_b_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)

    compatibility_score = Column(Float, nullable=False)
    match_reasons = Column(JSON, nullable=False, default=list)

    # Acceptance flags, one pair per side
    user_a_accepted = Column(Boolean, nullable=False, default=False)
    user_b_accepted = Column(Boolean, nullable=False, default=False)
    user_a_declined = Column(Boolean, nullable=False, default=False)
    user_b_declined = Column(Boolean, nullable=False, default=False)

    is_notified = Column(Boolean, nullable=False, default=False)
    matched_at = Column(DateTime(timezone=True), nullable=True)
    match_id = Column(UUID(as_uuid=True), ForeignKey("matches.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    event = relationship("WeeklyEvent")
    match = relationship("Match")

    __table_args__ = (
        UniqueConstraint("event_id", "user_a_id", "user_b_id", name="uq_event_matches_event_pair"),
        CheckConstraint("user_a_id < user_b_id", name="ck_event_matches_canonical_order"),
    )

    @property
    def key(self) -> MatchKey:
        return MatchKey(self.user_a_id, self.user_b_id)

    @property
    def state(self) -> AcceptanceState:
        if self.user_a_accepted and self.user_b_accepted:
            return AcceptanceState.BOTH_ACCEPTED
        if self.user_a_accepted:
            return AcceptanceState.USER_A_ACCEPTED
        if self.user_b_accepted:
            return AcceptanceState.USER_B_ACCEPTED
        return AcceptanceState.PENDING

    def __repr__(self):
        return f"<EventMatch(event_id={self.event_id}, user_a_id={self.user_a_id}, user_b_id={self.user_b_id})>"
