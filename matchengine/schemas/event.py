from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
import uuid

from matchengine.models.enums import AcceptanceState, EventStatus, EventType, ParticipationStatus, QuestionType


class CreateEventRequest(BaseModel):
    event_type: EventType
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    max_participants: Optional[int] = Field(None, ge=2)
    event_data: Optional[dict] = None


class EventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: Optional[str] = None
    event_type: str
    status: EventStatus
    starts_at: datetime
    ends_at: datetime
    max_participants: Optional[int] = None
    event_data: Optional[dict] = None


class QuestionRead(BaseModel):
    """Question as shown to participants; trait weights stay server-side."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    question_type: QuestionType
    question_text: str
    options: Optional[List[dict]] = None
    scale_max: int
    is_required: bool
    display_order: int


class CreatedEventResponse(BaseModel):
    event: EventRead
    questions: List[QuestionRead]


class EventResponseIn(BaseModel):
    question_id: uuid.UUID
    response_value: str = Field(..., min_length=1)
    response_time_ms: Optional[int] = Field(None, ge=0)


class SubmitResponsesRequest(BaseModel):
    responses: List[EventResponseIn]


class ParticipationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    event_id: uuid.UUID
    user_id: uuid.UUID
    status: ParticipationStatus
    joined_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class MatchReason(BaseModel):
    """``similar`` reasons carry ``answer``; ``complementary`` ones carry ``answer1``/``answer2``"""
    type: str
    question: str
    answer: Optional[str] = None
    answer1: Optional[str] = None
    answer2: Optional[str] = None


class EventMatchRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    event_id: uuid.UUID
    user_a_id: uuid.UUID
    user_b_id: uuid.UUID
    compatibility_score: float
    match_reasons: List[MatchReason] = []
    user_a_accepted: bool
    user_b_accepted: bool
    user_a_declined: bool
    user_b_declined: bool
    state: AcceptanceState
    matched_at: Optional[datetime] = None
    match_id: Optional[uuid.UUID] = None


class CandidateMatchRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_a_id: uuid.UUID
    user_b_id: uuid.UUID
    compatibility_score: float
    match_reasons: List[MatchReason] = []


class ProcessEventResponse(BaseModel):
    event_id: uuid.UUID
    status: EventStatus
    candidates: List[CandidateMatchRead]
    total_candidates: int


class AcceptanceResponse(BaseModel):
    event_match: EventMatchRead
    state: AcceptanceState
    match_id: Optional[uuid.UUID] = None
