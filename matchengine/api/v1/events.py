from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import uuid

from matchengine.api.deps import (
    get_acting_user,
    get_event_generator_service,
    get_event_matchmaking_service,
    get_event_participation_service,
    get_match_acceptance_service,
)
from matchengine.core.arq import enqueue_event_processing
from matchengine.core.database import get_db
from matchengine.core.exceptions import EventNotFoundError, MatchNotFoundError
from matchengine.models.user import User
from matchengine.repositories.event_repository import EventRepository
from matchengine.schemas.event import (
    AcceptanceResponse,
    CandidateMatchRead,
    CreateEventRequest,
    CreatedEventResponse,
    EventMatchRead,
    EventRead,
    ParticipationRead,
    ProcessEventResponse,
    QuestionRead,
    SubmitResponsesRequest,
)

router = APIRouter()

_event_repo = EventRepository()


@router.post("", response_model=CreatedEventResponse, status_code=201)
async def create_event(
    payload: CreateEventRequest,
    db: AsyncSession = Depends(get_db),
    service=Depends(get_event_generator_service)
):
    """Create a scheduled event seeded with its type's default questions"""
    event = await service.create_event(db, **payload.model_dump())
    await db.commit()
    questions = await _event_repo.get_questions(db, event.id)
    return CreatedEventResponse(
        event=EventRead.model_validate(event),
        questions=[QuestionRead.model_validate(q) for q in questions],
    )


@router.post("/{event_id}/participants/{user_id}", response_model=ParticipationRead, status_code=201)
async def join_event(
    event_id: uuid.UUID,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_db),
    service=Depends(get_event_participation_service)
):
    """Join an open event"""
    participation = await service.join(db, event_id, user)
    await db.commit()
    return participation


@router.put("/{event_id}/participants/{user_id}/responses", response_model=ParticipationRead)
async def submit_responses(
    event_id: uuid.UUID,
    payload: SubmitResponsesRequest,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_db),
    service=Depends(get_event_participation_service)
):
    """Submit the full questionnaire and complete the participation"""
    participation = await service.submit_responses(
        db, event_id, user, [item.model_dump() for item in payload.responses]
    )
    await db.commit()
    return participation


@router.post("/{event_id}/participants/{user_id}/abandon", response_model=ParticipationRead)
async def abandon_event(
    event_id: uuid.UUID,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_db),
    service=Depends(get_event_participation_service)
):
    participation = await service.abandon(db, event_id, user)
    await db.commit()
    return participation


@router.get("/{event_id}/participants/{user_id}/matches", response_model=List[EventMatchRead])
async def list_event_matches(
    event_id: uuid.UUID,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_db),
    service=Depends(get_event_participation_service)
):
    """The user's candidate matches (marks them notified)"""
    matches = await service.list_matches(db, event_id, user)
    await db.commit()
    return matches


@router.post("/{event_id}/process", response_model=ProcessEventResponse)
async def process_event(
    event_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    service=Depends(get_event_matchmaking_service)
):
    """Run batch matchmaking now (the worker cron does this for ended events)"""
    candidates = await service.process_event_by_id(db, event_id)
    await db.commit()
    event = await _event_repo.get(db, event_id)
    return ProcessEventResponse(
        event_id=event_id,
        status=event.status,
        candidates=[CandidateMatchRead.model_validate(c) for c in candidates],
        total_candidates=len(candidates),
    )


@router.post("/{event_id}/process/enqueue", status_code=202)
async def enqueue_event(
    event_id: uuid.UUID,
    db: AsyncSession = Depends(get_db)
):
    """Queue batch matchmaking on the worker"""
    if await _event_repo.get(db, event_id) is None:
        raise EventNotFoundError("Event not found")
    await enqueue_event_processing(event_id)
    return {"event_id": str(event_id), "queued": True}


async def _get_event_match(db: AsyncSession, event_match_id: uuid.UUID):
    event_match = await _event_repo.get_event_match(db, event_match_id)
    if event_match is None:
        raise MatchNotFoundError("Event match not found")
    return event_match


@router.post("/matches/{event_match_id}/accept/{user_id}", response_model=AcceptanceResponse)
async def accept_event_match(
    event_match_id: uuid.UUID,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_db),
    service=Depends(get_match_acceptance_service)
):
    event_match = await _get_event_match(db, event_match_id)
    outcome = await service.accept(db, event_match, user.id)
    await db.commit()
    return AcceptanceResponse(
        event_match=EventMatchRead.model_validate(outcome.event_match),
        state=outcome.state,
        match_id=outcome.match.id if outcome.match else None,
    )


@router.post("/matches/{event_match_id}/decline/{user_id}", response_model=AcceptanceResponse)
async def decline_event_match(
    event_match_id: uuid.UUID,
    user: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_db),
    service=Depends(get_match_acceptance_service)
):
    event_match = await _get_event_match(db, event_match_id)
    outcome = await service.decline(db, event_match, user.id)
    await db.commit()
    return AcceptanceResponse(
        event_match=EventMatchRead.model_validate(outcome.event_match),
        state=outcome.state,
    )
