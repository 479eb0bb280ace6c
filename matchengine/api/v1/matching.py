from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
import uuid

from matchengine.api.deps import (
    get_acting_user,
    get_discovery_service,
    get_interaction_service,
    get_match_service,
)
from matchengine.core.database import get_db
from matchengine.models.user import User
from matchengine.schemas.compatibility import CompatibilityExplanation, RankedCandidate
from matchengine.schemas.interaction import (
    DailyLimits,
    InteractionCreate,
    InteractionRead,
    InteractionResponse,
    MatchRead,
)

router = APIRouter()


@router.post("/{user_id}/interactions", response_model=InteractionResponse, status_code=201)
async def record_interaction(
    payload: InteractionCreate,
    actor: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_db),
    service=Depends(get_interaction_service)
):
    """Like, pass, super like, block or report another user"""
    outcome = await service.record_interaction(db, actor, payload.target_id, payload.kind)
    await db.commit()
    return InteractionResponse(
        interaction=InteractionRead.model_validate(outcome.interaction),
        match=MatchRead.model_validate(outcome.match) if outcome.match else None,
        is_match=outcome.is_match,
        limits=outcome.quota,
    )


@router.post("/{user_id}/interactions/{interaction_id}/undo", response_model=InteractionRead)
async def undo_interaction(
    interaction_id: uuid.UUID,
    actor: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_db),
    service=Depends(get_interaction_service)
):
    """Undo a recent interaction (premium only)"""
    interaction = await service.undo_interaction(db, actor, interaction_id)
    await db.commit()
    return interaction


@router.get("/{user_id}/limits", response_model=DailyLimits)
async def get_daily_limits(
    actor: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_db),
    service=Depends(get_interaction_service)
):
    """Today's quota usage in the user's timezone"""
    return await service.get_daily_limits(db, actor)


@router.get("/{user_id}/compatibility/{other_id}", response_model=CompatibilityExplanation)
async def get_compatibility(
    other_id: uuid.UUID,
    actor: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_db),
    service=Depends(get_discovery_service)
):
    """Score bundle and explanation for a pair (``error`` set when a profile is missing)"""
    return await service.explain_pair(db, actor, other_id)


@router.get("/{user_id}/candidates", response_model=List[RankedCandidate])
async def get_candidates(
    limit: int = Query(20, ge=1, le=100),
    actor: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_db),
    service=Depends(get_discovery_service)
):
    """Ranked discovery candidates"""
    return await service.rank_candidates(db, actor, limit=limit)


@router.get("/{user_id}/matches", response_model=List[MatchRead])
async def list_matches(
    actor: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_db),
    service=Depends(get_match_service)
):
    """Active matches of the user"""
    return await service.match_repo.list_for_user(db, actor.id)


@router.post("/{user_id}/matches/{match_id}/unmatch", response_model=MatchRead)
async def unmatch(
    match_id: uuid.UUID,
    actor: User = Depends(get_acting_user),
    db: AsyncSession = Depends(get_db),
    service=Depends(get_match_service)
):
    """Deactivate a match"""
    match = await service.unmatch(db, match_id, actor.id)
    await db.commit()
    return match
