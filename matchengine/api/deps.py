from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from matchengine.core.database import get_db
from matchengine.models.user import User
from matchengine.repositories.user_repository import UserRepository
from matchengine.services.discovery_service import discovery_service
from matchengine.services.event_generator_service import event_generator_service
from matchengine.services.event_matchmaking_service import event_matchmaking_service
from matchengine.services.event_participation_service import event_participation_service
from matchengine.services.interaction_service import interaction_service
from matchengine.services.match_acceptance_service import match_acceptance_service
from matchengine.services.match_service import match_service

_user_repo = UserRepository()


async def get_acting_user(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db)
) -> User:
    """Resolve the acting user from the path; identity is asserted upstream"""
    user = await _user_repo.get(db, user_id)
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


# Service providers, overridable in tests via app.dependency_overrides

def get_interaction_service():
    return interaction_service


def get_match_service():
    return match_service


def get_discovery_service():
    return discovery_service


def get_event_generator_service():
    return event_generator_service


def get_event_matchmaking_service():
    return event_matchmaking_service


def get_event_participation_service():
    return event_participation_service


def get_match_acceptance_service():
    return match_acceptance_service
