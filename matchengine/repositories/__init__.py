# Repositories package
from .base import BaseRepository
from .trait_profile_repository import TraitProfileRepository
from .interaction_repository import InteractionRepository
from .match_repository import MatchRepository
from .event_repository import EventRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "TraitProfileRepository",
    "InteractionRepository",
    "MatchRepository",
    "EventRepository",
    "UserRepository",
]
