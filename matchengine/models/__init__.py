from .enums import (
    AcceptanceState,
    AttachmentStyle,
    EventStatus,
    EventType,
    InteractionKind,
    ParticipationStatus,
    QuestionType,
    Trait,
)
from .user import User
from .trait_profile import TraitProfile
from .interaction import Interaction
from .match import Match
from .event import WeeklyEvent, EventQuestion, EventParticipation, EventResponse, EventMatch

__all__ = [
    "AcceptanceState", "AttachmentStyle", "EventStatus", "EventType", "InteractionKind",
    "ParticipationStatus", "QuestionType", "Trait",
    "User", "TraitProfile", "Interaction", "Match",
    "WeeklyEvent", "EventQuestion", "EventParticipation", "EventResponse", "EventMatch",
]
