"""
Async factories for the ORM models.

Usage example (inside an async test with db_session fixture):

    user = await UserFactory.create_async(db_session)
    await TraitProfileFactory.create_async(db_session, user_id=user.id)
    event = await WeeklyEventFactory.create_async(db_session, event_type="values_alignment")
"""

from __future__ import annotations

import uuid
from datetime import date, timedelta
from typing import Any

from matchengine.models.enums import (
    AttachmentStyle,
    EventStatus,
    EventType,
    InteractionKind,
    ParticipationStatus,
    QuestionType,
)
from matchengine.models.event import (
    EventMatch,
    EventParticipation,
    EventQuestion,
    EventResponse,
    WeeklyEvent,
)
from matchengine.models.interaction import Interaction
from matchengine.models.match import Match
from matchengine.models.trait_profile import TraitProfile
from matchengine.models.user import User
from matchengine.utils.pairs import canonical_pair
from matchengine.utils.time import utcnow


# ---------------------------------------------------------------------------
# Base async factory helper
# ---------------------------------------------------------------------------
class _AsyncFactory:
    """Minimal async factory helper.

    Subclasses declare ``_model`` (the ORM class) and override ``_defaults()``
    to supply default column values. Call ``create_async(session, **kwargs)``
    to insert a row and return the flushed instance.
    """

    _model: type

    @classmethod
    def _defaults(cls) -> dict[str, Any]:
        return {}

    @classmethod
    def _prepare(cls, data: dict[str, Any]) -> dict[str, Any]:
        return data

    @classmethod
    async def create_async(cls, session, **kwargs) -> Any:
        """Create and flush an ORM instance within the given session."""
        data = cls._prepare({**cls._defaults(), **kwargs})
        instance = cls._model(**data)
        session.add(instance)
        await session.flush()
        return instance

    @classmethod
    def build(cls, **kwargs) -> Any:
        """Build an unsaved ORM instance (no DB interaction)."""
        data = cls._prepare({**cls._defaults(), **kwargs})
        return cls._model(**data)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------
class UserFactory(_AsyncFactory):
    _model = User

    @classmethod
    def _defaults(cls) -> dict[str, Any]:
        suffix = uuid.uuid4().hex[:8]
        return {
            "id": uuid.uuid4(),
            "display_name": f"User {suffix}",
            "is_active": True,
            "is_premium": False,
            "timezone": "UTC",
            "date_of_birth": date(1995, 6, 15),
        }


class TraitProfileFactory(_AsyncFactory):
    _model = TraitProfile

    @classmethod
    def _defaults(cls) -> dict[str, Any]:
        return {
            "id": uuid.uuid4(),
            "openness": 70.0,
            "conscientiousness": 65.0,
            "extraversion": 55.0,
            "agreeableness": 75.0,
            "neuroticism": 30.0,
            "attachment_style": AttachmentStyle.SECURE,
            "secure_score": 75.0,
            "anxious_score": 20.0,
            "avoidant_score": 15.0,
            "compatibility_keywords": ["family_oriented", "creative"],
            "profile_strength": 0.9,
            "is_active": True,
            "algorithm_version": 1,
        }


class InteractionFactory(_AsyncFactory):
    _model = Interaction

    @classmethod
    def _defaults(cls) -> dict[str, Any]:
        return {
            "id": uuid.uuid4(),
            "kind": InteractionKind.LIKE,
            "is_mutual": False,
            "is_undone": False,
            "created_at": utcnow(),
        }


class MatchFactory(_AsyncFactory):
    """Pass ``user_a_id``/``user_b_id`` in any order; they are canonicalised."""

    _model = Match

    @classmethod
    def _defaults(cls) -> dict[str, Any]:
        return {
            "id": uuid.uuid4(),
            "compatibility_score": 72.5,
            "match_context": {"source": "mutual_like"},
            "is_active": True,
            "matched_at": utcnow(),
        }

    @classmethod
    def _prepare(cls, data: dict[str, Any]) -> dict[str, Any]:
        key = canonical_pair(data["user_a_id"], data["user_b_id"])
        data["user_a_id"], data["user_b_id"] = key.user_a_id, key.user_b_id
        return data


class WeeklyEventFactory(_AsyncFactory):
    _model = WeeklyEvent

    @classmethod
    def _defaults(cls) -> dict[str, Any]:
        now = utcnow()
        return {
            "id": uuid.uuid4(),
            "title": "Weekly Values Check-in",
            "description": "A short questionnaire",
            "event_type": EventType.VALUES_ALIGNMENT.value,
            "status": EventStatus.ACTIVE,
            "starts_at": now - timedelta(days=1),
            "ends_at": now + timedelta(days=1),
            "max_participants": None,
        }


class EventQuestionFactory(_AsyncFactory):
    _model = EventQuestion

    @classmethod
    def _defaults(cls) -> dict[str, Any]:
        return {
            "id": uuid.uuid4(),
            "question_type": QuestionType.SCALE,
            "question_text": "How important is family to you?",
            "options": None,
            "psychological_weights": None,
            "scale_max": 5,
            "is_required": True,
            "display_order": 0,
        }


class EventParticipationFactory(_AsyncFactory):
    _model = EventParticipation

    @classmethod
    def _defaults(cls) -> dict[str, Any]:
        return {
            "id": uuid.uuid4(),
            "status": ParticipationStatus.JOINED,
            "joined_at": utcnow(),
        }


class EventResponseFactory(_AsyncFactory):
    _model = EventResponse

    @classmethod
    def _defaults(cls) -> dict[str, Any]:
        return {
            "id": uuid.uuid4(),
            "response_value": "3",
            "response_time_ms": 1500,
        }


class EventMatchFactory(_AsyncFactory):
    """Pass ``user_a_id``/``user_b_id`` in any order; they are canonicalised."""

    _model = EventMatch

    @classmethod
    def _defaults(cls) -> dict[str, Any]:
        return {
            "id": uuid.uuid4(),
            "compatibility_score": 80.0,
            "match_reasons": [],
        }

    @classmethod
    def _prepare(cls, data: dict[str, Any]) -> dict[str, Any]:
        key = canonical_pair(data["user_a_id"], data["user_b_id"])
        data["user_a_id"], data["user_b_id"] = key.user_a_id, key.user_b_id
        return data


# ---------------------------------------------------------------------------
# Composite helpers
# ---------------------------------------------------------------------------
async def create_user_with_profile(session, profile: dict[str, Any] | None = None, **user_fields) -> User:
    """Persist a user plus an active trait profile."""
    user = await UserFactory.create_async(session, **user_fields)
    await TraitProfileFactory.create_async(session, user_id=user.id, **(profile or {}))
    return user


async def create_completed_participant(session, event, answers: dict, **user_fields) -> User:
    """Persist a user who completed ``event`` with ``answers`` (question id -> value)."""
    user = await UserFactory.create_async(session, **user_fields)
    participation = await EventParticipationFactory.create_async(
        session,
        event_id=event.id,
        user_id=user.id,
        status=ParticipationStatus.COMPLETED,
        completed_at=utcnow(),
    )
    for question_id, value in answers.items():
        await EventResponseFactory.create_async(
            session,
            participation_id=participation.id,
            question_id=question_id,
            response_value=str(value),
        )
    return user
