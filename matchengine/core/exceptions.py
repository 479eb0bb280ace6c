"""
Typed errors raised by the matchmaking engine.

Every error carries a stable ``code`` for API clients and a ``status_code``
hint that the HTTP adapter uses when translating it. Services never raise
HTTP-specific exceptions themselves.
"""

from __future__ import annotations

from typing import Any, Optional


class MatchEngineError(Exception):
    """Base class for recoverable, caller-facing engine errors."""

    code = "MATCH_ENGINE_ERROR"
    status_code = 400

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code, **self.context}


class UserNotFoundError(MatchEngineError):
    code = "USER_NOT_FOUND"
    status_code = 404


class SelfInteractionError(MatchEngineError):
    code = "SELF_INTERACTION"


class DuplicateInteractionError(MatchEngineError):
    code = "DUPLICATE_INTERACTION"
    status_code = 409


class QuotaExceededError(MatchEngineError):
    code = "QUOTA_EXCEEDED"
    status_code = 429

    def __init__(self, kind: str, limit: int, used: int):
        super().__init__(
            f"Daily {kind} limit reached ({limit} per day)",
            kind=kind,
            limit=limit,
            used=used,
        )
        self.kind = kind
        self.limit = limit
        self.used = used


class InteractionBlockedError(MatchEngineError):
    code = "INTERACTION_BLOCKED"
    status_code = 403


class UndoNotAllowedError(MatchEngineError):
    code = "UNDO_NOT_ALLOWED"


class InteractionNotFoundError(MatchEngineError):
    code = "INTERACTION_NOT_FOUND"
    status_code = 404


class MatchNotFoundError(MatchEngineError):
    code = "MATCH_NOT_FOUND"
    status_code = 404


class NotMatchParticipantError(MatchEngineError):
    code = "NOT_MATCH_PARTICIPANT"
    status_code = 403


class InvalidAcceptanceTransitionError(MatchEngineError):
    code = "INVALID_ACCEPTANCE_TRANSITION"
    status_code = 409


class EventNotFoundError(MatchEngineError):
    code = "EVENT_NOT_FOUND"
    status_code = 404


class EventParticipationError(MatchEngineError):
    """Join / submit / abandon rejected by the participation lifecycle."""

    code = "EVENT_PARTICIPATION_ERROR"

    def __init__(self, message: str, missing_questions: Optional[list] = None):
        if missing_questions:
            super().__init__(message, missing_questions=missing_questions)
        else:
            super().__init__(message)


class InvalidEventScheduleError(MatchEngineError):
    code = "INVALID_EVENT_SCHEDULE"
