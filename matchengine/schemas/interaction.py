from pydantic import BaseModel, ConfigDict
from typing import Dict, Optional
from datetime import datetime
import uuid

from matchengine.models.enums import InteractionKind


class InteractionCreate(BaseModel):
    target_id: uuid.UUID
    kind: InteractionKind


class InteractionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    actor_id: uuid.UUID
    target_id: uuid.UUID
    kind: InteractionKind
    is_mutual: bool
    is_undone: bool
    created_at: datetime


class MatchRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_a_id: uuid.UUID
    user_b_id: uuid.UUID
    compatibility_score: float
    match_context: Optional[dict] = None
    is_active: bool
    matched_at: datetime
    unmatched_at: Optional[datetime] = None


class DailyLimits(BaseModel):
    """Per-kind quota snapshot for the actor's local day; ``None`` limit means unlimited"""
    limits: Dict[str, Optional[int]]
    used: Dict[str, int]
    remaining: Dict[str, Optional[int]]
    is_premium: bool
    resets_at: datetime

    def remaining_for(self, kind: InteractionKind) -> Optional[int]:
        return self.remaining.get(kind.value)


class InteractionResponse(BaseModel):
    interaction: InteractionRead
    match: Optional[MatchRead] = None
    is_match: bool = False
    limits: DailyLimits
