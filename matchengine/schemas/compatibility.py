from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Protocol
import uuid

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from matchengine.models.enums import AttachmentStyle, Trait


@dataclass(frozen=True)
class ProfileSnapshot:
    """Immutable, picklable view of an active TraitProfile used by the scorer."""
    user_id: uuid.UUID
    openness: float
    conscientiousness: float
    extraversion: float
    agreeableness: float
    neuroticism: float
    attachment_style: AttachmentStyle
    secure_score: float = 0.0
    anxious_score: float = 0.0
    avoidant_score: float = 0.0
    compatibility_keywords: FrozenSet[str] = field(default_factory=frozenset)
    profile_strength: float = 1.0

    def trait(self, trait: Trait) -> float:
        return getattr(self, trait.value)

    @classmethod
    def from_model(cls, profile) -> "ProfileSnapshot":
        return cls(
            user_id=profile.user_id,
            openness=float(profile.openness),
            conscientiousness=float(profile.conscientiousness),
            extraversion=float(profile.extraversion),
            agreeableness=float(profile.agreeableness),
            neuroticism=float(profile.neuroticism),
            attachment_style=AttachmentStyle(profile.attachment_style),
            secure_score=float(profile.secure_score or 0.0),
            anxious_score=float(profile.anxious_score or 0.0),
            avoidant_score=float(profile.avoidant_score or 0.0),
            compatibility_keywords=frozenset(profile.compatibility_keywords or ()),
            profile_strength=float(profile.profile_strength if profile.profile_strength is not None else 1.0),
        )


@dataclass(frozen=True)
class BehavioralPatterns:
    """Usage-pattern features computed outside the engine."""
    avg_response_time_ms: float
    activity_level: float  # 0-100
    avg_message_length: float
    emoji_usage: float  # emojis per message, 0-1
    active_hours: FrozenSet[int] = field(default_factory=frozenset)


class BehavioralPatternsProvider(Protocol):
    async def get_patterns(self, db: AsyncSession, user_id: uuid.UUID) -> Optional[BehavioralPatterns]:
        ...


class ComponentScores(BaseModel):
    personality_similarity: float = 0.0
    attachment_compatibility: float = 0.0
    behavioral_patterns: float = 0.0
    values_alignment: float = 0.0
    complementarity_bonus: float = 0.0


class DetailedAnalysis(BaseModel):
    strongest_connections: List[str] = []
    potential_challenges: List[str] = []
    relationship_style_prediction: Optional[str] = None


class CompatibilityResult(BaseModel):
    """Score bundle for one pair of profiles"""
    total_score: float = Field(..., ge=0, le=99, description="1-99 for scored pairs, 0 with an error")
    component_scores: ComponentScores = Field(default_factory=ComponentScores)
    detailed_analysis: DetailedAnalysis = Field(default_factory=DetailedAnalysis)
    error: Optional[str] = None

    @property
    def is_scored(self) -> bool:
        return self.error is None


class CompatibilityExplanation(BaseModel):
    """Human-facing summary built on top of a CompatibilityResult"""
    user_id: uuid.UUID
    other_user_id: uuid.UUID
    result: CompatibilityResult
    match_reasons: List[str] = []
    recommendations: List[str] = []
    quality: Optional[str] = None


class RankedCandidate(BaseModel):
    user_id: uuid.UUID
    compatibility_score: float
    distance_km: Optional[float] = None
    match_reasons: List[str] = []
    component_scores: Optional[Dict[str, float]] = None
