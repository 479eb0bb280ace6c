"""
Fixed lookup tables for pairwise compatibility scoring.

Every table is keyed by enum members and checked for completeness when this
module is imported, so a missing entry fails at startup instead of scoring
as zero at runtime.
"""

from itertools import combinations_with_replacement
from types import MappingProxyType
from typing import FrozenSet, Mapping

from matchengine.models.enums import AttachmentStyle, Trait

# Component weights of the total score (sum to 1.0)
COMPONENT_WEIGHTS: Mapping[str, float] = MappingProxyType({
    "personality_similarity": 0.40,
    "attachment_compatibility": 0.25,
    "behavioral_patterns": 0.20,
    "values_alignment": 0.10,
    "complementarity_bonus": 0.05,
})

# Importance of similarity per Big Five trait (sum to 1.0)
TRAIT_SIMILARITY_WEIGHTS: Mapping[Trait, float] = MappingProxyType({
    Trait.AGREEABLENESS: 0.35,
    Trait.CONSCIENTIOUSNESS: 0.25,
    Trait.NEUROTICISM: 0.20,
    Trait.EXTRAVERSION: 0.12,
    Trait.OPENNESS: 0.08,
})

# Symmetric: keyed by the unordered style pair
ATTACHMENT_COMPATIBILITY: Mapping[FrozenSet[AttachmentStyle], float] = MappingProxyType({
    frozenset({AttachmentStyle.SECURE}): 0.95,
    frozenset({AttachmentStyle.SECURE, AttachmentStyle.ANXIOUS}): 0.85,
    frozenset({AttachmentStyle.SECURE, AttachmentStyle.AVOIDANT}): 0.70,
    frozenset({AttachmentStyle.SECURE, AttachmentStyle.MIXED}): 0.80,
    frozenset({AttachmentStyle.ANXIOUS}): 0.40,
    frozenset({AttachmentStyle.ANXIOUS, AttachmentStyle.AVOIDANT}): 0.25,  # pursue-withdraw
    frozenset({AttachmentStyle.ANXIOUS, AttachmentStyle.MIXED}): 0.65,
    frozenset({AttachmentStyle.AVOIDANT}): 0.60,
    frozenset({AttachmentStyle.AVOIDANT, AttachmentStyle.MIXED}): 0.70,
    frozenset({AttachmentStyle.MIXED}): 0.80,
})

# Bonus points for each of these keywords both users share
VALUE_KEYWORD_BONUSES: Mapping[str, float] = MappingProxyType({
    "family_oriented": 15,
    "stable_lifestyle": 12,
    "career_focused": 10,
    "adventure_seeking": 8,
    "creative": 8,
})

# Moderate trait differences that complement each other: (low, high, bonus), open interval
COMPLEMENTARITY_RANGES: Mapping[Trait, tuple] = MappingProxyType({
    Trait.EXTRAVERSION: (20, 40, 15),
    Trait.CONSCIENTIOUSNESS: (15, 30, 10),
    Trait.OPENNESS: (20, 35, 8),
})


def attachment_base(style_a: AttachmentStyle, style_b: AttachmentStyle) -> float:
    return ATTACHMENT_COMPATIBILITY[frozenset({style_a, style_b})]


def _validate() -> None:
    if set(TRAIT_SIMILARITY_WEIGHTS) != set(Trait):
        raise RuntimeError("TRAIT_SIMILARITY_WEIGHTS must cover every trait")
    if abs(sum(TRAIT_SIMILARITY_WEIGHTS.values()) - 1.0) > 1e-9:
        raise RuntimeError("TRAIT_SIMILARITY_WEIGHTS must sum to 1")
    if abs(sum(COMPONENT_WEIGHTS.values()) - 1.0) > 1e-9:
        raise RuntimeError("COMPONENT_WEIGHTS must sum to 1")

    expected = {frozenset(pair) for pair in combinations_with_replacement(AttachmentStyle, 2)}
    if set(ATTACHMENT_COMPATIBILITY) != expected:
        raise RuntimeError("ATTACHMENT_COMPATIBILITY must cover every style pair")
    worst = ATTACHMENT_COMPATIBILITY[frozenset({AttachmentStyle.ANXIOUS, AttachmentStyle.AVOIDANT})]
    if min(ATTACHMENT_COMPATIBILITY.values()) != worst:
        raise RuntimeError("anxious-avoidant must be the least compatible attachment pairing")


_validate()
