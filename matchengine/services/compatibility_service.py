"""
Pairwise compatibility scoring between two trait profiles.

The scorer is a pure function of its inputs: two ``ProfileSnapshot`` values,
optional externally computed ``BehavioralPatterns`` and an optional age gap.
It never touches the database, so it is safe to run from any worker.

Score = 0.40 * personality + 0.25 * attachment + 0.20 * behavioral +
        0.10 * values + 0.05 * complementarity, then adjusted and clamped
        to [1, 99].
"""

from typing import List, Optional

from matchengine.models.enums import AttachmentStyle, Trait
from matchengine.schemas.compatibility import (
    BehavioralPatterns,
    CompatibilityResult,
    ComponentScores,
    DetailedAnalysis,
    ProfileSnapshot,
)
from matchengine.services.compatibility_tables import (
    COMPLEMENTARITY_RANGES,
    COMPONENT_WEIGHTS,
    TRAIT_SIMILARITY_WEIGHTS,
    VALUE_KEYWORD_BONUSES,
    attachment_base,
)

MISSING_PROFILE = "missing_profile"
NEUTRAL_SCORE = 50.0
MIN_TOTAL_SCORE = 1.0
MAX_TOTAL_SCORE = 99.0

# Trait order used for explanations
TRAIT_ORDER = (
    Trait.OPENNESS,
    Trait.CONSCIENTIOUSNESS,
    Trait.EXTRAVERSION,
    Trait.AGREEABLENESS,
    Trait.NEUROTICISM,
)


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _jaccard(a: frozenset, b: frozenset) -> float:
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


class CompatibilityScoringService:
    """Service for scoring the compatibility of two psychological profiles"""

    @staticmethod
    def calculate_personality_similarity(a: ProfileSnapshot, b: ProfileSnapshot) -> float:
        """Weighted Big Five similarity (0-100), with a bonus when both are emotionally stable"""
        total = 0.0
        for trait, weight in TRAIT_SIMILARITY_WEIGHTS.items():
            score_a = a.trait(trait)
            score_b = b.trait(trait)
            similarity = 100 - abs(score_a - score_b)
            if trait is Trait.NEUROTICISM and (score_a + score_b) / 2 < 40:
                similarity += 20
            total += similarity * weight
        return min(100.0, total)

    @staticmethod
    def calculate_attachment_compatibility(a: ProfileSnapshot, b: ProfileSnapshot) -> float:
        """Attachment table lookup (0-100) with secure bonus and anxious/avoidant penalty"""
        score = attachment_base(a.attachment_style, b.attachment_style) * 100

        if a.secure_score > 60 or b.secure_score > 60:
            score += 10

        if (a.anxious_score > 70 and b.avoidant_score > 70) or (
            a.avoidant_score > 70 and b.anxious_score > 70
        ):
            score -= 15

        return _clamp(score)

    @staticmethod
    def compare_text_patterns(a: BehavioralPatterns, b: BehavioralPatterns) -> float:
        score = 100.0
        score -= abs(a.avg_message_length - b.avg_message_length) * 0.5
        score -= abs(a.emoji_usage - b.emoji_usage) * 30
        return _clamp(score)

    @staticmethod
    def calculate_behavioral_compatibility(
        a: Optional[BehavioralPatterns],
        b: Optional[BehavioralPatterns],
    ) -> float:
        """Usage-pattern closeness (0-100); neutral when either side has no data"""
        if a is None or b is None:
            return NEUTRAL_SCORE

        response_time = max(0.0, 100 - abs(a.avg_response_time_ms - b.avg_response_time_ms) / 1000 * 10)
        activity = max(0.0, 100 - abs(a.activity_level - b.activity_level) * 2)
        text_style = CompatibilityScoringService.compare_text_patterns(a, b)
        timing = _jaccard(frozenset(a.active_hours), frozenset(b.active_hours)) * 100

        return response_time * 0.30 + activity * 0.25 + text_style * 0.25 + timing * 0.20

    @staticmethod
    def calculate_values_alignment(a: ProfileSnapshot, b: ProfileSnapshot) -> float:
        """Keyword overlap (0-100) plus half of the shared high-value keyword bonuses"""
        keywords_a = a.compatibility_keywords
        keywords_b = b.compatibility_keywords
        if not keywords_a or not keywords_b:
            return NEUTRAL_SCORE

        overlap = _jaccard(keywords_a, keywords_b) * 100
        bonus = sum(VALUE_KEYWORD_BONUSES.get(keyword, 0) for keyword in keywords_a & keywords_b)
        return min(100.0, overlap + bonus * 0.5)

    @staticmethod
    def calculate_complementarity_bonus(a: ProfileSnapshot, b: ProfileSnapshot) -> float:
        """Reward moderate (not extreme) trait differences, capped at 50"""
        bonus = 0.0
        for trait, (low, high, points) in COMPLEMENTARITY_RANGES.items():
            diff = abs(a.trait(trait) - b.trait(trait))
            if low < diff < high:
                bonus += points
        return min(50.0, bonus)

    @staticmethod
    def apply_adjustments(
        score: float,
        a: ProfileSnapshot,
        b: ProfileSnapshot,
        age_gap_years: Optional[float] = None,
    ) -> float:
        if (a.neuroticism + b.neuroticism) / 2 > 70:
            score -= 10

        if a.attachment_style is AttachmentStyle.SECURE and b.attachment_style is AttachmentStyle.SECURE:
            score += 5

        if (a.profile_strength + b.profile_strength) / 2 < 0.6:
            score *= 0.95

        if age_gap_years is not None:
            gap = abs(age_gap_years)
            if gap > 10:
                score -= min(5.0, gap * 0.3)

        return score

    @staticmethod
    def identify_strongest_connections(a: ProfileSnapshot, b: ProfileSnapshot) -> List[str]:
        connections = []
        for trait in TRAIT_ORDER:
            if abs(a.trait(trait) - b.trait(trait)) < 15:
                connections.append(f"Similar levels of {trait.value.capitalize()}")

        if a.attachment_style is b.attachment_style:
            connections.append(f"Shared {a.attachment_style.value} attachment style")

        common = sorted(a.compatibility_keywords & b.compatibility_keywords)
        if len(common) > 2:
            connections.append("Common values: " + ", ".join(common[:3]))

        return connections[:3]

    @staticmethod
    def identify_potential_challenges(a: ProfileSnapshot, b: ProfileSnapshot) -> List[str]:
        challenges = []
        if a.neuroticism > 70 or b.neuroticism > 70:
            challenges.append("May need extra emotional support during stress")

        styles = {a.attachment_style, b.attachment_style}
        if styles == {AttachmentStyle.ANXIOUS, AttachmentStyle.AVOIDANT}:
            challenges.append("Different approaches to intimacy and independence")

        if abs(a.conscientiousness - b.conscientiousness) > 40:
            challenges.append("Different organizational and planning styles")

        if a.agreeableness < 30 or b.agreeableness < 30:
            challenges.append("May need to work on compromise and cooperation")

        return challenges[:2]

    @staticmethod
    def predict_relationship_style(a: ProfileSnapshot, b: ProfileSnapshot) -> str:
        avg_extraversion = (a.extraversion + b.extraversion) / 2
        avg_openness = (a.openness + b.openness) / 2
        avg_conscientiousness = (a.conscientiousness + b.conscientiousness) / 2
        both_secure = a.attachment_style is AttachmentStyle.SECURE and b.attachment_style is AttachmentStyle.SECURE

        if avg_extraversion > 70 and avg_openness > 60:
            return "Social and adventurous partnership"
        if avg_conscientiousness > 70 and both_secure:
            return "Stable and goal-oriented relationship"
        if avg_openness > 70:
            return "Creative and intellectually stimulating bond"
        if AttachmentStyle.SECURE in (a.attachment_style, b.attachment_style):
            return "Emotionally supportive and trusting connection"
        return "Balanced and complementary partnership"

    def calculate_compatibility(
        self,
        profile_a: Optional[ProfileSnapshot],
        profile_b: Optional[ProfileSnapshot],
        behavior_a: Optional[BehavioralPatterns] = None,
        behavior_b: Optional[BehavioralPatterns] = None,
        age_gap_years: Optional[float] = None,
    ) -> CompatibilityResult:
        """Calculate the full compatibility bundle for two profiles

        Returns a zero-score result flagged ``missing_profile`` instead of
        raising when either profile is absent; callers decide whether to
        skip the pair.

        Example:
            result = compatibility_service.calculate_compatibility(mine, theirs)
            if result.is_scored and result.total_score > 70:
                ...
        """
        if profile_a is None or profile_b is None:
            return CompatibilityResult(total_score=0, error=MISSING_PROFILE)

        personality = self.calculate_personality_similarity(profile_a, profile_b)
        attachment = self.calculate_attachment_compatibility(profile_a, profile_b)
        behavioral = self.calculate_behavioral_compatibility(behavior_a, behavior_b)
        values = self.calculate_values_alignment(profile_a, profile_b)
        complementarity = self.calculate_complementarity_bonus(profile_a, profile_b)

        weighted = (
            personality * COMPONENT_WEIGHTS["personality_similarity"]
            + attachment * COMPONENT_WEIGHTS["attachment_compatibility"]
            + behavioral * COMPONENT_WEIGHTS["behavioral_patterns"]
            + values * COMPONENT_WEIGHTS["values_alignment"]
            + complementarity * COMPONENT_WEIGHTS["complementarity_bonus"]
        )
        adjusted = self.apply_adjustments(weighted, profile_a, profile_b, age_gap_years)

        return CompatibilityResult(
            total_score=round(_clamp(adjusted, MIN_TOTAL_SCORE, MAX_TOTAL_SCORE), 1),
            component_scores=ComponentScores(
                personality_similarity=round(personality, 1),
                attachment_compatibility=round(attachment, 1),
                behavioral_patterns=round(behavioral, 1),
                values_alignment=round(values, 1),
                complementarity_bonus=round(complementarity, 1),
            ),
            detailed_analysis=DetailedAnalysis(
                strongest_connections=self.identify_strongest_connections(profile_a, profile_b),
                potential_challenges=self.identify_potential_challenges(profile_a, profile_b),
                relationship_style_prediction=self.predict_relationship_style(profile_a, profile_b),
            ),
        )


# Create singleton instance
compatibility_service = CompatibilityScoringService()
