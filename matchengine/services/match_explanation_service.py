"""
Human-facing explanations on top of a compatibility score bundle.

Produces short match reasons for candidate cards, relationship
recommendations and a coarse quality label.
"""

from typing import List
import uuid

from matchengine.schemas.compatibility import CompatibilityExplanation, CompatibilityResult

# (threshold, label), checked in order
QUALITY_LABELS = (
    (85, "Exceptional"),
    (75, "Excellent"),
    (65, "Very Good"),
    (55, "Good"),
    (45, "Average"),
)


class MatchExplanationService:
    """Service for turning compatibility results into readable explanations"""

    MAX_MATCH_REASONS = 3

    @staticmethod
    def get_match_reasons(result: CompatibilityResult) -> List[str]:
        """Up to three short reasons shown on a candidate card"""
        if not result.is_scored:
            return []

        components = result.component_scores
        reasons = []
        if result.total_score >= 80:
            reasons.append("Exceptional psychological compatibility")
        elif result.total_score >= 70:
            reasons.append("Strong personality alignment")

        if components.attachment_compatibility >= 80:
            reasons.append("Compatible attachment styles")
        if components.personality_similarity >= 75:
            reasons.append("Similar values and life approach")
        if components.complementarity_bonus >= 20:
            reasons.append("Beneficial complementary traits")

        if not reasons:
            reasons.append("Potential for meaningful connection")

        return reasons[:MatchExplanationService.MAX_MATCH_REASONS]

    @staticmethod
    def get_recommendations(result: CompatibilityResult) -> List[str]:
        if not result.is_scored:
            return []

        if result.total_score >= 75:
            recommendations = ["High compatibility - consider meeting in person soon"]
        elif result.total_score >= 60:
            recommendations = ["Good potential - spend time getting to know each other"]
        else:
            recommendations = ["Moderate match - focus on common interests"]

        challenges = result.detailed_analysis.potential_challenges
        if challenges:
            recommendations.append(f"Be mindful of: {challenges[0]}")

        return recommendations

    @staticmethod
    def get_quality_label(score: float) -> str:
        for threshold, label in QUALITY_LABELS:
            if score >= threshold:
                return label
        return "Below Average"

    def explain(
        self,
        user_id: uuid.UUID,
        other_user_id: uuid.UUID,
        result: CompatibilityResult,
    ) -> CompatibilityExplanation:
        """Bundle reasons, recommendations and quality for one scored pair"""
        return CompatibilityExplanation(
            user_id=user_id,
            other_user_id=other_user_id,
            result=result,
            match_reasons=self.get_match_reasons(result),
            recommendations=self.get_recommendations(result),
            quality=self.get_quality_label(result.total_score) if result.is_scored else None,
        )


# Create singleton instance
match_explanation_service = MatchExplanationService()
