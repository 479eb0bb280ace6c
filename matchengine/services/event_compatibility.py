"""
Event-type specific compatibility strategies for batch matchmaking.

Everything here is pure and picklable: the matchmaking service converts ORM
rows into ``QuestionSpec`` / ``ParticipantAnswers`` values and ships chunks of
pairs to ``score_chunk`` on an executor (a process pool by default).

Strategies return a score in [1, 99]; ``generate_match_reasons`` returns up
to three ``similar`` / ``complementary`` reasons per pair.
"""

from dataclasses import dataclass, field
from itertools import combinations
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple
import uuid

from matchengine.models.enums import EventType, QuestionType, Trait

NEUTRAL_SCORE = 50.0
MAX_MATCH_REASONS = 3
_TRAIT_NAMES = frozenset(t.value for t in Trait)


@dataclass(frozen=True)
class QuestionSpec:
    id: uuid.UUID
    question_type: str
    question_text: str
    scale_max: int = 5
    is_required: bool = True
    # option value -> {trait: signed weight in [-2, 2]}
    weights: Mapping[str, Mapping[str, float]] = field(default_factory=dict, hash=False)
    labels: Mapping[str, str] = field(default_factory=dict, hash=False)

    @classmethod
    def from_model(cls, question) -> "QuestionSpec":
        weights = {
            str(value): {str(trait): float(w) for trait, w in (traits or {}).items()}
            for value, traits in (question.psychological_weights or {}).items()
        }
        labels = {
            str(option.get("value")): option.get("label") or str(option.get("value"))
            for option in (question.options or [])
        }
        return cls(
            id=question.id,
            question_type=getattr(question.question_type, "value", question.question_type),
            question_text=question.question_text,
            scale_max=question.scale_max or 5,
            is_required=bool(question.is_required),
            weights=weights,
            labels=labels,
        )

    @property
    def is_scale(self) -> bool:
        return self.question_type == QuestionType.SCALE.value

    @property
    def is_multiple_choice(self) -> bool:
        return self.question_type == QuestionType.MULTIPLE_CHOICE.value

    def label(self, value: str) -> str:
        return self.labels.get(value, value)

    def weights_for(self, value: str) -> Mapping[str, float]:
        return self.weights.get(value, {})


@dataclass(frozen=True)
class ParticipantAnswers:
    user_id: uuid.UUID
    # question id -> response value
    answers: Mapping[uuid.UUID, str] = field(default_factory=dict, hash=False)

    @classmethod
    def from_model(cls, participation) -> "ParticipantAnswers":
        return cls(
            user_id=participation.user_id,
            answers={r.question_id: str(r.response_value) for r in participation.responses},
        )


@dataclass(frozen=True)
class CandidateMatch:
    user_a_id: uuid.UUID
    user_b_id: uuid.UUID
    compatibility_score: float
    match_reasons: List[dict] = field(default_factory=list, hash=False)


def _clamp(value: float, low: float = 1.0, high: float = 99.0) -> float:
    return max(low, min(high, value))


def _as_number(value: str) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _common_answers(
    questions: Mapping[uuid.UUID, QuestionSpec],
    a: ParticipantAnswers,
    b: ParticipantAnswers,
) -> List[Tuple[QuestionSpec, str, str]]:
    """Questions both answered, in questionnaire order."""
    return [
        (question, a.answers[qid], b.answers[qid])
        for qid, question in questions.items()
        if qid in a.answers and qid in b.answers
    ]


# ── Strategies ────────────────────────────────────────────────────────────────

def calculate_trait_scores(
    questions: Mapping[uuid.UUID, QuestionSpec],
    participant: ParticipantAnswers,
) -> Dict[str, float]:
    """
    Derive 0-100 trait scores from summed answer weights.

    Only traits that received at least one weight appear in the result.
    """
    sums: Dict[str, float] = {}
    counts: Dict[str, int] = {}
    for qid, value in participant.answers.items():
        question = questions.get(qid)
        if question is None:
            continue
        for trait, weight in question.weights_for(value).items():
            if trait not in _TRAIT_NAMES:
                continue
            sums[trait] = sums.get(trait, 0.0) + weight
            counts[trait] = counts.get(trait, 0) + 1

    return {
        trait: max(0.0, min(100.0, 50 + (total / (counts[trait] * 2)) * 50))
        for trait, total in sums.items()
    }


def personality_quiz_compatibility(questions, a: ParticipantAnswers, b: ParticipantAnswers) -> float:
    traits_a = calculate_trait_scores(questions, a)
    traits_b = calculate_trait_scores(questions, b)
    shared = [t for t in traits_a if t in traits_b]
    if not shared:
        return NEUTRAL_SCORE
    total = sum(100 - abs(traits_a[t] - traits_b[t]) for t in shared)
    return _clamp(total / len(shared))


def lifestyle_compatibility(questions, a: ParticipantAnswers, b: ParticipantAnswers) -> float:
    common = _common_answers(questions, a, b)
    if not common:
        return NEUTRAL_SCORE

    similarity = 0.0
    for question, value_a, value_b in common:
        if value_a == value_b:
            similarity += 1.0
        elif question.is_scale:
            num_a, num_b = _as_number(value_a), _as_number(value_b)
            if num_a is not None and num_b is not None:
                similarity += max(0.0, 1 - abs(num_a - num_b) / question.scale_max)
        elif question.is_multiple_choice:
            similarity += 0.2

    return _clamp(similarity / len(common) * 100)


def scenario_compatibility(questions, a: ParticipantAnswers, b: ParticipantAnswers) -> float:
    """Closeness of the trait-weight vectors behind the chosen scenario options."""
    common = _common_answers(questions, a, b)
    if not common:
        return NEUTRAL_SCORE

    similarity = 0.0
    for question, value_a, value_b in common:
        if value_a == value_b:
            similarity += 1.0
            continue
        weights_a = question.weights_for(value_a)
        weights_b = question.weights_for(value_b)
        traits = set(weights_a) | set(weights_b)
        if not traits:
            continue
        mean_gap = sum(abs(weights_a.get(t, 0.0) - weights_b.get(t, 0.0)) for t in traits) / len(traits)
        similarity += max(0.0, 1 - mean_gap / 4)

    return _clamp(similarity / len(common) * 100)


def values_compatibility(questions, a: ParticipantAnswers, b: ParticipantAnswers) -> float:
    """Strict agreement scoring; opposite extremes on required scales are penalised."""
    common = _common_answers(questions, a, b)
    if not common:
        return NEUTRAL_SCORE

    similarity = 0.0
    penalty = 1.0
    for question, value_a, value_b in common:
        if value_a == value_b:
            similarity += 1.0
            continue
        if not question.is_scale:
            continue
        num_a, num_b = _as_number(value_a), _as_number(value_b)
        if num_a is None or num_b is None:
            continue
        similarity += max(0.0, 1 - abs(num_a - num_b) / question.scale_max) ** 2
        if question.is_required and min(num_a, num_b) <= 1 and max(num_a, num_b) >= question.scale_max:
            penalty *= 0.8

    return _clamp(similarity / len(common) * 100 * penalty)


def generic_compatibility(questions, a: ParticipantAnswers, b: ParticipantAnswers) -> float:
    common = _common_answers(questions, a, b)
    if not common:
        return NEUTRAL_SCORE
    identical = sum(1 for _, value_a, value_b in common if value_a == value_b)
    return _clamp(identical / len(common) * 100)


STRATEGIES: Mapping[str, Callable] = {
    EventType.PERSONALITY_QUIZ.value: personality_quiz_compatibility,
    EventType.LIFESTYLE_MATCHING.value: lifestyle_compatibility,
    EventType.SCENARIO_CHALLENGE.value: scenario_compatibility,
    EventType.VALUES_ALIGNMENT.value: values_compatibility,
}
if set(STRATEGIES) != {t.value for t in EventType}:
    raise RuntimeError("Every event type needs a compatibility strategy")


def get_strategy(event_type: str) -> Callable:
    """Strategy for ``event_type``; unknown types use the generic ratio."""
    return STRATEGIES.get(getattr(event_type, "value", event_type), generic_compatibility)


# ── Reasons ───────────────────────────────────────────────────────────────────

def _is_complementary(weights_a: Mapping[str, float], weights_b: Mapping[str, float]) -> bool:
    return any(trait in weights_b and w * weights_b[trait] < 0 for trait, w in weights_a.items())


def generate_match_reasons(questions, a: ParticipantAnswers, b: ParticipantAnswers) -> List[dict]:
    reasons = []
    for question, value_a, value_b in _common_answers(questions, a, b):
        if value_a == value_b:
            reasons.append({
                "type": "similar",
                "question": question.question_text,
                "answer": question.label(value_a),
            })
        elif _is_complementary(question.weights_for(value_a), question.weights_for(value_b)):
            reasons.append({
                "type": "complementary",
                "question": question.question_text,
                "answer1": question.label(value_a),
                "answer2": question.label(value_b),
            })
        if len(reasons) == MAX_MATCH_REASONS:
            break
    return reasons


# ── Batch entry points ────────────────────────────────────────────────────────

def score_pair(event_type: str, questions, a: ParticipantAnswers, b: ParticipantAnswers) -> CandidateMatch:
    """Score one pair; the result is already in canonical (low, high) order."""
    if b.user_id < a.user_id:
        a, b = b, a
    score = get_strategy(event_type)(questions, a, b)
    return CandidateMatch(
        user_a_id=a.user_id,
        user_b_id=b.user_id,
        compatibility_score=round(score, 1),
        match_reasons=generate_match_reasons(questions, a, b),
    )


def score_chunk(
    event_type: str,
    questions: Mapping[uuid.UUID, QuestionSpec],
    participants: Sequence[ParticipantAnswers],
    pairs: Sequence[Tuple[int, int]],
) -> List[CandidateMatch]:
    """Executor entry point: score a chunk of ``(i, j)`` index pairs."""
    return [
        score_pair(event_type, questions, participants[i], participants[j])
        for i, j in pairs
        if participants[i].user_id != participants[j].user_id
    ]


def all_pairs(count: int) -> List[Tuple[int, int]]:
    return list(combinations(range(count), 2))
