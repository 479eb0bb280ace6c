"""
Default content for generated weekly events.

One template per event type: the title, description and ``event_data``
knobs the event is created with, and the questionnaire seeded under it.
Multiple-choice questions carry ``psychological_weights`` (option value ->
signed Big Five weights in [-2, 2]) so the personality and scenario
strategies can derive traits from the answers. Values and lifestyle
questions are mostly 1-5 scales.
"""

from types import MappingProxyType
from typing import Any, List, Mapping

from matchengine.models.enums import EventType, QuestionType


def _choice(text: str, options: List[tuple]) -> dict:
    """Multiple-choice question from ``(value, label, weights)`` triples."""
    return {
        "question_type": QuestionType.MULTIPLE_CHOICE,
        "question_text": text,
        "options": [{"value": value, "label": label} for value, label, _ in options],
        "psychological_weights": {value: weights for value, _, weights in options},
    }


def _scale(text: str, low: str, high: str, scale_max: int = 5) -> dict:
    return {
        "question_type": QuestionType.SCALE,
        "question_text": text,
        "options": [{"value": "1", "label": low}, {"value": str(scale_max), "label": high}],
        "scale_max": scale_max,
    }


PERSONALITY_QUIZ_QUESTIONS = [
    _choice("How do you typically recharge after a long day?", [
        ("alone", "Spending time alone", {"extraversion": -2, "neuroticism": 1}),
        ("few_friends", "With a few close friends", {"extraversion": 0, "agreeableness": 1}),
        ("social", "At a social gathering", {"extraversion": 2, "openness": 1}),
        ("outdoors", "Being outdoors in nature", {"openness": 1, "conscientiousness": 1}),
    ]),
    _choice("When making important decisions, you typically:", [
        ("logic", "Rely on logic and facts", {"conscientiousness": 2, "neuroticism": -1}),
        ("gut", "Trust your gut feeling", {"openness": 1, "neuroticism": 0}),
        ("both", "Consider both logic and emotions", {"openness": 1, "conscientiousness": 1}),
        ("others", "Seek advice from others", {"agreeableness": 2, "extraversion": 1}),
    ]),
    _choice("How do you handle unexpected change?", [
        ("embrace", "Embrace it as an opportunity", {"openness": 2, "neuroticism": -1}),
        ("adapt", "Adapt but prefer stability", {"conscientiousness": 1, "openness": 0}),
        ("resist", "Resist it initially then adjust", {"neuroticism": 1, "conscientiousness": 1}),
        ("avoid", "Try to avoid it if possible", {"neuroticism": 2, "openness": -1}),
    ]),
]

SCENARIO_CHALLENGE_QUESTIONS = [
    _choice("Your partner forgot your birthday. What do you do?", [
        ("talk", "Tell them calmly that it hurt", {"agreeableness": 1, "neuroticism": -1}),
        ("hint", "Drop hints until they notice", {"neuroticism": 1, "extraversion": -1}),
        ("laugh", "Laugh it off and plan something together", {"openness": 1, "agreeableness": 2}),
        ("silent", "Say nothing but feel hurt", {"neuroticism": 2, "agreeableness": -1}),
    ]),
    _choice("A friend cancels on your plans for the third time. You:", [
        ("confront", "Tell them it is not okay", {"extraversion": 1, "agreeableness": -1}),
        ("reschedule", "Suggest a new date right away", {"conscientiousness": 1, "agreeableness": 1}),
        ("drift", "Let the friendship quietly drift", {"extraversion": -1, "neuroticism": 1}),
        ("check_in", "Ask if everything is alright with them", {"agreeableness": 2, "openness": 1}),
    ]),
    _choice("You are offered a dream job in another country. You:", [
        ("go", "Go, adventure wins", {"openness": 2, "conscientiousness": -1}),
        ("plan", "Make a detailed plan before deciding", {"conscientiousness": 2}),
        ("ask", "Decide together with the people close to you", {"agreeableness": 2}),
        ("stay", "Stay, roots matter more", {"openness": -1, "neuroticism": 1}),
    ]),
]

VALUES_ALIGNMENT_QUESTIONS = [
    _scale("How important is it to you to have children?", "Not at all", "Essential"),
    _scale("How central is your career to your life?", "Not central", "Very central"),
    _scale("How important is religion or spirituality to you?", "Not at all", "Very important"),
    _scale("How much do you value financial security over experiences?", "Experiences first", "Security first"),
]

LIFESTYLE_MATCHING_QUESTIONS = [
    _scale("How much of a morning person are you?", "Night owl", "Early bird"),
    _scale("How often do you exercise?", "Rarely", "Every day"),
    _scale("How tidy is your living space?", "Lived in", "Spotless"),
    _choice("Your ideal weekend looks like:", [
        ("home", "A quiet weekend at home", {"extraversion": -1}),
        ("outdoors", "Hiking or time outdoors", {"openness": 1}),
        ("city", "Exploring the city", {"extraversion": 1, "openness": 1}),
        ("friends", "Hosting friends", {"extraversion": 2}),
    ]),
]

EVENT_TEMPLATES: Mapping[EventType, Mapping[str, Any]] = MappingProxyType({
    EventType.PERSONALITY_QUIZ: MappingProxyType({
        "title": "Weekly Personality Discovery",
        "description": "Learn more about yourself and find compatible matches based on psychological traits.",
        "event_data": {"theme": "relationships", "difficulty": "medium", "focus_traits": ["openness", "extraversion"]},
        "questions": PERSONALITY_QUIZ_QUESTIONS,
    }),
    EventType.SCENARIO_CHALLENGE: MappingProxyType({
        "title": "Relationship Dilemmas",
        "description": "How would you handle these relationship scenarios? Find matches who think like you.",
        "event_data": {"scenario_type": "relationship", "complexity": "medium", "theme": "relationship"},
        "questions": SCENARIO_CHALLENGE_QUESTIONS,
    }),
    EventType.VALUES_ALIGNMENT: MappingProxyType({
        "title": "Core Values Explorer",
        "description": "Discover what matters most to you and find others who share your fundamental values.",
        "event_data": {"value_categories": ["ethics", "lifestyle", "future"], "depth": "deep"},
        "questions": VALUES_ALIGNMENT_QUESTIONS,
    }),
    EventType.LIFESTYLE_MATCHING: MappingProxyType({
        "title": "Lifestyle Compatibility",
        "description": "Daily routines, habits and preferences. Find someone who fits your lifestyle.",
        "event_data": {"focus_areas": ["daily_routine", "leisure", "health"]},
        "questions": LIFESTYLE_MATCHING_QUESTIONS,
    }),
})

if set(EVENT_TEMPLATES) != set(EventType):
    raise RuntimeError("Every event type needs a template")
