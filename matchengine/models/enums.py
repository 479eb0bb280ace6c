import enum

from sqlalchemy import Enum


class AttachmentStyle(str, enum.Enum):
    SECURE = "secure"
    ANXIOUS = "anxious"
    AVOIDANT = "avoidant"
    MIXED = "mixed"


class Trait(str, enum.Enum):
    OPENNESS = "openness"
    CONSCIENTIOUSNESS = "conscientiousness"
    EXTRAVERSION = "extraversion"
    AGREEABLENESS = "agreeableness"
    NEUROTICISM = "neuroticism"


class InteractionKind(str, enum.Enum):
    LIKE = "like"
    PASS = "pass"
    SUPER_LIKE = "super_like"
    BLOCK = "block"
    REPORT = "report"


class EventType(str, enum.Enum):
    PERSONALITY_QUIZ = "personality_quiz"
    SCENARIO_CHALLENGE = "scenario_challenge"
    VALUES_ALIGNMENT = "values_alignment"
    LIFESTYLE_MATCHING = "lifestyle_matching"


class EventStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class QuestionType(str, enum.Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    SCALE = "scale"
    TEXT = "text"
    IMAGE_CHOICE = "image_choice"


class ParticipationStatus(str, enum.Enum):
    JOINED = "joined"
    COMPLETED = "completed"
    MATCHED = "matched"
    ABANDONED = "abandoned"


class AcceptanceState(str, enum.Enum):
    PENDING = "pending"
    USER_A_ACCEPTED = "user_a_accepted"
    USER_B_ACCEPTED = "user_b_accepted"
    BOTH_ACCEPTED = "both_accepted"


def enum_column(enum_cls, length: int = 32) -> Enum:
    """Non-native enum column storing member values (``"like"``, not ``"LIKE"``)."""
    return Enum(
        enum_cls,
        name=enum_cls.__name__.lower(),
        native_enum=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )
