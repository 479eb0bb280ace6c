from .compatibility import (
    BehavioralPatterns,
    BehavioralPatternsProvider,
    CompatibilityExplanation,
    CompatibilityResult,
    ComponentScores,
    DetailedAnalysis,
    ProfileSnapshot,
    RankedCandidate,
)
from .interaction import DailyLimits, InteractionCreate, InteractionRead, InteractionResponse, MatchRead
from .event import (
    AcceptanceResponse,
    CandidateMatchRead,
    EventMatchRead,
    EventResponseIn,
    ParticipationRead,
    ProcessEventResponse,
    SubmitResponsesRequest,
)

__all__ = [
    "BehavioralPatterns", "BehavioralPatternsProvider", "CompatibilityExplanation",
    "CompatibilityResult", "ComponentScores", "DetailedAnalysis", "ProfileSnapshot", "RankedCandidate",
    "DailyLimits", "InteractionCreate", "InteractionRead", "InteractionResponse", "MatchRead",
    "AcceptanceResponse", "CandidateMatchRead", "EventMatchRead", "EventResponseIn",
    "ParticipationRead", "ProcessEventResponse", "SubmitResponsesRequest",
]
