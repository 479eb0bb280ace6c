from .compatibility_service import CompatibilityScoringService
from .match_explanation_service import MatchExplanationService
from .quota_service import QuotaService
from .match_service import MatchService
from .interaction_service import InteractionService
from .event_matchmaking_service import EventMatchmakingService
from .match_acceptance_service import MatchAcceptanceService
from .discovery_service import DiscoveryService
from .event_participation_service import EventParticipationService

__all__ = [
    "CompatibilityScoringService",
    "MatchExplanationService",
    "QuotaService",
    "MatchService",
    "InteractionService",
    "EventMatchmakingService",
    "MatchAcceptanceService",
    "DiscoveryService",
    "EventParticipationService",
]
