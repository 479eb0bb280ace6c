# Utilities package
from .pairs import MatchKey, canonical_pair
from .time import age_gap_years, ensure_utc, local_day_bounds, utcnow

__all__ = [
    "MatchKey",
    "canonical_pair",
    "age_gap_years",
    "ensure_utc",
    "local_day_bounds",
    "utcnow",
]
