import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round-trip)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def resolve_timezone(tz_name: Optional[str]) -> ZoneInfo:
    """
    Return the ZoneInfo for an IANA name, falling back to UTC.

    Args:
        tz_name: Timezone name stored on the user (may be None or invalid)

    Returns:
        ZoneInfo instance
    """
    try:
        return ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone '%s', falling back to UTC", tz_name)
        return ZoneInfo("UTC")


def local_day_bounds(tz_name: Optional[str], now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """
    Return the UTC start/end of the local calendar day containing ``now``.

    Args:
        tz_name: User's IANA timezone
        now: Reference instant (defaults to the current time)

    Returns:
        Tuple of (start_utc, end_utc), end exclusive

    Example:
        start, end = local_day_bounds("America/New_York")
        counts = await repo.count_by_kind_between(db, actor_id, start, end)
    """
    tz = resolve_timezone(tz_name)
    local_now = ensure_utc(now or utcnow()).astimezone(tz)
    start_local = datetime.combine(local_now.date(), datetime.min.time(), tzinfo=tz)
    end_local = datetime.combine(local_now.date() + timedelta(days=1), datetime.min.time(), tzinfo=tz)
    return start_local.astimezone(timezone.utc), end_local.astimezone(timezone.utc)


def age_gap_years(dob_a: Optional[date], dob_b: Optional[date]) -> Optional[float]:
    """Absolute age difference in years, or None when either birth date is unknown."""
    if dob_a is None or dob_b is None:
        return None
    return abs((dob_a - dob_b).days) / 365.25
