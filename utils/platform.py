"""
Platform Utilities - timezone-aware clocks for credit period rollovers.

Provider quotas reset on the provider's calendar (daily or monthly), not on
the server's. All rollover code should use now_in()/period_key() with the
configured timezone instead of datetime.now()/date.today() so behavior is
the same on servers running in UTC or any other zone.
"""
from datetime import datetime, timezone

import pytz


PERIODS = ("daily", "monthly", "none")


def get_timezone(name: str = "UTC"):
    """Resolve a tz database name. Unknown names fall back to UTC."""
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def utc_now() -> datetime:
    """Current aware datetime in UTC."""
    return datetime.now(timezone.utc)


def now_in(tz_name: str = "UTC") -> datetime:
    """Current datetime in the given timezone regardless of server timezone."""
    return datetime.now(get_timezone(tz_name))


def period_key(moment: datetime, period: str) -> str:
    """
    Identify the credit period a moment belongs to.

    Two moments share a key iff they fall in the same period, so a change of
    key means the provider quotas have rolled over.

    Args:
        moment: Aware datetime, already converted to the quota timezone
        period: "daily", "monthly" or "none"
    """
    if period == "daily":
        return moment.strftime("%Y-%m-%d")
    if period == "monthly":
        return moment.strftime("%Y-%m")
    if period == "none":
        return "fixed"
    raise ValueError(f"Unknown credit period '{period}', expected one of {PERIODS}")
