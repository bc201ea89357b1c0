"""Time utilities for consistent timestamp handling."""

import os
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

DEFAULT_PROPERTY_TIMEZONE = "Asia/Jerusalem"


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def property_timezone() -> ZoneInfo:
    """Return the zone the property's calendar days are counted in."""
    return ZoneInfo(os.environ.get("PROPERTY_TIMEZONE", DEFAULT_PROPERTY_TIMEZONE))


def property_today() -> date:
    """Return today's date at the property (start-of-day comparisons)."""
    return utc_now().astimezone(property_timezone()).date()
