"""Calendar helpers: seasons, week buckets and timestamp parsing."""

import math
from datetime import datetime, timezone

SECONDS_PER_WEEK = 7 * 24 * 60 * 60


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def current_season(now: datetime | None = None) -> str:
    """Season for a date using calendar-quarter buckets.

    Jan-Mar is winter, Apr-Jun spring, Jul-Sep summer, Oct-Dec fall. This is
    deliberately not the astronomical or meteorological split; stored
    entries depend on these exact buckets.
    """
    month_index = (now or utc_now()).month - 1
    if month_index < 3:
        return "winter"
    if month_index < 6:
        return "spring"
    if month_index < 9:
        return "summer"
    return "fall"


def week_of_year(now: datetime | None = None) -> int:
    """Number of started weeks since January 1st of the same year."""
    now = now or utc_now()
    start = now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    return math.ceil((now - start).total_seconds() / SECONDS_PER_WEEK)


def parse_timestamp(value: datetime | str | None) -> datetime | None:
    """Parse an ISO-8601 string (or pass a datetime through) as aware UTC.

    Naive values are assumed to be UTC. Empty or unparsable input yields None.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_iso(value: datetime) -> str:
    """Serialize a datetime as an ISO-8601 UTC string."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()
