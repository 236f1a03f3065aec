"""Time helpers shared by the scheduling code."""

from datetime import UTC, datetime, time
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def js_weekday(value: datetime) -> int:
    """Weekday number with Sunday as 0 and Saturday as 6."""
    return value.isoweekday() % 7


def local_parts(value: datetime, tz: ZoneInfo) -> tuple[int, time]:
    """
    Split an instant into the clinic's local weekday and time of day.

    Args:
        value: Instant to split
        tz: Clinic time zone

    Returns:
        Tuple of (weekday, time of day)
    """
    local = as_utc(value).astimezone(tz)
    return js_weekday(local), local.timetz().replace(tzinfo=None)
