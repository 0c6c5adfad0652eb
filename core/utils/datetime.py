"""Datetime utilities for common operations."""

from datetime import datetime, date, timedelta, timezone
from typing import Callable, Optional

# Injected wherever "now" matters so tests can pin time
Clock = Callable[[], datetime]


def now() -> datetime:
    """Get current datetime in UTC."""
    return datetime.now(timezone.utc)


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to a naive datetime read back from storage.

    Stored values are always written in UTC, so a missing tzinfo means UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_instant(value: str | datetime) -> datetime:
    """
    Parse an ISO-8601 instant that carries a zone designator.

    Args:
        value: ISO string such as ``2030-05-01T09:00:00Z`` or ``...+02:00``

    Returns:
        Timezone-aware datetime normalized to UTC

    Raises:
        ValueError: If the value is malformed or has no zone designator
    """
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            raise ValueError(f"Invalid datetime: {value}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        raise ValueError(
            "Datetime must include a timezone offset (e.g. 2030-05-01T09:00:00Z)"
        )
    return dt.astimezone(timezone.utc)


def add_days(dt: datetime | date, days: int) -> datetime | date:
    """
    Add days to a date or datetime.

    Args:
        dt: Date or datetime
        days: Number of days to add (can be negative)

    Returns:
        New date or datetime
    """
    return dt + timedelta(days=days)


def is_past(dt: datetime, reference: Optional[datetime] = None) -> bool:
    """
    Check if datetime is in the past.

    Args:
        dt: Datetime to check
        reference: Point in time to compare against (defaults to now)

    Returns:
        True if dt is before the reference
    """
    reference = reference or now()
    return ensure_aware(dt) < ensure_aware(reference)
