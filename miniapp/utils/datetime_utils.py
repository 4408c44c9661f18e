"""
Timezone-aware datetime utilities.
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Get current UTC time with timezone awareness."""
    return datetime.now(timezone.utc)


def to_iso_string(dt: Optional[datetime] = None) -> str:
    """
    Convert datetime to ISO 8601 string with Z suffix.

    Sub-second precision is kept as-is so that parsing the string back
    yields an equal datetime.

    Example:
        >>> to_iso_string(datetime(2025, 1, 15, 10, 30, 45, tzinfo=timezone.utc))
        '2025-01-15T10:30:45Z'
    """
    if dt is None:
        dt = utc_now()

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    iso_str = dt.astimezone(timezone.utc).isoformat()
    if iso_str.endswith('+00:00'):
        return iso_str[:-6] + 'Z'
    return iso_str


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
