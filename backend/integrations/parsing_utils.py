"""Datetime parsing helpers for bridge payloads.

The bridge reports instants as Unix epoch seconds, sometimes encoded as
strings. Transaction records may also carry ISO dates when replayed from
fixtures or older exports.
"""

from datetime import date, datetime, timezone


def parse_unix_timestamp(value) -> datetime | None:
    """Parse a Unix epoch timestamp to a UTC-aware datetime.

    Args:
        value: An int, float, string-encoded number, or None.

    Returns:
        A timezone-aware UTC datetime, or None if the value cannot be parsed.
    """
    if value is None or value == "":
        return None
    try:
        return datetime.fromtimestamp(int(float(value)), tz=timezone.utc)
    except (ValueError, TypeError, OverflowError, OSError):
        return None


def parse_bridge_date(value) -> date | None:
    """Parse a transaction date from epoch seconds, an ISO string, or a date.

    Args:
        value: Epoch seconds (int/float/str), ``YYYY-MM-DD`` string,
            date/datetime object, or None.

    Returns:
        The calendar date in UTC, or None if the value cannot be parsed.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and "-" in value:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    parsed = parse_unix_timestamp(value)
    return parsed.date() if parsed else None


def ensure_utc(dt: datetime) -> datetime:
    """Ensure a datetime is timezone-aware (UTC).

    SQLite drops tzinfo on round-trip, so stored naive values are UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt
