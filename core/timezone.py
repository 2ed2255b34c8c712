"""
UTC timestamp conversion utilities.

Event dates travel through the API as "YYYY-MM-DDTHH:MM:SSZ" strings and are
stored as timezone-aware datetimes.
"""

from datetime import datetime, timezone

UTC_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_utc_timestamp(value: str | None) -> datetime | None:
    """
    Parse a "YYYY-MM-DDTHH:MM:SSZ" string into an aware UTC datetime.

    Returns None for None; raises ValueError for any other shape.
    """
    if value is None:
        return None
    return datetime.strptime(value, UTC_FORMAT).replace(tzinfo=timezone.utc)


def format_utc_timestamp(value: datetime | None) -> str | None:
    """
    Format a datetime as "YYYY-MM-DDTHH:MM:SSZ".

    Naive datetimes (SQLite hands these back) are taken to be UTC already.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(UTC_FORMAT)
