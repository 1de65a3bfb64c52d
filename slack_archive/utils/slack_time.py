"""Conversions between Slack `ts` strings, datetimes and Supabase timestamps."""

from datetime import datetime, timezone
from typing import Optional


def ts_to_datetime(ts: str) -> datetime:
    """Convert a Slack ts ("1700000000.123456") to an aware UTC datetime."""
    return datetime.fromtimestamp(float(ts), tz=timezone.utc)


def datetime_to_ts(value: datetime) -> str:
    """Convert a datetime to the Slack ts format used for oldest/latest bounds."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return f"{value.timestamp():.6f}"


def parse_db_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a timestamp returned by PostgREST.
    
    `timestamp` columns come back without an offset; they are stored as UTC.
    """
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
