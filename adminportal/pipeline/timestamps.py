"""Timestamp parsing shared by list sorting and export formatting."""

from __future__ import annotations

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional

# Epoch numbers above this are milliseconds (year ~5138 in seconds).
_MILLIS_THRESHOLD = 10**11


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse ISO-8601, RFC 2822 or epoch values into an aware UTC datetime.

    Returns None for anything unparsable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        seconds = value / 1000.0 if abs(value) >= _MILLIS_THRESHOLD else float(value)
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        dt = _parse_text(raw)
        if dt is None:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _parse_text(raw: str) -> Optional[datetime]:
    iso = raw[:-1] + "+00:00" if raw.endswith(("Z", "z")) else raw
    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(raw)
    except (TypeError, ValueError, IndexError):
        pass
    try:
        number = float(raw)
    except ValueError:
        return None
    return parse_timestamp(number)


def timestamp_sort_key(value: Any) -> tuple[int, float]:
    """Sort key for descending timestamp order.

    Parsed values sort by time; missing or unparsable values collapse to the
    epoch and are ranked below every parsed value.
    """
    dt = parse_timestamp(value)
    if dt is None:
        return (0, 0.0)
    return (1, dt.timestamp())


def format_local(value: Any, placeholder: str = "-") -> str:
    """Render a timestamp as a locale date-time string in local time."""
    dt = parse_timestamp(value)
    if dt is None:
        return placeholder
    return dt.astimezone().strftime("%x %X")
