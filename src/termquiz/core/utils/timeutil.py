"""
Timestamp helpers.

All timestamps inside termquiz are timezone-aware datetimes. They are
written as ISO-8601 strings and parsed back with ``parse_timestamp``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """
    Coerce a YAML/JSON value into an aware datetime.

    Accepts datetimes (as produced by PyYAML for unquoted timestamps) and
    ISO-8601 strings, including a trailing "Z".

    Raises:
        ValueError: If the value is not a timestamp or has no UTC offset
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"not a timestamp: {value!r}")

    if parsed.tzinfo is None:
        raise ValueError(f"timestamp has no UTC offset: {value!r}")
    return parsed


def format_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def format_duration(total_seconds: int) -> str:
    """
    Format seconds as ``HH:MM:SS`` (hours may exceed 24).

    Example:
        >>> format_duration(4954)
        '01:22:34'
    """
    total_seconds = max(0, int(total_seconds))
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_remaining(total_seconds: int) -> str:
    """
    Compact countdown text for status lines.

    Example:
        >>> format_remaining(3725)
        '1h 02m 05s'
        >>> format_remaining(65)
        '1m 05s'
    """
    if total_seconds <= 0:
        return "0s"
    hours, rest = divmod(int(total_seconds), 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes:02d}m {seconds:02d}s"
    if minutes:
        return f"{minutes}m {seconds:02d}s"
    return f"{seconds}s"
