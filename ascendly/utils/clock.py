"""
Clock helpers.

All persisted timestamps are ISO-8601 strings. Every function that needs
"now" accepts it as an argument so callers (and tests) can inject a clock.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

Timestamp = Union[datetime, str]

SECONDS_PER_DAY = 24 * 60 * 60


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_datetime(value: Optional[Timestamp]) -> datetime:
    """
    Coerce an ISO string or datetime into an aware datetime.

    ``None`` means "now". Naive values are taken to be UTC, and a trailing
    ``Z`` is accepted for ISO strings.
    """
    if value is None:
        return utc_now()
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def to_iso(value: Optional[Timestamp] = None) -> str:
    """Normalize a timestamp (default: now) to an ISO-8601 string."""
    return to_datetime(value).isoformat()


def day_key(value: Optional[Timestamp] = None) -> str:
    """Calendar-day bucket key (``YYYY-MM-DD``, UTC) for daily points."""
    return to_datetime(value).astimezone(timezone.utc).date().isoformat()


def previous_day_key(value: Optional[Timestamp] = None) -> str:
    """Day key of the calendar day before ``value``."""
    moment = to_datetime(value).astimezone(timezone.utc)
    return (moment - timedelta(days=1)).date().isoformat()


def days_between(start: Timestamp, end: Optional[Timestamp] = None) -> float:
    """Fractional days elapsed from ``start`` to ``end`` (may be negative)."""
    delta = to_datetime(end) - to_datetime(start)
    return delta.total_seconds() / SECONDS_PER_DAY


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (7.5 -> 8)."""
    return int(math.floor(value + 0.5))
