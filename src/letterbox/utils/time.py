"""Time utilities for path timestamps."""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

Clock = Callable[[], int]

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def now_microseconds() -> int:
    """Return the current UTC time as integer microseconds since the epoch."""
    return time.time_ns() // 1000


def microseconds_to_datetime(timestamp: int) -> datetime:
    """Return a timezone-aware datetime for a microsecond timestamp, without rounding."""
    return _EPOCH + timedelta(microseconds=timestamp)
