"""Clock sources: monotonic seconds for the stopwatch, UTC wall time for records."""
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> float:
        ...


class MonotonicClock:
    """Monotonic seconds; unaffected by wall-clock adjustments."""

    def now(self) -> float:
        return time.monotonic()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
