"""Stopwatch state machine for capturing chug times.

The stopwatch turns clock samples into an elapsed-seconds value that can be
submitted interchangeably with a manually typed time.

Architecture:
- State is one of 'idle' | 'running' | 'stopped'; mode is 'stopwatch' | 'manual'
- Elapsed time of record is always computed from the start instant, never
  accumulated from ticks, so tick jitter cannot leak into a stored result
- While running, a periodic tick task (asyncio) refreshes the displayed value
  through an optional on_tick callback; it is cancelled on stop(), reset(),
  mode switches and close()

State transitions:
- start(): idle|stopped -> running (re-zeros elapsed; stopwatch mode only)
- stop(): running -> stopped (elapsed frozen)
- reset(): idle|stopped -> idle (elapsed = 0)
- set_manual(value): idle|stopped -> idle|stopped in manual mode
- toggle_mode(): flips stopwatch/manual, stopping first when running
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Literal

from .clock import Clock, MonotonicClock
from .errors import InvalidTransition, ValidationError
from .validation import coerce_time

logger = logging.getLogger(__name__)

StopwatchState = Literal["idle", "running", "stopped"]
EntryMode = Literal["stopwatch", "manual"]

DEFAULT_TICK_INTERVAL = 0.01


class Stopwatch:
    def __init__(
        self,
        clock: Clock | None = None,
        *,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        on_tick: Callable[[float], Any] | None = None,
    ) -> None:
        self._clock = clock or MonotonicClock()
        self.tick_interval = tick_interval
        self.on_tick = on_tick
        self._state: StopwatchState = "idle"
        self._mode: EntryMode = "stopwatch"
        self._elapsed = 0.0
        self._started_at: float | None = None
        self._ticker: asyncio.Task | None = None

    @property
    def state(self) -> StopwatchState:
        return self._state

    @property
    def mode(self) -> EntryMode:
        return self._mode

    @property
    def running(self) -> bool:
        return self._state == "running"

    @property
    def elapsed(self) -> float:
        """Current elapsed seconds; sampled live while running."""
        if self._state == "running":
            return self._sample()
        return self._elapsed

    def start(self) -> None:
        if self._mode == "manual":
            raise InvalidTransition("start", "in manual mode")
        if self._state == "running":
            raise InvalidTransition("start", self._state)
        self._elapsed = 0.0
        self._started_at = self._clock.now()
        self._state = "running"
        self._start_ticker()
        logger.debug("stopwatch started")

    def stop(self) -> float:
        """Freeze and return the elapsed time of record."""
        if self._state != "running":
            raise InvalidTransition("stop", self._state)
        self._cancel_ticker()
        self._elapsed = self._sample()
        self._started_at = None
        self._state = "stopped"
        logger.debug(f"stopwatch stopped at {self._elapsed:.3f}s")
        return self._elapsed

    def reset(self) -> None:
        if self._state == "running":
            raise InvalidTransition("reset", self._state)
        self._cancel_ticker()
        self._elapsed = 0.0
        self._started_at = None
        self._state = "idle"

    def set_manual(self, value: Any) -> float:
        """Override elapsed with a typed value and switch to manual entry.

        Empty input clears the value to 0. Negative, non-numeric, NaN and
        infinite input is rejected.
        """
        if self._state == "running":
            raise InvalidTransition("set a manual time", self._state)
        if value is None or (isinstance(value, str) and not value.strip()):
            parsed = 0.0
        else:
            parsed = coerce_time(value)
            if parsed is None:
                raise ValidationError("time must be a finite number", field="time")
            if parsed < 0:
                raise ValidationError("time cannot be negative", field="time")
        self._mode = "manual"
        self._elapsed = parsed
        self._state = "stopped" if parsed > 0 else "idle"
        return parsed

    def toggle_mode(self) -> EntryMode:
        if self._state == "running":
            self.stop()
        self._mode = "manual" if self._mode == "stopwatch" else "stopwatch"
        return self._mode

    def submission_time(self) -> float:
        """Elapsed value to submit; only valid once the timer is at rest."""
        if self._state == "running":
            raise ValidationError("stop the stopwatch before submitting", field="time")
        if self._elapsed <= 0:
            raise ValidationError("time must be greater than 0", field="time")
        return self._elapsed

    def close(self) -> None:
        """Teardown: cancel any pending tick. Safe to call repeatedly."""
        self._cancel_ticker()
        if self._state == "running":
            self._elapsed = self._sample()
            self._started_at = None
            self._state = "stopped"

    def __enter__(self) -> "Stopwatch":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _sample(self) -> float:
        if self._started_at is None:
            return self._elapsed
        # Monotonic clocks cannot go backwards; clamp anyway for fake clocks
        return max(0.0, self._clock.now() - self._started_at)

    def _start_ticker(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop: nothing to refresh, stop() still computes the value.
            return
        self._ticker = loop.create_task(self._tick(self._started_at))

    def _cancel_ticker(self) -> None:
        ticker, self._ticker = self._ticker, None
        if ticker is not None and not ticker.done():
            ticker.cancel()

    async def _tick(self, started_at: float | None) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)
            # A restart replaces _started_at; a stale task must not report.
            if self._state != "running" or self._started_at != started_at:
                return
            value = self._sample()
            if self.on_tick is None:
                continue
            try:
                self.on_tick(value)
            except Exception:
                # Display refresh only; the time of record is unaffected.
                logger.exception("stopwatch on_tick callback failed")
