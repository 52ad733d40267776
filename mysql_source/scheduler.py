"""Recurring tick that can be abandoned through a cancel event."""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from enum import Enum
from threading import Event


class WaitOutcome(str, Enum):
    """Which stimulus ended a :meth:`Ticker.wait` call."""

    TICKED = "ticked"
    CANCELLED = "cancelled"


class Ticker:
    """Fixed-interval ticker.

    Ticks land on the grid ``start + k * interval``. If the caller arrives
    after one or more grid points have passed, a single tick fires at once
    and the missed ones are dropped, so a slow consumer never receives a
    burst of ticks.
    """

    def __init__(
        self, interval: float, *, clock: Callable[[], float] = time.monotonic
    ) -> None:
        if interval <= 0:
            raise ValueError("ticker interval must be positive")
        self.interval = float(interval)
        self._clock = clock
        self._next_tick = clock() + self.interval
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    def wait(self, cancel_event: Event) -> WaitOutcome:
        """Block until the next tick or until ``cancel_event`` is set.

        Cancellation wins when both are ready. A stopped ticker never ticks.
        """

        if cancel_event.is_set():
            return WaitOutcome.CANCELLED
        if self._stopped:
            cancel_event.wait()
            return WaitOutcome.CANCELLED

        remaining = self._next_tick - self._clock()
        if remaining > 0 and cancel_event.wait(remaining):
            return WaitOutcome.CANCELLED

        now = self._clock()
        missed = max(1, math.floor((now - self._next_tick) / self.interval) + 1)
        self._next_tick += missed * self.interval
        return WaitOutcome.TICKED

    def stop(self) -> None:
        self._stopped = True


__all__ = ["Ticker", "WaitOutcome"]
