from __future__ import annotations

import time

from ports.time import ClockPort


class FakeClockPort(ClockPort):
    """Wall-clock using perf_counter for monotonic timing."""

    def now(self) -> float:
        return time.perf_counter()


class ManualClockPort(ClockPort):
    """Clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self._t = float(start)

    def now(self) -> float:
        return self._t

    def advance(self, seconds: float) -> None:
        self._t += float(seconds)
