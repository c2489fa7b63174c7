"""Frame clocks: wall-clock time or explicitly advanced virtual time."""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Source of elapsed time in milliseconds."""

    def now(self) -> float:
        ...


class RealClock:
    """Milliseconds elapsed since construction, from the monotonic clock."""

    def __init__(self) -> None:
        self._origin = time.monotonic()

    def now(self) -> float:
        return (time.monotonic() - self._origin) * 1000.0

    def __repr__(self) -> str:
        return f"RealClock(now={self.now():.3f})"


class VirtualClock:
    """Clock that only moves when told to.

    Example:
        clock = VirtualClock()
        clock.advance(16.0)
        clock.now()  # 16.0
    """

    def __init__(self, start: float = 0.0) -> None:
        self._t = float(start)

    def now(self) -> float:
        return self._t

    def advance(self, delta: float) -> float:
        """Move forward by delta ms. Returns the new time."""
        if delta < 0:
            raise ValueError(f"Cannot advance a clock by a negative delta ({delta})")
        self._t += float(delta)
        return self._t

    def set(self, t: float) -> None:
        """Jump to an absolute time. Time never moves backwards."""
        if t < self._t:
            raise ValueError(f"Cannot move clock back from {self._t} to {t}")
        self._t = float(t)

    def __repr__(self) -> str:
        return f"VirtualClock(now={self._t})"
