"""Tests for frame clocks."""

import pytest

from frameloop import Clock, RealClock, VirtualClock


class TestRealClock:
    """Wall-clock time in ms."""

    def test_starts_near_zero(self) -> None:
        clock = RealClock()
        assert 0.0 <= clock.now() < 1000.0

    def test_monotonic(self) -> None:
        clock = RealClock()
        first = clock.now()
        assert clock.now() >= first

    def test_is_clock(self) -> None:
        assert isinstance(RealClock(), Clock)


class TestVirtualClock:
    """Clock that only moves when told to."""

    def test_start(self) -> None:
        assert VirtualClock().now() == 0.0
        assert VirtualClock(start=250.0).now() == 250.0

    def test_advance(self) -> None:
        clock = VirtualClock()
        assert clock.advance(16.0) == 16.0
        assert clock.advance(4.0) == 20.0
        assert clock.now() == 20.0

    def test_advance_negative_raises(self) -> None:
        clock = VirtualClock()
        with pytest.raises(ValueError, match="negative"):
            clock.advance(-1.0)

    def test_set(self) -> None:
        clock = VirtualClock()
        clock.set(100.0)
        assert clock.now() == 100.0

    def test_set_backwards_raises(self) -> None:
        clock = VirtualClock(start=50.0)
        with pytest.raises(ValueError):
            clock.set(10.0)

    def test_is_clock(self) -> None:
        assert isinstance(VirtualClock(), Clock)
