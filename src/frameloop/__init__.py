"""Generic frame clock and frame loop library."""

from frameloop.clock import Clock, RealClock, VirtualClock
from frameloop.runner import FrameRunner, TickFn

__all__ = ["Clock", "RealClock", "VirtualClock", "FrameRunner", "TickFn"]

__version__ = "0.1.0"
