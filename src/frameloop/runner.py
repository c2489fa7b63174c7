"""Generic frame loop runner driven by threading timers."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable

TickFn = Callable[[], bool]


@dataclass
class FrameRunner:
    """Frame loop runner.

    Calls ``tick_fn`` once per frame on a timer thread. The loop keeps going
    while ``tick_fn`` returns True and stops itself on the first False.
    """

    tick_fn: TickFn
    fps: float = 60.0

    _running: bool = field(default=False, init=False, repr=False)
    _timer: threading.Timer | None = field(default=None, init=False, repr=False)
    _done_event: threading.Event | None = field(default=None, init=False, repr=False)
    _frame_duration: float = field(default=0.0, init=False, repr=False)
    _frames: int = field(default=0, init=False, repr=False)

    @property
    def running(self) -> bool:
        return self._running

    @property
    def frames(self) -> int:
        """Number of frames ticked since the last start()."""
        return self._frames

    def start(self) -> None:
        """Start the loop. The first frame runs one frame duration from now."""
        if self._running:
            return
        if self.fps <= 0:
            raise ValueError(f"fps must be positive, got {self.fps}")
        self._running = True
        self._frames = 0
        self._frame_duration = 1.0 / self.fps
        self._done_event = threading.Event()
        self._arm_timer()

    def _arm_timer(self) -> None:
        self._timer = threading.Timer(self._frame_duration, self._run_frame)
        self._timer.daemon = True
        self._timer.start()

    def _run_frame(self) -> None:
        if not self._running:
            self._finish()
            return

        self._frames += 1
        try:
            keep_going = self.tick_fn()
        except BaseException:
            self._finish()
            raise

        if not keep_going or not self._running:
            self._finish()
            return

        self._arm_timer()

    def _finish(self) -> None:
        self._running = False
        self._timer = None
        if self._done_event is not None:
            self._done_event.set()

    def stop(self) -> None:
        self._running = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._done_event is not None:
            self._done_event.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the loop stops. Returns False on timeout."""
        if self._done_event is None:
            return True
        return self._done_event.wait(timeout)

    def step(self) -> bool:
        """Run a single frame synchronously, outside the timer loop."""
        return self.tick_fn()
