"""Scheduler: the clock, frame loop and tick sequence behind every animation.

One Scheduler owns the clock (real or virtual), the geometry provider, the
document, the observer registries and the registry of animations. It is
made current with ``with Scheduler() as s:``; code that does not pass a
scheduler explicitly uses ``get_scheduler()``.

Example:
    scheduler = get_scheduler()
    scheduler.enable_virtual_clock()
    el = scheduler.document.create_element("div")
    anim = el.animate([{"opacity": 0}, {"opacity": 1}], 1000)
    scheduler.advance(600)
    el.style.get_property_value("opacity")  # "1"
"""

from __future__ import annotations

import logging
import threading
from contextvars import ContextVar, Token
from typing import TYPE_CHECKING, Callable, Iterable
from weakref import WeakSet

from frameloop import Clock, FrameRunner, RealClock, VirtualClock
from wamock.applier import StyleApplier
from wamock.config import MockConfig
from wamock.errors import InvalidStateError
from wamock.geometry import GeometryProvider
from wamock.model import Document
from wamock.observers import IntersectionRegistry, ResizeRegistry

if TYPE_CHECKING:
    from wamock.animation import Animation
    from wamock.timelines import AnimationTimeline

logger = logging.getLogger(__name__)

_current: ContextVar[Scheduler | None] = ContextVar("wamock_scheduler", default=None)
_default: Scheduler | None = None
_default_lock = threading.Lock()


class Scheduler:
    """Drives timelines and animations from a real or virtual clock.

    Every tick runs the same ordered steps: (1) read the clock, (2) compute
    the current time of document timelines and of scroll/view timelines that
    reported a geometry change, (3) start pending animations and resolve and
    apply styles of the affected ones in registration order, (4) settle
    deferreds and dispatch events, inside the configured ``act`` hook.

    Args:
        config: Settings; defaults to ``MockConfig.from_env()``.
        viewport_width: Width of the document's viewport in px.
        viewport_height: Height of the document's viewport in px.
    """

    def __init__(
        self,
        config: MockConfig | None = None,
        *,
        viewport_width: float = 1024.0,
        viewport_height: float = 768.0,
    ) -> None:
        self.config = config if config is not None else MockConfig.from_env()
        self.lock = threading.RLock()
        self.applier = StyleApplier()
        self.geometry = GeometryProvider(self.dispatch)
        self.intersection = IntersectionRegistry(self)
        self.resize = ResizeRegistry(self)
        self._viewport = (viewport_width, viewport_height)
        self.document = Document(self, viewport_width, viewport_height)

        self._clock: Clock = RealClock()
        self._virtual = False
        self._animations: list[Animation] = []
        self._dirty: WeakSet[AnimationTimeline] = WeakSet()
        self._ticking = False
        self._tick_requested = False
        self._runner: FrameRunner | None = None
        self._tokens: list[Token[Scheduler | None]] = []
        self.ticks = 0

    def __repr__(self) -> str:
        mode = "virtual" if self._virtual else "real"
        return f"Scheduler({mode}, now={self.now():.3f}, animations={len(self.animations())})"

    def __enter__(self) -> Scheduler:
        self._tokens.append(_current.set(self))
        return self

    def __exit__(self, *exc: object) -> None:
        _current.reset(self._tokens.pop())

    # Clock --------------------------------------------------------------------

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def virtual(self) -> bool:
        return self._virtual

    def now(self) -> float:
        """Elapsed time in ms."""
        return self._clock.now()

    def enable_virtual_clock(self, start: float = 0.0) -> None:
        """Switch to a virtual clock that only moves on advance()."""
        with self.lock:
            self._warn_if_live("enable_virtual_clock")
            self._stop_runner()
            self._clock = VirtualClock(start)
            self._virtual = True
            logger.debug("Virtual clock enabled at %s ms", start)

    def restore_real_clock(self) -> None:
        """Switch back to the wall clock and its frame loop."""
        with self.lock:
            self._warn_if_live("restore_real_clock")
            self._clock = RealClock()
            self._virtual = False
            logger.debug("Real clock restored")
            self._ensure_frames()

    def advance(self, ms: float) -> float:
        """Move the virtual clock forward by ``ms``, one frame at a time.

        Ticks after every frame step; the last step lands exactly on the
        target. ``advance(0)`` runs a single tick, and so does any advance
        while no animation is registered. Returns the new time.

        Raises:
            ValueError: ms is negative.
            InvalidStateError: the virtual clock is not enabled.
        """
        if ms < 0:
            raise ValueError(f"Cannot advance the clock by a negative amount ({ms})")
        with self.lock:
            if not self._virtual:
                raise InvalidStateError(
                    "advance() needs the virtual clock; call enable_virtual_clock() first"
                )
            clock = self._clock
            assert isinstance(clock, VirtualClock)
            target = clock.now() + ms
            if ms == 0 or not self._animations:
                clock.set(target)
                self.tick()
                return clock.now()
            step = self.config.frame_duration
            while clock.now() < target:
                clock.set(min(clock.now() + step, target))
                self.tick()
            return clock.now()

    def _warn_if_live(self, action: str) -> None:
        live = [a for a in self.animations() if not a._idle]
        if live:
            logger.warning(
                "%s called with %d live animation(s); their timing is undefined",
                action,
                len(live),
            )

    # Registry -----------------------------------------------------------------

    def animations(self) -> list[Animation]:
        """Registered animations, in registration order.

        Registration holds a strong reference, so a playing animation stays
        alive without the caller keeping one. cancel() and reset() release it.
        """
        return list(self._animations)

    def register(self, animation: Animation) -> None:
        with self.lock:
            if animation not in self._animations:
                self._animations.append(animation)
            self._ensure_frames()

    def unregister(self, animation: Animation) -> None:
        with self.lock:
            if animation in self._animations:
                self._animations.remove(animation)

    def invalidate(self, timeline: AnimationTimeline) -> None:
        """Mark a timeline's geometry as changed and update its animations."""
        with self.lock:
            self._dirty.add(timeline)
            self.tick()

    # Ticks --------------------------------------------------------------------

    def tick(self) -> None:
        """Run one tick. A tick requested while ticking runs after it."""
        with self.lock:
            if self._ticking:
                self._tick_requested = True
                return
            self._ticking = True
            try:
                while True:
                    self._tick_requested = False
                    self._run_tick()
                    if not self._tick_requested:
                        break
            finally:
                self._ticking = False

    def _run_tick(self) -> None:
        now = self._clock.now()
        self.ticks += 1
        dirty = set(self._dirty)
        self._dirty.clear()

        affected = [
            a
            for a in self.animations()
            if not a.timeline.is_progress_based or a.timeline in dirty or a.pending
        ]
        times: dict[int, float | None] = {}
        for animation in affected:
            timeline = animation.timeline
            if id(timeline) not in times:
                times[id(timeline)] = timeline.time_value()

        settlements: list[Callable[[], None]] = []
        for animation in affected:
            animation._tick(times[id(animation.timeline)], settlements)

        logger.debug(
            "Tick %d at %.3f ms: %d animation(s), %d settlement(s)",
            self.ticks,
            now,
            len(affected),
            len(settlements),
        )
        self.settle(settlements)

    def dispatch(self, callback: Callable[[], None]) -> None:
        """Run callback inside the configured ``act`` hook, or directly."""
        act = self.config.act
        if act is not None:
            act(callback)
        else:
            callback()

    def settle(self, settlements: Iterable[Callable[[], None]]) -> None:
        """Run settlement callbacks in order, in one dispatch.

        A callback that raises does not stop the ones after it; the first
        error is re-raised once all have run.
        """
        pending = list(settlements)
        if not pending:
            return

        def run() -> None:
            errors: list[Exception] = []
            for settlement in pending:
                try:
                    settlement()
                except Exception as exc:
                    logger.debug("Settlement %r raised %r", settlement, exc)
                    errors.append(exc)
            if errors:
                raise errors[0]

        self.dispatch(run)

    # Real frame loop ----------------------------------------------------------

    def _needs_frames(self) -> bool:
        return any(a.needs_frames() for a in self.animations())

    def _ensure_frames(self) -> None:
        if self._virtual or not self._needs_frames():
            return
        if self._runner is not None and self._runner.running:
            return
        self._runner = FrameRunner(self._frame, fps=self.config.fps)
        self._runner.start()

    def _frame(self) -> bool:
        with self.lock:
            if self._virtual:
                return False
            self.tick()
            return self._needs_frames()

    def _stop_runner(self) -> None:
        if self._runner is not None:
            self._runner.stop()
            self._runner = None

    def wait_for_frames(self, timeout: float | None = None) -> bool:
        """Block until the real frame loop stops. Returns False on timeout."""
        runner = self._runner
        if runner is None:
            return True
        return runner.wait(timeout)

    # Isolation ----------------------------------------------------------------

    def reset(self) -> None:
        """Cancel animations and clear all state; back to the real clock."""
        with self.lock:
            for animation in self.animations():
                animation.cancel()
            self._animations.clear()
            self._dirty.clear()
            self._stop_runner()
            self.geometry.clear()
            self.intersection.clear()
            self.resize.clear()
            self.document.clear_animations()
            self.document = Document(self, *self._viewport)
            self.config = MockConfig.from_env()
            self._clock = RealClock()
            self._virtual = False
            self.ticks = 0
            logger.debug("Scheduler reset")


def get_scheduler() -> Scheduler:
    """The current scheduler, or the process-wide default one."""
    scheduler = _current.get()
    if scheduler is not None:
        return scheduler
    global _default
    with _default_lock:
        if _default is None:
            _default = Scheduler()
        return _default


def get_document() -> Document:
    return get_scheduler().document


def enable_virtual_clock(start: float = 0.0) -> None:
    get_scheduler().enable_virtual_clock(start)


def advance(ms: float) -> float:
    return get_scheduler().advance(ms)


def restore_real_clock() -> None:
    get_scheduler().restore_real_clock()


def reset() -> None:
    get_scheduler().reset()
