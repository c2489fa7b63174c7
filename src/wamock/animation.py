"""Animation playback state machine with ready/finished deferreds."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Mapping

from wamock.effects import ComputedTiming, EffectTiming, KeyframeEffect
from wamock.errors import AbortError, InvalidStateError
from wamock.model import Element, Event, EventTarget
from wamock.promise import Deferred
from wamock.timelines import AnimationTimeline
from wamock.units import CSSNumberish, CSSUnitValue, percent, to_number

if TYPE_CHECKING:
    from wamock.scheduler import Scheduler

logger = logging.getLogger(__name__)

Settlement = Callable[[], None]

# Applied keyframe marker before anything has been written
_UNSET = -1


class PlayState(Enum):
    IDLE = "idle"
    PENDING = "pending"
    RUNNING = "running"
    PAUSED = "paused"
    FINISHED = "finished"


@dataclass(repr=False)
class AnimationPlaybackEvent(Event):
    """``finish``/``cancel`` event carrying the animation and timeline times."""

    current_time: float | CSSUnitValue | None = None
    timeline_time: float | CSSUnitValue | None = None


class Animation(EventTarget):
    """Binds a KeyframeEffect to a timeline and plays it.

    States: idle -> pending -> running <-> paused, running -> finished, and
    any state -> idle on cancel(). ``ready`` settles when a pending play or
    pause takes effect on a scheduler tick; ``finished`` settles when the
    animation reaches its end. Both are re-armed for every play cycle.

    Args:
        effect: The KeyframeEffect to play, or None until assigned.
        timeline: Timeline driving the animation; None means the document
            timeline.
    """

    def __init__(
        self,
        effect: KeyframeEffect | None = None,
        timeline: AnimationTimeline | None = None,
        *,
        scheduler: Scheduler | None = None,
    ) -> None:
        super().__init__()
        if scheduler is None:
            scheduler = _scheduler_for(effect, timeline)
        self.scheduler = scheduler
        self.timeline = timeline if timeline is not None else scheduler.document.timeline
        self.id = ""
        self.onfinish: Callable[[AnimationPlaybackEvent], Any] | None = None
        self.oncancel: Callable[[AnimationPlaybackEvent], Any] | None = None

        self._effect: KeyframeEffect | None = None
        self._playback_rate = 1.0
        self._start_time: float | None = None
        self._hold_time: float | None = None
        self._idle = True
        self._paused = False
        self._pending_task: str | None = None
        self._finish_notified = False
        self._applied_index = _UNSET
        self._base_styles: dict[str, str] | None = None

        self._ready: Deferred[Animation] = Deferred()
        self._ready.resolve(self)
        self._finished: Deferred[Animation] = Deferred()

        if effect is not None:
            self.effect = effect

    def __repr__(self) -> str:
        name = f" {self.id!r}" if self.id else ""
        return f"<Animation{name} {self.play_state.value}>"

    # Properties ---------------------------------------------------------------

    @property
    def effect(self) -> KeyframeEffect | None:
        return self._effect

    @effect.setter
    def effect(self, effect: KeyframeEffect | None) -> None:
        with self.scheduler.lock:
            if effect is self._effect:
                return
            if self._effect is not None:
                self._revert_styles()
                self._effect._attach(None)
            if effect is not None:
                previous = effect.animation
                if previous is not None and previous is not self:
                    previous.effect = None
                effect._attach(self)
            self._effect = effect
            self._applied_index = _UNSET
            if not self._idle:
                self.scheduler.tick()

    @property
    def play_state(self) -> PlayState:
        if self._idle:
            return PlayState.IDLE
        if self._pending_task == "play":
            return PlayState.PENDING
        if self._paused:
            return PlayState.PAUSED
        current = self._current_time()
        if current is not None and self._is_past_end(current):
            return PlayState.FINISHED
        return PlayState.RUNNING

    @property
    def pending(self) -> bool:
        return self._pending_task is not None

    @property
    def ready(self) -> Deferred[Animation]:
        return self._ready

    @property
    def finished(self) -> Deferred[Animation]:
        return self._finished

    @property
    def playback_rate(self) -> float:
        return self._playback_rate

    @playback_rate.setter
    def playback_rate(self, rate: float) -> None:
        self.update_playback_rate(rate)

    @property
    def is_scroll_driven(self) -> bool:
        return self.timeline.is_progress_based

    @property
    def current_time(self) -> float | CSSUnitValue | None:
        """Local time in ms, or a percentage on scroll/view timelines."""
        return self._as_timeline_value(self._current_time())

    @current_time.setter
    def current_time(self, value: CSSNumberish | None) -> None:
        with self.scheduler.lock:
            if value is None:
                if not self._idle:
                    raise TypeError(
                        "current_time may not be changed from resolved to unresolved"
                    )
                return
            if self.is_scroll_driven:
                raise InvalidStateError(
                    "Cannot seek an animation attached to a scroll-driven timeline"
                )
            seek = to_number(value)
            if seek is None:
                raise TypeError(f"Invalid current_time {value!r}")
            self._seek(seek)
            self.scheduler.tick()

    @property
    def start_time(self) -> float | CSSUnitValue | None:
        return self._as_timeline_value(self._start_time)

    @start_time.setter
    def start_time(self, value: CSSNumberish | None) -> None:
        with self.scheduler.lock:
            new_start = to_number(value)
            if new_start is None:
                if self._idle:
                    return
                self._hold_time = self._current_time()
                self._start_time = None
                self._paused = True
            else:
                self._idle = False
                self._paused = False
                self._hold_time = None
                self._start_time = new_start
            if self._pending_task is not None:
                self._pending_task = None
                ready = self._ready
                self.scheduler.dispatch(lambda: ready.resolve(self))
            self.scheduler.register(self)
            self.scheduler.tick()

    # Control ------------------------------------------------------------------

    def play(self) -> None:
        """Start or resume playback.

        From idle or finished the animation rewinds to its start (its end when
        the playback rate is negative). The actual start happens on the next
        scheduler tick, which settles ``ready``.

        Raises:
            InvalidStateError: no effect, or rewinding to an infinite end.
        """
        with self.scheduler.lock:
            if self._effect is None:
                raise InvalidStateError("Cannot play an animation without an effect")
            state = self.play_state
            if state in (PlayState.PENDING, PlayState.RUNNING):
                return

            if not self.is_scroll_driven:
                self._auto_rewind()
            elif self._paused:
                self._hold_time = None
            self._idle = False
            self._paused = False
            self._start_time = None
            self._pending_task = "play"
            self._finish_notified = False
            self._rearm_ready()
            self._rearm_finished()
            logger.debug("%r play requested (was %s)", self, state.value)
            self.scheduler.register(self)

    def pause(self) -> None:
        """Freeze the current time. A no-op while idle or already paused."""
        with self.scheduler.lock:
            state = self.play_state
            if state is PlayState.IDLE:
                logger.debug("%r pause ignored: animation is idle", self)
                return
            if state is PlayState.PAUSED:
                return
            current = self._current_time()
            if current is None:
                current = 0.0 if self._playback_rate >= 0 else self._effect_end()
            self._hold_time = current
            self._start_time = None
            self._paused = True
            self._pending_task = "pause"
            if not self._ready.pending:
                self._ready = Deferred()
            logger.debug("%r paused at %s", self, current)
            self.scheduler.register(self)

    def cancel(self) -> None:
        """Go back to idle and remove this animation's styles.

        A pending ``ready`` and a pending ``finished`` are rejected with
        AbortError. Canceling an idle animation does nothing.
        """
        with self.scheduler.lock:
            if self._idle:
                return
            self._revert_styles()
            timeline_time = self.timeline.time_value()

            settlements: list[Settlement] = []
            ready, finished = self._ready, self._finished
            if ready.pending:
                settlements.append(lambda: ready.reject(AbortError()))
                self._ready = Deferred()
                self._ready.resolve(self)
            if finished.pending:
                settlements.append(lambda: finished.reject(AbortError()))
            self._finished = Deferred()

            self._idle = True
            self._paused = False
            self._pending_task = None
            self._start_time = None
            self._hold_time = None
            self._finish_notified = False
            self.scheduler.unregister(self)
            logger.debug("%r canceled", self)

            event = AnimationPlaybackEvent(
                "cancel",
                current_time=None,
                timeline_time=self._as_timeline_value(timeline_time),
            )
            settlements.append(lambda: self.dispatch_event(event))
            self.scheduler.settle(settlements)

    def finish(self) -> None:
        """Jump to the end (the start for a negative rate) and finish.

        Raises:
            InvalidStateError: playback rate is 0, or the end is infinite.
        """
        with self.scheduler.lock:
            if self._effect is None:
                raise InvalidStateError("Cannot finish an animation without an effect")
            end = self._effect_end()
            if self._playback_rate == 0 or (self._playback_rate > 0 and math.isinf(end)):
                raise InvalidStateError(
                    "Cannot finish Animation with a playback rate of zero or an "
                    "infinite target effect end"
                )
            limit = end if self._playback_rate > 0 else 0.0

            settlements: list[Settlement] = []
            if self._pending_task is not None:
                ready = self._ready
                settlements.append(lambda: ready.resolve(self))
                self._pending_task = None

            self._idle = False
            self._paused = False
            timeline_time = self.timeline.time_value()
            if self.is_scroll_driven or timeline_time is None:
                self._start_time = None
                self._hold_time = limit
            else:
                self._start_time = timeline_time - limit / self._playback_rate
                self._hold_time = None
            self.scheduler.register(self)

            self._update(timeline_time, settlements)
            self.scheduler.settle(settlements)

    def reverse(self) -> None:
        """Flip the playback direction and play."""
        with self.scheduler.lock:
            if self._effect is None:
                raise InvalidStateError("Cannot reverse an animation without an effect")
            old_rate = self._playback_rate
            current = self._current_time()
            self._set_rate_preserving(-old_rate, current)
            try:
                self.play()
            except InvalidStateError:
                self._set_rate_preserving(old_rate, current)
                raise
            self.scheduler.register(self)

    def update_playback_rate(self, rate: float) -> None:
        """Change the playback rate, keeping the current time."""
        with self.scheduler.lock:
            self._set_rate_preserving(float(rate), self._current_time())
            if not self._idle:
                self.scheduler.register(self)

    def commit_styles(self) -> None:
        """Write the currently resolved keyframe to the target's inline style.

        The written values become the base the animation reverts to. When the
        effect has no progress (e.g. after finishing with fill "none") nothing
        is written. An idle animation has nothing to resolve and raises instead
        of returning silently.

        Raises:
            InvalidStateError: the animation is idle or has no effect.
        """
        with self.scheduler.lock:
            if self._idle or self._effect is None:
                raise InvalidStateError("Cannot commit styles of an idle animation")
            target = self._effect.target
            if target is None:
                return
            progress = self.compute_effect_timing().progress
            if progress is None:
                logger.debug("%r has no effect value to commit", self)
                return
            keyframe = self._effect.resolve(progress)
            applier = self.scheduler.applier
            if self._base_styles is None:
                self._base_styles = applier.snapshot(target, self._effect.properties)
            applier.apply(target, keyframe.styles)
            for name in keyframe.styles:
                self._base_styles[name] = target.style.get_property_value(name)

    def persist(self) -> None:
        """Animations here are never auto-removed, so this does nothing."""

    # Timing -------------------------------------------------------------------

    def effective_timing(self) -> EffectTiming:
        assert self._effect is not None
        timing = self._effect.timing
        if self.is_scroll_driven:
            return timing.normalized()
        return timing

    def compute_effect_timing(self) -> ComputedTiming:
        """Computed timing of the effect at this animation's current time."""
        if self._effect is None:
            raise InvalidStateError("Animation has no effect")
        return self.effective_timing().compute(
            self._current_time(), backwards=self._playback_rate < 0
        )

    def _effect_end(self) -> float:
        if self._effect is None:
            return 0.0
        return self.effective_timing().end_time

    def _is_past_end(self, current: float) -> bool:
        if self._playback_rate > 0:
            return current >= self._effect_end()
        if self._playback_rate < 0:
            return current <= 0
        return False

    def _current_time(self, timeline_time: float | None = None) -> float | None:
        if self._hold_time is not None:
            return self._hold_time
        if self._start_time is None:
            return None
        if timeline_time is None:
            timeline_time = self.timeline.time_value()
        if timeline_time is None:
            return None
        return self._current_time_at(timeline_time, self._start_time, self._playback_rate)

    def _current_time_at(self, timeline_time: float, start: float, rate: float) -> float:
        if self.is_scroll_driven:
            rate = 1.0 if rate >= 0 else -1.0
        return (timeline_time - start) * rate

    def _as_timeline_value(self, value: float | None) -> float | CSSUnitValue | None:
        if value is None or not self.is_scroll_driven:
            return value
        return percent(value)

    def _auto_rewind(self) -> None:
        current = self._current_time()
        end = self._effect_end()
        rate = self._playback_rate
        if rate > 0 and (current is None or current < 0 or current >= end):
            self._hold_time = 0.0
        elif rate < 0 and (current is None or current <= 0 or current > end):
            if math.isinf(end):
                raise InvalidStateError("Cannot play reversed Animation with infinite target effect end")
            self._hold_time = end
        elif rate == 0 and current is None:
            self._hold_time = 0.0
        else:
            self._hold_time = current
        self._finish_notified = False

    def _seek(self, seek: float) -> None:
        timeline_time = self.timeline.time_value()
        if (
            self._paused
            or self._idle
            or self._start_time is None
            or timeline_time is None
            or self._playback_rate == 0
        ):
            self._hold_time = seek
            if self._idle:
                self._idle = False
                self._paused = True
                self.scheduler.register(self)
        else:
            self._hold_time = None
            self._start_time = timeline_time - seek / self._playback_rate
        if self._pending_task == "pause":
            self._start_time = None
        if self._finish_notified and not self._is_past_end(seek):
            self._finish_notified = False
            if not self._finished.pending:
                self._finished = Deferred()

    def _set_rate_preserving(self, rate: float, current: float | None) -> None:
        self._playback_rate = rate
        if self.is_scroll_driven or self._idle or self._paused:
            return
        timeline_time = self.timeline.time_value()
        if current is None or timeline_time is None or self._pending_task is not None:
            return
        if rate == 0:
            self._hold_time = current
            self._start_time = timeline_time
        else:
            self._hold_time = None
            self._start_time = timeline_time - current / rate

    # Scheduler hooks ----------------------------------------------------------

    def needs_frames(self) -> bool:
        """True while time-based playback still has work for the frame loop."""
        if self._idle or self._effect is None:
            return False
        if self._pending_task is not None:
            return True
        if self.is_scroll_driven or self._paused:
            return False
        return self.play_state is PlayState.RUNNING

    def _tick(self, timeline_time: float | None, settlements: list[Settlement]) -> None:
        """Run pending tasks and update styles for one scheduler tick."""
        if self._idle or self._effect is None:
            return
        if self._pending_task == "play":
            if timeline_time is None:
                return
            self._start(timeline_time)
            ready = self._ready
            settlements.append(lambda: ready.resolve(self))
        elif self._pending_task == "pause":
            self._pending_task = None
            ready = self._ready
            settlements.append(lambda: ready.resolve(self))
        self._update(timeline_time, settlements)

    def _start(self, timeline_time: float) -> None:
        self._pending_task = None
        if self.is_scroll_driven:
            self._start_time = 0.0 if self._playback_rate >= 0 else 100.0
            self._hold_time = None
        elif self._playback_rate == 0:
            self._start_time = timeline_time
        else:
            hold = self._hold_time if self._hold_time is not None else 0.0
            self._start_time = timeline_time - hold / self._playback_rate
            self._hold_time = None
        logger.debug("%r started at timeline time %s", self, timeline_time)

    def _update(self, timeline_time: float | None, settlements: list[Settlement]) -> None:
        self._update_finished_state(timeline_time, settlements)
        self._apply_styles()

    def _update_finished_state(
        self, timeline_time: float | None, settlements: list[Settlement]
    ) -> None:
        if self._paused or self._pending_task is not None:
            return
        current = self._current_time(timeline_time)
        if current is None:
            return
        if self._is_past_end(current):
            if not self.is_scroll_driven and self._playback_rate != 0:
                self._hold_time = self._effect_end() if self._playback_rate > 0 else 0.0
            if not self._finish_notified:
                self._finish_notified = True
                self._queue_finish(timeline_time, settlements)
        elif self._finish_notified:
            self._finish_notified = False
            if not self._finished.pending:
                self._finished = Deferred()
            logger.debug("%r running again", self)

    def _queue_finish(self, timeline_time: float | None, settlements: list[Settlement]) -> None:
        finished = self._finished
        event = AnimationPlaybackEvent(
            "finish",
            current_time=self.current_time,
            timeline_time=self._as_timeline_value(timeline_time),
        )
        settlements.append(lambda: finished.resolve(self))
        settlements.append(lambda: self.dispatch_event(event))
        logger.debug("%r finished", self)

    def _apply_styles(self) -> None:
        effect = self._effect
        if effect is None or effect.target is None:
            return
        progress = self.compute_effect_timing().progress
        index = None if progress is None else effect.resolve_index(progress)
        if index == self._applied_index:
            return
        target = effect.target
        applier = self.scheduler.applier
        if index is None:
            if self._base_styles is not None:
                applier.restore(target, self._base_styles)
                self._base_styles = None
        else:
            if self._base_styles is None:
                self._base_styles = applier.snapshot(target, effect.properties)
            values: dict[str, Any] = dict(self._base_styles)
            values.update(effect.keyframe_at(index).styles)
            applier.apply(target, values)
        self._applied_index = index if index is not None else _UNSET

    def _revert_styles(self) -> None:
        effect = self._effect
        if effect is not None and effect.target is not None and self._base_styles is not None:
            self.scheduler.applier.restore(effect.target, self._base_styles)
        self._base_styles = None
        self._applied_index = _UNSET

    def _rearm_ready(self) -> None:
        if not self._ready.pending:
            self._ready = Deferred()

    def _rearm_finished(self) -> None:
        if not self._finished.pending:
            self._finished = Deferred()


def _scheduler_for(
    effect: KeyframeEffect | None, timeline: AnimationTimeline | None
) -> Scheduler:
    if timeline is not None:
        return timeline.scheduler
    if effect is not None and effect.target is not None:
        return effect.target.owner_document.scheduler
    from wamock.scheduler import get_scheduler

    return get_scheduler()


def animate(
    element: Element,
    keyframes: Any,
    options: float | Mapping[str, Any] | None = None,
) -> Animation:
    """Create a KeyframeEffect and Animation for ``element`` and play it.

    ``options`` may also carry ``id`` and ``timeline``. The animation is listed
    in ``element.get_animations()`` until it finishes or is canceled.
    """
    _, extras = EffectTiming.from_options(options)
    effect_options: Any = options
    if isinstance(options, Mapping):
        effect_options = {k: v for k, v in options.items() if k not in ("id", "timeline")}
    effect = KeyframeEffect(element, keyframes, effect_options)
    animation = Animation(
        effect,
        extras.get("timeline"),
        scheduler=element.owner_document.scheduler,
    )
    if "id" in extras:
        animation.id = str(extras["id"])

    document = element.owner_document
    document.track_animation(element, animation)

    def untrack(event: Event) -> None:
        document.untrack_animation(element, animation)

    animation.add_event_listener("finish", untrack)
    animation.add_event_listener("cancel", untrack)
    animation.play()
    return animation
