"""Keyframe effects: keyframe sequences, timing, and nearest-keyframe resolution."""

from __future__ import annotations

import math
import weakref
from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from wamock.easing import parse_easing
from wamock.model import Element

if TYPE_CHECKING:
    from wamock.animation import Animation

NON_STYLE_KEYS = ("offset", "composite", "easing")
DIRECTIONS = ("normal", "reverse", "alternate", "alternate-reverse")
FILL_MODES = ("auto", "none", "forwards", "backwards", "both")
COMPOSITES = ("replace", "add", "accumulate", "auto")

# camelCase option names accepted alongside the snake_case field names
_OPTION_ALIASES = {
    "endDelay": "end_delay",
    "iterationStart": "iteration_start",
}
_EXTRA_OPTIONS = ("composite", "iteration_composite", "pseudo_element", "id", "timeline")
_EXTRA_ALIASES = {
    "iterationComposite": "iteration_composite",
    "pseudoElement": "pseudo_element",
}


class Keyframe(dict):
    """One keyframe: property name -> value, plus optional offset/easing/composite.

    Example:
        Keyframe(opacity=0, offset=0.2)
    """

    @property
    def offset(self) -> float | None:
        return self.get("offset")

    @property
    def styles(self) -> dict[str, Any]:
        """The keyframe without its non-style keys."""
        return {k: v for k, v in self.items() if k not in NON_STYLE_KEYS}

    def __repr__(self) -> str:
        return f"Keyframe({dict.__repr__(self)})"


def convert_property_indexed(keyframes: Mapping[str, Any]) -> list[Keyframe]:
    """Convert ``{"opacity": [0, 1], "offset": [0, 0.8]}`` to a keyframe list.

    Values are taken index by index; a scalar counts as a one-element list and
    a shorter list simply stops contributing.
    """
    columns = {
        prop: list(values) if isinstance(values, (list, tuple)) else [values]
        for prop, values in keyframes.items()
    }
    result: list[Keyframe] = []
    index = 0
    while True:
        frame = Keyframe()
        for prop, values in columns.items():
            if index < len(values) and values[index] is not None:
                frame[prop] = values[index]
        if not frame:
            return result
        result.append(frame)
        index += 1


def to_keyframes(keyframes: Any) -> list[Keyframe]:
    if keyframes is None:
        return []
    if isinstance(keyframes, Mapping):
        return convert_property_indexed(keyframes)
    return [Keyframe(frame) for frame in keyframes]


def validate_offsets(keyframes: Iterable[Mapping[str, Any]]) -> None:
    """Raise TypeError unless offsets are None or in [0, 1] and non-decreasing."""
    last: float | None = None
    for frame in keyframes:
        offset = frame.get("offset")
        if offset is None:
            continue
        if isinstance(offset, bool) or not isinstance(offset, (int, float)):
            raise TypeError(f"Keyframe offset must be a number or None, got {offset!r}")
        if math.isnan(offset) or not 0.0 <= offset <= 1.0:
            raise TypeError(f"Offsets must be null or in the range [0,1], got {offset}")
        if last is not None and offset < last:
            raise TypeError(
                f"Offsets must be monotonically non-decreasing, got {offset} after {last}"
            )
        last = offset


def compute_offsets(keyframes: list[Keyframe]) -> list[float]:
    """Fill in missing offsets.

    The last keyframe defaults to 1, the first to 0 (a lone keyframe to 1), and
    runs of missing offsets are spaced evenly between their neighbours.
    """
    count = len(keyframes)
    offsets: list[float | None] = [frame.offset for frame in keyframes]
    if count == 0:
        return []
    if offsets[-1] is None:
        offsets[-1] = 1.0
    if count > 1 and offsets[0] is None:
        offsets[0] = 0.0

    i = 0
    while i < count:
        if offsets[i] is not None:
            i += 1
            continue
        start = i - 1
        end = i
        while offsets[end] is None:
            end += 1
        lo, hi = offsets[start], offsets[end]
        assert lo is not None and hi is not None
        step = (hi - lo) / (end - start)
        for j in range(i, end):
            offsets[j] = lo + step * (j - start)
        i = end
    return [float(o) for o in offsets]  # type: ignore[arg-type]


class Phase(Enum):
    """Which side of the active interval a local time falls on."""

    BEFORE = "before"
    ACTIVE = "active"
    AFTER = "after"
    IDLE = "idle"


@dataclass
class ComputedTiming:
    """Timing with derived values, as reported by get_computed_timing()."""

    delay: float
    end_delay: float
    fill: str
    iteration_start: float
    iterations: float
    duration: float
    direction: str
    easing: str
    active_duration: float
    end_time: float
    local_time: float | None = None
    progress: float | None = None
    current_iteration: float | None = None
    phase: Phase = Phase.IDLE


@dataclass
class EffectTiming:
    """Timing parameters of an effect. Times are in ms.

    ``duration`` may be ``"auto"``, which means 0 on a document timeline and
    the full timeline range on a scroll or view timeline.
    """

    delay: float = 0.0
    end_delay: float = 0.0
    fill: str = "auto"
    iteration_start: float = 0.0
    iterations: float = 1.0
    duration: float | str = "auto"
    direction: str = "normal"
    easing: str = "linear"

    def __post_init__(self) -> None:
        for name in ("delay", "end_delay"):
            value = getattr(self, name)
            if not _is_number(value) or not math.isfinite(value):
                raise TypeError(f"{name} must be a finite number, got {value!r}")
        if not _is_number(self.iteration_start) or not (
            math.isfinite(self.iteration_start) and self.iteration_start >= 0
        ):
            raise TypeError(
                f"iteration_start must be a non-negative number, got {self.iteration_start!r}"
            )
        if not _is_number(self.iterations) or math.isnan(self.iterations) or self.iterations < 0:
            raise TypeError(
                f"iterations must be a non-negative number, got {self.iterations!r}"
            )
        if self.duration != "auto" and (
            not _is_number(self.duration)
            or math.isnan(self.duration)
            or self.duration < 0
        ):
            raise TypeError(
                f"duration must be a non-negative number or 'auto', got {self.duration!r}"
            )
        if self.fill not in FILL_MODES:
            raise TypeError(f"Invalid fill mode {self.fill!r}")
        if self.direction not in DIRECTIONS:
            raise TypeError(f"Invalid playback direction {self.direction!r}")
        parse_easing(self.easing)

    @classmethod
    def from_options(
        cls, options: float | Mapping[str, Any] | EffectTiming | None
    ) -> tuple[EffectTiming, dict[str, Any]]:
        """Split effect options into timing and the remaining effect options.

        Options may be a duration, a mapping with snake_case or camelCase keys,
        or an EffectTiming.
        """
        if options is None:
            return cls(), {}
        if isinstance(options, EffectTiming):
            return replace(options), {}
        if _is_number(options):
            return cls(duration=options), {}  # type: ignore[arg-type]
        if not isinstance(options, Mapping):
            raise TypeError(f"Invalid effect options {options!r}")

        timing_names = {f.name for f in fields(cls)}
        timing: dict[str, Any] = {}
        extras: dict[str, Any] = {}
        for key, value in options.items():
            name = _OPTION_ALIASES.get(key, _EXTRA_ALIASES.get(key, key))
            if name in timing_names:
                timing[name] = value
            elif name in _EXTRA_OPTIONS:
                extras[name] = value
            else:
                raise TypeError(f"Unknown effect option {key!r}")
        return cls(**timing), extras

    def with_changes(self, changes: Mapping[str, Any]) -> EffectTiming:
        """Return a copy with ``changes`` applied (snake_case or camelCase keys)."""
        timing_names = {f.name for f in fields(self)}
        normalized: dict[str, Any] = {}
        for key, value in changes.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in timing_names:
                raise TypeError(f"Unknown timing property {key!r}")
            normalized[name] = value
        return replace(self, **normalized)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @property
    def iteration_duration(self) -> float:
        return 0.0 if self.duration == "auto" else float(self.duration)

    @property
    def active_duration(self) -> float:
        if self.iteration_duration == 0 or self.iterations == 0:
            return 0.0
        return self.iteration_duration * self.iterations

    @property
    def end_time(self) -> float:
        return max(self.delay + self.active_duration + self.end_delay, 0.0)

    def normalized(self, timeline_duration: float = 100.0) -> EffectTiming:
        """Timing mapped onto a progress-based timeline of ``timeline_duration``.

        An ``auto`` duration fills the whole range after the delays. Explicit
        times are scaled so the end time equals the timeline duration.
        """
        if self.duration == "auto":
            remaining = max(timeline_duration - self.delay - self.end_delay, 0.0)
            if self.iterations == 0 or math.isinf(self.iterations):
                duration = 0.0
            else:
                duration = remaining / self.iterations
            return replace(self, duration=duration)
        end_time = self.end_time
        if end_time <= 0 or math.isinf(end_time):
            return self
        scale = timeline_duration / end_time
        return replace(
            self,
            delay=self.delay * scale,
            end_delay=self.end_delay * scale,
            duration=self.iteration_duration * scale,
        )

    def compute(self, local_time: float | None, backwards: bool = False) -> ComputedTiming:
        """Evaluate the timing model at ``local_time``.

        ``backwards`` is True while the animation plays with a negative rate.
        """
        computed = ComputedTiming(
            delay=self.delay,
            end_delay=self.end_delay,
            fill="none" if self.fill == "auto" else self.fill,
            iteration_start=self.iteration_start,
            iterations=self.iterations,
            duration=self.iteration_duration,
            direction=self.direction,
            easing=self.easing,
            active_duration=self.active_duration,
            end_time=self.end_time,
            local_time=local_time,
        )
        if local_time is None:
            return computed

        phase = self._phase(local_time, backwards)
        computed.phase = phase
        active_time = self._active_time(local_time, phase)
        if active_time is None:
            return computed

        duration = self.iteration_duration
        if duration == 0:
            overall = self.iteration_start + (0.0 if phase is Phase.BEFORE else self.iterations)
        else:
            overall = self.iteration_start + active_time / duration

        if math.isinf(overall):
            simple = self.iteration_start % 1.0
        else:
            simple = overall % 1.0
        if (
            simple == 0.0
            and phase in (Phase.ACTIVE, Phase.AFTER)
            and active_time == self.active_duration
            and self.iterations != 0
        ):
            simple = 1.0

        if phase is Phase.AFTER and math.isinf(self.iterations):
            iteration = math.inf
        elif simple == 1.0:
            iteration = math.floor(overall) - 1
        else:
            iteration = math.floor(overall)

        computed.current_iteration = iteration
        computed.progress = parse_easing(self.easing)(self._directed(simple, iteration))
        return computed

    def _phase(self, local_time: float, backwards: bool) -> Phase:
        end_time = self.end_time
        before_active = max(min(self.delay, end_time), 0.0)
        active_after = max(min(self.delay + self.active_duration, end_time), 0.0)
        if local_time < before_active or (backwards and local_time == before_active):
            return Phase.BEFORE
        if local_time > active_after or (not backwards and local_time == active_after):
            return Phase.AFTER
        return Phase.ACTIVE

    def _active_time(self, local_time: float, phase: Phase) -> float | None:
        fill = self.fill
        if phase is Phase.BEFORE:
            if fill in ("backwards", "both"):
                return max(local_time - self.delay, 0.0)
            return None
        if phase is Phase.ACTIVE:
            return local_time - self.delay
        if fill in ("forwards", "both"):
            return max(min(local_time - self.delay, self.active_duration), 0.0)
        return None

    def _directed(self, simple: float, iteration: float) -> float:
        direction = self.direction
        if direction == "normal":
            return simple
        if direction == "reverse":
            return 1.0 - simple
        forwards = math.isinf(iteration) or iteration % 2 == 0
        if direction == "alternate-reverse":
            forwards = not forwards
        return simple if forwards else 1.0 - simple


class KeyframeEffect:
    """Keyframes applied to a target element, with timing.

    Args:
        target: Element the keyframes are written to (may be None).
        keyframes: List of keyframe mappings, or a property-indexed mapping.
        options: Duration in ms, a mapping of timing options, or EffectTiming.

    Raises:
        ValueError: keyframes is empty, or the easing cannot be parsed.
        TypeError: invalid offsets or timing values.
    """

    def __init__(
        self,
        target: Element | None,
        keyframes: Any,
        options: float | Mapping[str, Any] | EffectTiming | None = None,
    ) -> None:
        if target is not None and not isinstance(target, Element):
            raise TypeError(f"KeyframeEffect target must be an Element, got {target!r}")
        timing, extras = EffectTiming.from_options(options)
        composite = extras.get("composite", "replace")
        if composite not in COMPOSITES:
            raise TypeError(f"Invalid composite operation {composite!r}")

        self.target = target
        self.composite: str = composite
        self.pseudo_element: str | None = extras.get("pseudo_element")
        self._timing = timing
        self._keyframes: list[Keyframe] = []
        self._offsets: list[float] = []
        self._animation_ref: weakref.ref[Animation] | None = None
        self.set_keyframes(keyframes)

    def __repr__(self) -> str:
        return f"KeyframeEffect(target={self.target!r}, keyframes={len(self._keyframes)})"

    # Keyframes --------------------------------------------------------------

    def set_keyframes(self, keyframes: Any) -> None:
        frames = to_keyframes(keyframes)
        if not frames:
            raise ValueError("KeyframeEffect requires at least one keyframe")
        validate_offsets(frames)
        self._keyframes = frames
        self._offsets = compute_offsets(frames)

    def get_keyframes(self) -> list[Keyframe]:
        """The keyframes as authored, as copies."""
        return [Keyframe(frame) for frame in self._keyframes]

    def get_computed_keyframes(self) -> list[Keyframe]:
        """Keyframes with ``computed_offset``, ``easing`` and ``composite`` filled in."""
        result = []
        for frame, offset in zip(self._keyframes, self._offsets):
            computed = Keyframe(
                offset=frame.get("offset"),
                computed_offset=offset,
                easing=frame.get("easing", "linear"),
                composite=frame.get("composite", self.composite),
            )
            computed.update(frame.styles)
            result.append(computed)
        return result

    @property
    def computed_offsets(self) -> list[float]:
        return list(self._offsets)

    @property
    def properties(self) -> list[str]:
        """Style property names used by any keyframe, in first-seen order."""
        seen: dict[str, None] = {}
        for frame in self._keyframes:
            for name in frame.styles:
                seen.setdefault(name, None)
        return list(seen)

    def resolve_index(self, progress: float) -> int:
        """Index of the keyframe nearest to ``progress``. Ties go to the later one."""
        best = 0
        best_distance = math.inf
        for index, offset in enumerate(self._offsets):
            distance = abs(offset - progress)
            if distance <= best_distance:
                best = index
                best_distance = distance
        return best

    def resolve(self, progress: float) -> Keyframe:
        """The keyframe nearest to ``progress``. Values are never blended."""
        return self._keyframes[self.resolve_index(progress)]

    def keyframe_at(self, index: int) -> Keyframe:
        return self._keyframes[index]

    # Timing -----------------------------------------------------------------

    def get_timing(self) -> EffectTiming:
        return replace(self._timing)

    def update_timing(self, timing: Mapping[str, Any] | None = None, **changes: Any) -> None:
        """Merge timing changes, e.g. ``update_timing(duration=500)``."""
        merged = dict(timing or {})
        merged.update(changes)
        self._timing = self._timing.with_changes(merged)

    def get_computed_timing(self) -> ComputedTiming:
        """Computed timing; local time and progress need an owning animation."""
        animation = self.animation
        if animation is None:
            return self._timing.compute(None)
        return animation.compute_effect_timing()

    @property
    def timing(self) -> EffectTiming:
        return self._timing

    # Ownership --------------------------------------------------------------

    @property
    def animation(self) -> Animation | None:
        if self._animation_ref is None:
            return None
        return self._animation_ref()

    def _attach(self, animation: Animation | None) -> None:
        self._animation_ref = weakref.ref(animation) if animation is not None else None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
