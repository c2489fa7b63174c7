"""Animation timelines: document time, scroll progress and view progress."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Sequence

from wamock.geometry import AXES, DOMRect, Subscription
from wamock.model import Element
from wamock.units import CSSUnitValue, percent

if TYPE_CHECKING:
    from wamock.scheduler import Scheduler

logger = logging.getLogger(__name__)

_PX = re.compile(r"^(-?\d*\.?\d+)(px)?$")
_LENGTH = re.compile(r"^-?\d*\.?\d+([a-z%]*)$")


def _current_scheduler(scheduler: Scheduler | None) -> Scheduler:
    if scheduler is not None:
        return scheduler
    from wamock.scheduler import get_scheduler

    return get_scheduler()


def _check_axis(axis: str) -> str:
    if axis not in AXES:
        raise TypeError(f"Invalid axis value: {axis}")
    return axis


def parse_inset(inset: str | float | Sequence[str | float] | None) -> tuple[float, float]:
    """Parse a view timeline inset into (start, end) px.

    Accepts ``"10px"``, ``"10px 20px"``, ``["10px", "20px"]``, numbers (px) and
    ``"auto"`` (0). Any other unit raises TypeError.
    """
    if inset is None:
        return (0.0, 0.0)
    if isinstance(inset, str):
        parts: list[str | float] = list(inset.split())
    elif isinstance(inset, (int, float)):
        parts = [inset]
    else:
        parts = list(inset)
    if not parts or len(parts) > 2:
        raise TypeError(f"Invalid inset value: {inset!r}")

    values = [_parse_inset_part(part, inset) for part in parts]
    if len(values) == 1:
        values.append(values[0])
    return (values[0], values[1])


def _parse_inset_part(part: str | float, inset: object) -> float:
    if isinstance(part, (int, float)) and not isinstance(part, bool):
        return float(part)
    if not isinstance(part, str):
        raise TypeError(f"Invalid inset value: {inset!r}")
    text = part.strip().lower()
    if text == "auto":
        return 0.0
    match = _PX.match(text)
    if match:
        return float(match.group(1))
    unit = _LENGTH.match(text)
    if unit:
        raise TypeError(f"Unsupported inset unit {unit.group(1)!r} in {inset!r}")
    raise TypeError(f"Invalid inset value: {inset!r}")


class AnimationTimeline:
    """Base timeline.

    ``current_time`` is recomputed on every read and never stored.
    """

    is_progress_based = False

    def __init__(self, scheduler: Scheduler | None = None) -> None:
        self.scheduler = _current_scheduler(scheduler)

    @property
    def current_time(self) -> float | CSSUnitValue | None:
        value = self.time_value()
        if value is None or not self.is_progress_based:
            return value
        return percent(value)

    def time_value(self) -> float | None:
        """Current time as a plain number (ms, or percent on progress timelines)."""
        raise NotImplementedError

    @property
    def duration(self) -> CSSUnitValue | None:
        """Timeline range; 100% for progress-based timelines."""
        return percent(100.0) if self.is_progress_based else None

    def disconnect(self) -> None:
        """Stop listening for geometry changes. Idempotent."""


class DocumentTimeline(AnimationTimeline):
    """Timeline following the scheduler clock, in ms since ``origin_time``."""

    def __init__(self, origin_time: float = 0.0, *, scheduler: Scheduler | None = None) -> None:
        super().__init__(scheduler)
        self.origin_time = float(origin_time)

    def __repr__(self) -> str:
        return f"DocumentTimeline(origin_time={self.origin_time})"

    def time_value(self) -> float:
        return self.scheduler.now() - self.origin_time


class _GeometryTimeline(AnimationTimeline):
    """Progress-based timeline fed by geometry change notifications."""

    is_progress_based = True

    def __init__(self, axis: str, scheduler: Scheduler | None) -> None:
        _check_axis(axis)
        super().__init__(scheduler)
        self.axis = axis
        self._subscriptions: list[Subscription] = []

    @property
    def connected(self) -> bool:
        return bool(self._subscriptions)

    def _watch(self, element: Element) -> None:
        for sub in self._subscriptions:
            if sub.element is element:
                return
        self._subscriptions.append(
            self.scheduler.geometry.subscribe(element, self._on_geometry_change)
        )

    def _on_geometry_change(self, element: Element, reason: str) -> None:
        logger.debug("%r invalidated by %s on %r", self, reason, element)
        self.scheduler.invalidate(self)

    def disconnect(self) -> None:
        for sub in self._subscriptions:
            sub.cancel()
        self._subscriptions.clear()


class ScrollTimeline(_GeometryTimeline):
    """Progress of scrolling ``source`` along ``axis``, as a percentage.

    ``current_time = s / r * 100%`` where ``s`` is the scroll offset and ``r`` the
    scrollable range, or 0% when nothing can scroll. The value is not clamped.

    Args:
        source: Scrolled element; defaults to the document's scrolling element.
        axis: ``block``, ``inline``, ``x`` or ``y``.

    Raises:
        TypeError: unknown axis, or a source that is not an Element.
    """

    def __init__(
        self,
        source: Element | None = None,
        axis: str = "block",
        *,
        scheduler: Scheduler | None = None,
    ) -> None:
        if scheduler is None and isinstance(source, Element):
            scheduler = source.owner_document.scheduler
        super().__init__(axis, scheduler)
        if source is None:
            source = self.scheduler.document.scrolling_element
        elif not isinstance(source, Element):
            raise TypeError(f"ScrollTimeline source must be an Element, got {source!r}")
        self.source = source
        self._watch(source)

    def __repr__(self) -> str:
        return f"ScrollTimeline(source={self.source!r}, axis={self.axis!r})"

    def time_value(self) -> float:
        metrics = self.scheduler.geometry.get_scroll_metrics(self.source)
        scroll_range = metrics.scroll_extent(self.axis)
        if scroll_range <= 0:
            return 0.0
        return metrics.scroll_offset(self.axis) / scroll_range * 100.0


class ViewTimeline(_GeometryTimeline):
    """Progress of ``subject`` through its scroll container's visible box.

    ``current_time = (container_end - subject_start) / (container_size +
    subject_size) * 200% - 100%``. Negative while the subject is still ahead of
    the box, 0% as it starts to enter, above 100% once it has left; signed and
    unclamped.

    Args:
        subject: Element whose visibility drives the timeline.
        axis: ``block``, ``inline``, ``x`` or ``y``.
        inset: Shrinks the container box at the (start, end) edges, in px.

    Raises:
        TypeError: subject is not an Element, unknown axis, or non-px inset.
    """

    def __init__(
        self,
        subject: Element,
        axis: str = "block",
        inset: str | float | Sequence[str | float] | None = "0px",
        *,
        scheduler: Scheduler | None = None,
    ) -> None:
        if not isinstance(subject, Element):
            raise TypeError(f"ViewTimeline requires a valid Element as subject, got {subject!r}")
        super().__init__(axis, scheduler or subject.owner_document.scheduler)
        self.subject = subject
        self.inset = inset
        self._inset = parse_inset(inset)
        self._watch(subject)
        self._watch(self.container)

    def __repr__(self) -> str:
        return f"ViewTimeline(subject={self.subject!r}, axis={self.axis!r})"

    @property
    def source(self) -> Element:
        return self.container

    @property
    def container(self) -> Element:
        return self.subject.scroll_parent()

    def container_box(self) -> DOMRect:
        container = self.container
        doc = self.subject.owner_document
        if container is doc.scrolling_element:
            return DOMRect(0.0, 0.0, doc.viewport_width, doc.viewport_height)
        return self.scheduler.geometry.get_bounding_box(container)

    def time_value(self) -> float:
        box = self.container_box()
        subject = self.scheduler.geometry.get_bounding_box(self.subject)
        inset_start, inset_end = self._inset
        container_start = box.start(self.axis) + inset_start
        container_end = box.end(self.axis) - inset_end
        container_size = container_end - container_start

        current_distance = container_end - subject.start(self.axis)
        total_distance = container_size + subject.size(self.axis)
        if total_distance == 0:
            return -100.0
        return current_distance * 200.0 / total_distance - 100.0

