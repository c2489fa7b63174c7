"""Intersection and resize observer mocks with manual triggers.

Observers never fire on their own. Tests drive them through the registries on
the scheduler (``scheduler.intersection`` and ``scheduler.resize``); triggers
may also write geometry, which in turn updates view timelines.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Mapping, Sequence

from wamock.geometry import DOMRect
from wamock.model import Element

if TYPE_CHECKING:
    from wamock.scheduler import Scheduler

logger = logging.getLogger(__name__)


def _current_scheduler(scheduler: Scheduler | None) -> Scheduler:
    if scheduler is not None:
        return scheduler
    from wamock.scheduler import get_scheduler

    return get_scheduler()


# Intersection ---------------------------------------------------------------


@dataclass
class IntersectionObserverEntry:
    target: Element
    is_intersecting: bool
    intersection_ratio: float
    bounding_client_rect: DOMRect
    intersection_rect: DOMRect
    root_bounds: DOMRect | None
    time: float


IntersectionCallback = Callable[[list[IntersectionObserverEntry], "IntersectionObserver"], Any]


class IntersectionObserver:
    """Visibility observer. Entries are delivered only by registry triggers.

    Args:
        callback: Called as ``callback(entries, observer)``.
        options: Optional mapping with ``root``, ``root_margin``/``rootMargin``
            and ``threshold``.
    """

    def __init__(
        self,
        callback: IntersectionCallback,
        options: Mapping[str, Any] | None = None,
        *,
        scheduler: Scheduler | None = None,
    ) -> None:
        options = dict(options or {})
        self.callback = callback
        self.root: Element | None = options.get("root")
        self.root_margin: str = options.get("root_margin", options.get("rootMargin", "0px"))
        threshold = options.get("threshold", 0.0)
        if isinstance(threshold, (int, float)):
            threshold = [threshold]
        thresholds = sorted(float(t) for t in threshold)
        for t in thresholds:
            if not 0.0 <= t <= 1.0:
                raise ValueError(f"Threshold values must be in [0, 1], got {t}")
        self.thresholds = thresholds or [0.0]

        self.scheduler = _current_scheduler(scheduler)
        self._targets: list[Element] = []
        self._records: list[IntersectionObserverEntry] = []
        self.scheduler.intersection.add(self)

    def __repr__(self) -> str:
        return f"IntersectionObserver(targets={len(self._targets)})"

    @property
    def targets(self) -> list[Element]:
        return list(self._targets)

    def observe(self, target: Element) -> None:
        if not isinstance(target, Element):
            raise TypeError(f"IntersectionObserver can only observe Elements, got {target!r}")
        if target not in self._targets:
            self._targets.append(target)

    def unobserve(self, target: Element) -> None:
        if target in self._targets:
            self._targets.remove(target)

    def disconnect(self) -> None:
        self._targets.clear()
        self._records.clear()

    def take_records(self) -> list[IntersectionObserverEntry]:
        records, self._records = self._records, []
        return records


class IntersectionRegistry:
    """Manual triggers for every IntersectionObserver of one scheduler."""

    def __init__(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler
        self._observers: list[IntersectionObserver] = []
        self._states: dict[Element, tuple[bool, float]] = {}

    def add(self, observer: IntersectionObserver) -> None:
        self._observers.append(observer)

    def observers(self, element: Element | None = None) -> list[IntersectionObserver]:
        if element is None:
            return list(self._observers)
        return [o for o in self._observers if element in o._targets]

    def observed_elements(self) -> list[Element]:
        seen: dict[Element, None] = {}
        for observer in self._observers:
            for target in observer._targets:
                seen.setdefault(target, None)
        return list(seen)

    def is_intersecting(self, element: Element) -> bool:
        return self._states.get(element, (False, 0.0))[0]

    def enter_node(
        self,
        element: Element,
        rect: DOMRect | Mapping[str, float] | None = None,
        ratio: float = 1.0,
    ) -> None:
        """Report ``element`` as entering the viewport."""
        self._trigger([self._require_observed(element)], True, ratio, rect)

    def leave_node(
        self,
        element: Element,
        rect: DOMRect | Mapping[str, float] | None = None,
        ratio: float = 0.0,
    ) -> None:
        """Report ``element`` as leaving the viewport."""
        self._trigger([self._require_observed(element)], False, ratio, rect)

    def enter_all(
        self, rect: DOMRect | Mapping[str, float] | None = None, ratio: float = 1.0
    ) -> None:
        self._trigger(self.observed_elements(), True, ratio, rect)

    def leave_all(
        self, rect: DOMRect | Mapping[str, float] | None = None, ratio: float = 0.0
    ) -> None:
        self._trigger(self.observed_elements(), False, ratio, rect)

    def clear(self) -> None:
        for observer in self._observers:
            observer.disconnect()
        self._observers.clear()
        self._states.clear()

    def _require_observed(self, element: Element) -> Element:
        if not self.observers(element):
            raise ValueError(f"IntersectionObserver mock: node {element!r} is not observed")
        return element

    def _trigger(
        self,
        elements: Sequence[Element],
        is_intersecting: bool,
        ratio: float,
        rect: DOMRect | Mapping[str, float] | None,
    ) -> None:
        geometry = self._scheduler.geometry
        for element in elements:
            if rect is not None:
                geometry.set_bounding_box(element, DOMRect.from_any(rect))
            self._states[element] = (is_intersecting, ratio)

        now = self._scheduler.now()
        for observer in list(self._observers):
            entries = [
                self._entry(element, now) for element in elements if element in observer._targets
            ]
            if not entries:
                continue
            observer._records.extend(entries)
            logger.debug("Delivering %d intersection entries to %r", len(entries), observer)
            self._scheduler.dispatch(lambda o=observer: o.callback(o.take_records(), o))

    def _entry(self, element: Element, now: float) -> IntersectionObserverEntry:
        is_intersecting, ratio = self._states[element]
        box = self._scheduler.geometry.get_bounding_box(element)
        doc = element.owner_document
        return IntersectionObserverEntry(
            target=element,
            is_intersecting=is_intersecting,
            intersection_ratio=ratio,
            bounding_client_rect=box,
            intersection_rect=box if is_intersecting else DOMRect(),
            root_bounds=DOMRect(0.0, 0.0, doc.viewport_width, doc.viewport_height),
            time=now,
        )


# Resize ---------------------------------------------------------------------


@dataclass(frozen=True)
class ResizeObserverSize:
    inline_size: float = 0.0
    block_size: float = 0.0


@dataclass
class ResizeObserverEntry:
    target: Element
    content_rect: DOMRect
    border_box_size: list[ResizeObserverSize] = field(default_factory=list)
    content_box_size: list[ResizeObserverSize] = field(default_factory=list)


ResizeCallback = Callable[[list[ResizeObserverEntry], "ResizeObserver"], Any]
SizeInput = ResizeObserverSize | Mapping[str, float] | Sequence[Any]


class ResizeObserver:
    """Size observer. Entries are delivered only by registry triggers."""

    def __init__(self, callback: ResizeCallback, *, scheduler: Scheduler | None = None) -> None:
        self.callback = callback
        self.scheduler = _current_scheduler(scheduler)
        self._targets: dict[Element, str] = {}
        self._active: list[Element] = []
        self.scheduler.resize.add(self)

    def __repr__(self) -> str:
        return f"ResizeObserver(targets={len(self._targets)})"

    @property
    def targets(self) -> list[Element]:
        return list(self._targets)

    def observe(self, target: Element, box: str = "content-box") -> None:
        """Watch target. It is reported on the next resize() even if unchanged."""
        if box not in ("content-box", "border-box", "device-pixel-content-box"):
            raise TypeError(f"Invalid box option {box!r}")
        self._targets[target] = box
        if target not in self._active:
            self._active.append(target)

    def unobserve(self, target: Element) -> None:
        self._targets.pop(target, None)
        if target in self._active:
            self._active.remove(target)

    def disconnect(self) -> None:
        self._targets.clear()
        self._active.clear()


@dataclass
class _ElementSize:
    content_box: list[ResizeObserverSize]
    border_box: list[ResizeObserverSize]

    @property
    def content_rect(self) -> DOMRect:
        return DOMRect(
            0.0,
            0.0,
            sum(s.inline_size for s in self.content_box),
            sum(s.block_size for s in self.content_box),
        )


class ResizeRegistry:
    """Element sizes and manual triggers for every ResizeObserver of one scheduler."""

    def __init__(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler
        self._observers: list[ResizeObserver] = []
        self._sizes: dict[Element, _ElementSize] = {}

    def add(self, observer: ResizeObserver) -> None:
        self._observers.append(observer)

    def observers(self, element: Element | None = None) -> list[ResizeObserver]:
        if element is None:
            return list(self._observers)
        return [o for o in self._observers if element in o._targets]

    def observed_elements(self, observer: ResizeObserver | None = None) -> list[Element]:
        if observer is not None:
            return observer.targets
        seen: dict[Element, None] = {}
        for o in self._observers:
            for target in o._targets:
                seen.setdefault(target, None)
        return list(seen)

    def set_size(
        self,
        element: Element,
        content_box_size: SizeInput | None = None,
        border_box_size: SizeInput | None = None,
    ) -> None:
        """Mock an element's box sizes.

        Either size may be omitted and then mirrors the other. Sizes are
        ResizeObserverSize objects, mappings with ``inline_size``/``block_size``
        (or camelCase), or lists of either.

        Raises:
            ValueError: neither size given, lengths differ, or a size is negative.
        """
        if content_box_size is None and border_box_size is None:
            raise ValueError("Neither border_box_size nor content_box_size was provided")
        content = _sizes(content_box_size) if content_box_size is not None else None
        border = _sizes(border_box_size) if border_box_size is not None else None
        if content is None:
            content = border
        if border is None:
            border = content
        assert content is not None and border is not None
        if len(content) != len(border):
            raise ValueError(
                "Both border_box_size and content_box_size must have the same number of elements"
            )
        for name, sizes in (("content_box_size", content), ("border_box_size", border)):
            for index, size in enumerate(sizes):
                if size.block_size < 0 or size.inline_size < 0:
                    raise ValueError(f"{name}[{index}] must not be negative")
        self._sizes[element] = _ElementSize(content, border)

    def resize(self, *elements: Element, ignore_implicit: bool = False) -> None:
        """Deliver entries for ``elements`` to the observers watching them.

        Targets observed since the last delivery are included too unless
        ``ignore_implicit`` is set. Elements with a zero-size content rect
        are skipped.
        """
        for observer in list(self._observers):
            targets = [e for e in elements if e in observer._targets]
            if not ignore_implicit:
                targets += [e for e in observer._active if e not in targets]
            observer._active.clear()
            entries = [entry for entry in map(self._entry, targets) if entry is not None]
            if entries:
                logger.debug("Delivering %d resize entries to %r", len(entries), observer)
                self._scheduler.dispatch(lambda o=observer, e=entries: o.callback(e, o))

    def clear(self) -> None:
        for observer in self._observers:
            observer.disconnect()
        self._observers.clear()
        self._sizes.clear()

    def _entry(self, element: Element) -> ResizeObserverEntry | None:
        size = self._sizes.get(element)
        if size is None:
            box = self._scheduler.geometry.get_bounding_box(element)
            fallback = [ResizeObserverSize(inline_size=box.width, block_size=box.height)]
            size = _ElementSize(fallback, fallback)
        rect = size.content_rect
        if rect.width == 0 and rect.height == 0:
            return None
        return ResizeObserverEntry(
            target=element,
            content_rect=rect,
            border_box_size=list(size.border_box),
            content_box_size=list(size.content_box),
        )


def _sizes(value: SizeInput) -> list[ResizeObserverSize]:
    if isinstance(value, ResizeObserverSize):
        return [value]
    if isinstance(value, Mapping):
        return [_size(value)]
    return [v if isinstance(v, ResizeObserverSize) else _size(v) for v in value]


def _size(value: Mapping[str, float]) -> ResizeObserverSize:
    return ResizeObserverSize(
        inline_size=float(value.get("inline_size", value.get("inlineSize", 0.0))),
        block_size=float(value.get("block_size", value.get("blockSize", 0.0))),
    )

