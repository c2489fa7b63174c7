"""Geometry provider: mocked bounding boxes and scroll metrics per element.

The provider is the only owner of geometry state. Timelines and observers read
from it and subscribe to its change notifications; nothing is stored on the
elements themselves.
"""

from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Callable, Mapping
from weakref import WeakKeyDictionary

from wamock.model import Element, Event

if TYPE_CHECKING:
    from wamock.model import Document

logger = logging.getLogger(__name__)

AXES = ("block", "inline", "x", "y")

ChangeCallback = Callable[[Element, str], None]
DispatchFn = Callable[[Callable[[], None]], None]


def is_vertical(axis: str) -> bool:
    """True for the block/y axis (horizontal writing mode assumed)."""
    return axis in ("block", "y")


@dataclass(frozen=True)
class DOMRect:
    """Viewport-relative box of an element."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def top(self) -> float:
        return self.y

    @property
    def left(self) -> float:
        return self.x

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def right(self) -> float:
        return self.x + self.width

    def start(self, axis: str) -> float:
        return self.top if is_vertical(axis) else self.left

    def end(self, axis: str) -> float:
        return self.bottom if is_vertical(axis) else self.right

    def size(self, axis: str) -> float:
        return self.height if is_vertical(axis) else self.width

    @classmethod
    def from_any(cls, value: DOMRect | Mapping[str, float]) -> DOMRect:
        """Accept a DOMRect or a mapping with x/y (or left/top), width, height."""
        if isinstance(value, DOMRect):
            return value
        return cls(
            x=float(value.get("x", value.get("left", 0.0))),
            y=float(value.get("y", value.get("top", 0.0))),
            width=float(value.get("width", 0.0)),
            height=float(value.get("height", 0.0)),
        )


@dataclass(frozen=True)
class ScrollMetrics:
    """Scroll position and extents of an element."""

    scroll_top: float = 0.0
    scroll_left: float = 0.0
    scroll_height: float = 0.0
    scroll_width: float = 0.0
    client_height: float = 0.0
    client_width: float = 0.0

    def scroll_offset(self, axis: str) -> float:
        return self.scroll_top if is_vertical(axis) else self.scroll_left

    def scroll_extent(self, axis: str) -> float:
        """Scrollable range along the axis: scroll size minus client size."""
        if is_vertical(axis):
            return self.scroll_height - self.client_height
        return self.scroll_width - self.client_width


@dataclass
class Subscription:
    """Handle returned by GeometryProvider.subscribe()."""

    callback: ChangeCallback
    _element: weakref.ref[Element] = field(repr=False)
    _provider: weakref.ref[GeometryProvider] = field(repr=False)
    active: bool = True

    @property
    def element(self) -> Element | None:
        return self._element()

    def cancel(self) -> None:
        provider = self._provider()
        if provider is not None:
            provider.unsubscribe(self)
        self.active = False


class GeometryProvider:
    """Per-element geometry with change notifications.

    Unset values default to: bounding box at the origin with zero size; client
    size equal to the bounding box size (the viewport for the document's
    scrolling element); scroll size equal to the client size.
    """

    def __init__(self, dispatch: DispatchFn | None = None) -> None:
        self._dispatch = dispatch or (lambda fn: fn())
        self._rects: WeakKeyDictionary[Element, DOMRect] = WeakKeyDictionary()
        self._scroll: WeakKeyDictionary[Element, dict[str, float]] = WeakKeyDictionary()
        self._subscriptions: WeakKeyDictionary[Element, list[Subscription]] = (
            WeakKeyDictionary()
        )

    # Reads ------------------------------------------------------------------

    def get_bounding_box(self, element: Element) -> DOMRect:
        rect = self._rects.get(element)
        if rect is not None:
            return rect
        if _is_scrolling_element(element):
            doc = element.owner_document
            return DOMRect(0.0, 0.0, doc.viewport_width, doc.viewport_height)
        return DOMRect()

    def get_scroll_metrics(self, element: Element) -> ScrollMetrics:
        raw = self._scroll.get(element, {})
        box = self.get_bounding_box(element)
        client_height = raw.get("client_height", box.height)
        client_width = raw.get("client_width", box.width)
        return ScrollMetrics(
            scroll_top=raw.get("scroll_top", 0.0),
            scroll_left=raw.get("scroll_left", 0.0),
            scroll_height=raw.get("scroll_height", client_height),
            scroll_width=raw.get("scroll_width", client_width),
            client_height=client_height,
            client_width=client_width,
        )

    # Writes -----------------------------------------------------------------

    def set_bounding_box(
        self,
        element: Element,
        rect: DOMRect | Mapping[str, float] | None = None,
        *,
        x: float | None = None,
        y: float | None = None,
        width: float | None = None,
        height: float | None = None,
        notify: bool = True,
    ) -> DOMRect:
        """Mock an element's bounding client rect.

        Either pass a whole rect, or individual fields that are merged into the
        current box. Negative sizes are stored as given.
        """
        current = DOMRect.from_any(rect) if rect is not None else self.get_bounding_box(element)
        changes: dict[str, Any] = {
            k: float(v)
            for k, v in (("x", x), ("y", y), ("width", width), ("height", height))
            if v is not None
        }
        new_rect = replace(current, **changes)
        self._rects[element] = new_rect
        logger.debug("Bounding box of %r set to %r", element, new_rect)
        if notify:
            self.notify(element, "geometry")
        return new_rect

    def set_scroll(
        self,
        element: Element,
        *,
        scroll_top: float | None = None,
        scroll_left: float | None = None,
        scroll_height: float | None = None,
        scroll_width: float | None = None,
        client_height: float | None = None,
        client_width: float | None = None,
        notify: bool = True,
    ) -> ScrollMetrics:
        """Mock scroll position and extents.

        With ``notify`` a ``scroll`` event is dispatched on the element and
        subscribers are told about the change.
        """
        raw = self._scroll.setdefault(element, {})
        for name, value in (
            ("scroll_top", scroll_top),
            ("scroll_left", scroll_left),
            ("scroll_height", scroll_height),
            ("scroll_width", scroll_width),
            ("client_height", client_height),
            ("client_width", client_width),
        ):
            if value is not None:
                raw[name] = float(value)
        logger.debug("Scroll metrics of %r set to %r", element, raw)
        if notify:
            self.dispatch_scroll(element)
        return self.get_scroll_metrics(element)

    def dispatch_scroll(self, element: Element) -> None:
        """Fire a scroll event on the element, then notify subscribers."""
        self._dispatch(lambda: element.dispatch_event(Event("scroll", bubbles=True)))
        self.notify(element, "scroll")

    def clear(self) -> None:
        self._rects.clear()
        self._scroll.clear()
        for subs in list(self._subscriptions.values()):
            for sub in subs:
                sub.active = False
        self._subscriptions.clear()

    # Notifications ------------------------------------------------------------

    def subscribe(self, element: Element, callback: ChangeCallback) -> Subscription:
        sub = Subscription(callback, weakref.ref(element), weakref.ref(self))
        self._subscriptions.setdefault(element, []).append(sub)
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.active = False
        element = subscription.element
        if element is None:
            return
        subs = self._subscriptions.get(element)
        if subs and subscription in subs:
            subs.remove(subscription)
            if not subs:
                del self._subscriptions[element]

    def subscriber_count(self, element: Element) -> int:
        return len(self._subscriptions.get(element, ()))

    def notify(self, element: Element, reason: str) -> None:
        for sub in list(self._subscriptions.get(element, ())):
            if sub.active:
                sub.callback(element, reason)


def _is_scrolling_element(element: Element) -> bool:
    doc: Document = element.owner_document
    return element is doc.scrolling_element
