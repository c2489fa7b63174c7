"""Mock document model: elements, inline styles and events."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterator

if TYPE_CHECKING:
    from wamock.animation import Animation
    from wamock.geometry import DOMRect, ScrollMetrics
    from wamock.scheduler import Scheduler
    from wamock.timelines import DocumentTimeline

Listener = Callable[["Event"], Any]

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

# Keyframe names that differ from the CSS property they set
RENAMED_PROPERTIES = {"cssFloat": "float", "cssOffset": "offset"}


def css_property_name(name: str) -> str:
    """Map a keyframe property name to its CSS name.

    ``backgroundColor`` -> ``background-color``. Names already containing a
    dash, and custom properties, are returned unchanged.
    """
    if name in RENAMED_PROPERTIES:
        return RENAMED_PROPERTIES[name]
    if name.startswith("--") or "-" in name:
        return name
    return _CAMEL_BOUNDARY.sub("-", name).lower()


@dataclass
class Event:
    """A dispatched event."""

    type: str
    target: Any = field(default=None, compare=False)
    bubbles: bool = False

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.type!r})"


class EventTarget:
    """Listener registry keyed by event type."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def add_event_listener(self, event_type: str, listener: Listener) -> None:
        listeners = self._listeners.setdefault(event_type, [])
        if listener not in listeners:
            listeners.append(listener)

    def remove_event_listener(self, event_type: str, listener: Listener) -> None:
        listeners = self._listeners.get(event_type)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def dispatch_event(self, event: Event) -> None:
        """Call the ``on<type>`` handler, then listeners in order.

        Every listener runs even if an earlier one raises; the first error is
        re-raised afterwards.
        """
        if event.target is None:
            event.target = self
        callbacks: list[Listener] = []
        handler = getattr(self, f"on{event.type}", None)
        if callable(handler):
            callbacks.append(handler)
        callbacks.extend(self._listeners.get(event.type, ()))
        errors: list[Exception] = []
        for callback in callbacks:
            try:
                callback(event)
            except Exception as exc:
                errors.append(exc)
        if errors:
            raise errors[0]


class StyleDeclaration:
    """Inline style of an element. Property names are CSS (kebab-case) names."""

    def __init__(self) -> None:
        self._properties: dict[str, str] = {}

    def set_property(self, name: str, value: str) -> None:
        name = css_property_name(name)
        if value == "":
            self._properties.pop(name, None)
        else:
            self._properties[name] = value

    def get_property_value(self, name: str) -> str:
        return self._properties.get(css_property_name(name), "")

    def remove_property(self, name: str) -> str:
        return self._properties.pop(css_property_name(name), "")

    @property
    def css_text(self) -> str:
        return " ".join(f"{k}: {v};" for k, v in self._properties.items())

    def __getitem__(self, name: str) -> str:
        return self.get_property_value(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and css_property_name(name) in self._properties

    def __iter__(self) -> Iterator[str]:
        return iter(self._properties)

    def __len__(self) -> int:
        return len(self._properties)

    def __repr__(self) -> str:
        return f"StyleDeclaration({self.css_text!r})"


class Element(EventTarget):
    """A mock element.

    Geometry is not stored on the element; the scroll and bounding box
    properties read through the owning scheduler's geometry provider.
    """

    def __init__(self, tag_name: str, owner_document: Document) -> None:
        super().__init__()
        self.tag_name = tag_name.upper()
        self.owner_document = owner_document
        self.parent: Element | None = None
        self.children: list[Element] = []
        self.style = StyleDeclaration()
        self.id = ""

    def __hash__(self) -> int:
        return id(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Element):
            return NotImplemented
        return self is other

    def __repr__(self) -> str:
        suffix = f"#{self.id}" if self.id else ""
        return f"<{self.tag_name.lower()}{suffix}>"

    def append_child(self, child: Element) -> Element:
        if child.parent is not None:
            child.parent.remove_child(child)
        child.parent = self
        self.children.append(child)
        return child

    def remove_child(self, child: Element) -> Element:
        self.children.remove(child)
        child.parent = None
        return child

    def ancestors(self) -> Iterator[Element]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    @property
    def is_scroll_container(self) -> bool:
        for prop in ("overflow", "overflow-y", "overflow-x"):
            if self.style.get_property_value(prop) in ("auto", "scroll", "hidden"):
                return True
        return False

    def scroll_parent(self) -> Element:
        """Nearest scroll container ancestor, else the scrolling element."""
        for ancestor in self.ancestors():
            if ancestor.is_scroll_container:
                return ancestor
        return self.owner_document.scrolling_element

    # Geometry ---------------------------------------------------------------

    @property
    def _geometry(self):
        return self.owner_document.scheduler.geometry

    def get_bounding_client_rect(self) -> DOMRect:
        return self._geometry.get_bounding_box(self)

    def scroll_metrics(self) -> ScrollMetrics:
        return self._geometry.get_scroll_metrics(self)

    @property
    def scroll_top(self) -> float:
        return self.scroll_metrics().scroll_top

    @scroll_top.setter
    def scroll_top(self, value: float) -> None:
        self._geometry.set_scroll(self, scroll_top=value)

    @property
    def scroll_left(self) -> float:
        return self.scroll_metrics().scroll_left

    @scroll_left.setter
    def scroll_left(self, value: float) -> None:
        self._geometry.set_scroll(self, scroll_left=value)

    @property
    def scroll_height(self) -> float:
        return self.scroll_metrics().scroll_height

    @property
    def scroll_width(self) -> float:
        return self.scroll_metrics().scroll_width

    @property
    def client_height(self) -> float:
        return self.scroll_metrics().client_height

    @property
    def client_width(self) -> float:
        return self.scroll_metrics().client_width

    # Animations -------------------------------------------------------------

    def animate(
        self,
        keyframes: Any,
        options: float | dict[str, Any] | None = None,
    ) -> Animation:
        """Create, play and track an animation on this element."""
        from wamock.animation import animate

        return animate(self, keyframes, options)

    def get_animations(self) -> list[Animation]:
        return self.owner_document.animations_for(self)


class Document(EventTarget):
    """Mock document bound to one scheduler.

    Args:
        scheduler: Scheduler owning the clock and geometry for this document.
        viewport_width: Width of the visual viewport in px.
        viewport_height: Height of the visual viewport in px.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        viewport_width: float = 1024.0,
        viewport_height: float = 768.0,
    ) -> None:
        super().__init__()
        self.scheduler = scheduler
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.document_element = Element("html", self)
        self.body = self.document_element.append_child(Element("body", self))
        self._timeline: DocumentTimeline | None = None
        self._element_animations: dict[Element, list[Animation]] = {}

    def __repr__(self) -> str:
        return f"Document(viewport={self.viewport_width}x{self.viewport_height})"

    @property
    def scrolling_element(self) -> Element:
        return self.document_element

    @property
    def timeline(self) -> DocumentTimeline:
        """The document's default timeline, created on first use."""
        if self._timeline is None:
            from wamock.timelines import DocumentTimeline

            self._timeline = DocumentTimeline(scheduler=self.scheduler)
        return self._timeline

    def create_element(self, tag_name: str) -> Element:
        return Element(tag_name, self)

    # Element animation tracking ----------------------------------------------

    def track_animation(self, element: Element, animation: Animation) -> None:
        animations = self._element_animations.setdefault(element, [])
        if animation not in animations:
            animations.append(animation)

    def untrack_animation(self, element: Element, animation: Animation) -> None:
        animations = self._element_animations.get(element)
        if animations and animation in animations:
            animations.remove(animation)
            if not animations:
                del self._element_animations[element]

    def animations_for(self, element: Element) -> list[Animation]:
        return list(self._element_animations.get(element, ()))

    def get_animations(self) -> list[Animation]:
        return [a for anims in self._element_animations.values() for a in anims]

    def clear_animations(self) -> None:
        self._element_animations.clear()
