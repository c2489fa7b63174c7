"""Tests for the mock document model."""

from unittest.mock import MagicMock

import pytest

from wamock import Document, Element, Event
from wamock.model import css_property_name


class TestCssPropertyName:
    """Keyframe name to CSS name mapping."""

    def test_camel_case(self) -> None:
        assert css_property_name("backgroundColor") == "background-color"
        assert css_property_name("opacity") == "opacity"

    def test_renamed(self) -> None:
        assert css_property_name("cssFloat") == "float"
        assert css_property_name("cssOffset") == "offset"

    def test_passthrough(self) -> None:
        assert css_property_name("border-top") == "border-top"
        assert css_property_name("--accentColor") == "--accentColor"


class TestStyleDeclaration:
    """Inline styles."""

    def test_set_and_get(self, element: Element) -> None:
        element.style.set_property("backgroundColor", "red")
        assert element.style.get_property_value("background-color") == "red"
        assert element.style["backgroundColor"] == "red"
        assert "background-color" in element.style

    def test_empty_value_removes(self, element: Element) -> None:
        element.style.set_property("opacity", "0.5")
        element.style.set_property("opacity", "")
        assert "opacity" not in element.style
        assert len(element.style) == 0

    def test_remove_property(self, element: Element) -> None:
        element.style.set_property("opacity", "0.5")
        assert element.style.remove_property("opacity") == "0.5"
        assert element.style.get_property_value("opacity") == ""

    def test_css_text(self, element: Element) -> None:
        element.style.set_property("opacity", "1")
        element.style.set_property("color", "red")
        assert element.style.css_text == "opacity: 1; color: red;"


class TestEventTarget:
    """Listener dispatch."""

    def test_handler_then_listeners(self, element: Element) -> None:
        order: list[str] = []
        element.onping = lambda e: order.append("handler")
        element.add_event_listener("ping", lambda e: order.append("listener"))
        element.dispatch_event(Event("ping"))
        assert order == ["handler", "listener"]

    def test_raising_listener_does_not_stop_others(self, element: Element) -> None:
        """Later listeners still run; the first error surfaces afterwards."""
        later = MagicMock()
        element.add_event_listener("ping", MagicMock(side_effect=KeyError("first")))
        element.add_event_listener("ping", MagicMock(side_effect=ValueError("second")))
        element.add_event_listener("ping", later)
        with pytest.raises(KeyError):
            element.dispatch_event(Event("ping"))
        later.assert_called_once()

    def test_target_set(self, element: Element) -> None:
        listener = MagicMock()
        element.add_event_listener("ping", listener)
        element.dispatch_event(Event("ping"))
        event = listener.call_args[0][0]
        assert event.target is element

    def test_listener_added_once(self, element: Element) -> None:
        listener = MagicMock()
        element.add_event_listener("ping", listener)
        element.add_event_listener("ping", listener)
        element.dispatch_event(Event("ping"))
        assert listener.call_count == 1

    def test_remove_listener(self, element: Element) -> None:
        listener = MagicMock()
        element.add_event_listener("ping", listener)
        element.remove_event_listener("ping", listener)
        element.dispatch_event(Event("ping"))
        listener.assert_not_called()


class TestElementTree:
    """Parents, scroll containers and scroll parents."""

    def test_append_moves_child(self, document: Document) -> None:
        a = document.create_element("div")
        b = document.create_element("div")
        child = a.append_child(document.create_element("span"))
        b.append_child(child)
        assert child.parent is b
        assert a.children == []

    def test_ancestors(self, document: Document, element: Element) -> None:
        child = element.append_child(document.create_element("span"))
        assert list(child.ancestors()) == [element, document.body, document.document_element]

    def test_scroll_parent_defaults_to_scrolling_element(self, element: Element) -> None:
        assert element.scroll_parent() is element.owner_document.scrolling_element

    def test_scroll_parent_nearest_container(self, document: Document, element: Element) -> None:
        element.style.set_property("overflow-y", "auto")
        child = element.append_child(document.create_element("span"))
        grandchild = child.append_child(document.create_element("span"))
        assert grandchild.scroll_parent() is element

    def test_tag_name(self, document: Document) -> None:
        assert document.create_element("div").tag_name == "DIV"


class TestDocument:
    """Document-level state."""

    def test_timeline_is_lazy_and_shared(self, document: Document) -> None:
        assert document.timeline is document.timeline
        assert document.timeline.current_time == 0.0

    def test_scrolling_element(self, document: Document) -> None:
        assert document.scrolling_element is document.document_element
        assert document.body.parent is document.document_element

    def test_animation_tracking(self, document: Document, element: Element) -> None:
        anim = element.animate([{"opacity": 0}, {"opacity": 1}], 1000)
        assert element.get_animations() == [anim]
        assert document.get_animations() == [anim]
        document.untrack_animation(element, anim)
        assert element.get_animations() == []
