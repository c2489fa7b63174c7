"""Tests for document, scroll and view timelines."""

from unittest.mock import patch

import pytest

from wamock import (
    DOMRect,
    Document,
    DocumentTimeline,
    Element,
    Scheduler,
    ScrollTimeline,
    ViewTimeline,
    percent,
)
from wamock.timelines import parse_inset


@pytest.fixture
def container(scheduler: Scheduler, document: Document) -> Element:
    """Scroll container spanning 0..400px vertically."""
    el = document.body.append_child(document.create_element("div"))
    el.style.set_property("overflow", "auto")
    scheduler.geometry.set_bounding_box(el, DOMRect(0, 0, 300, 400))
    return el


@pytest.fixture
def subject(document: Document, container: Element) -> Element:
    return container.append_child(document.create_element("div"))


class TestDocumentTimeline:
    """Clock-driven timeline."""

    def test_follows_clock(self, scheduler: Scheduler) -> None:
        timeline = DocumentTimeline()
        scheduler.advance(100)
        assert timeline.current_time == 100.0

    def test_origin_time(self, scheduler: Scheduler) -> None:
        timeline = DocumentTimeline(origin_time=40)
        scheduler.advance(100)
        assert timeline.current_time == 60.0

    def test_not_progress_based(self, document: Document) -> None:
        assert not document.timeline.is_progress_based
        assert document.timeline.duration is None


class TestScrollTimeline:
    """Scroll progress."""

    def test_half_way(self, scheduler: Scheduler, container: Element) -> None:
        scheduler.geometry.set_scroll(container, scroll_height=1000, client_height=100)
        timeline = ScrollTimeline(source=container)
        container.scroll_top = 450
        assert timeline.current_time == percent(50)

    def test_at_start(self, scheduler: Scheduler, container: Element) -> None:
        scheduler.geometry.set_scroll(container, scroll_height=1000, client_height=100)
        assert ScrollTimeline(source=container).current_time == percent(0)

    def test_not_scrollable(self, container: Element) -> None:
        container.scroll_top = 50
        assert ScrollTimeline(source=container).current_time == percent(0)

    def test_not_clamped(self, scheduler: Scheduler, container: Element) -> None:
        scheduler.geometry.set_scroll(
            container, scroll_height=1000, client_height=100, scroll_top=1800
        )
        assert ScrollTimeline(source=container).time_value() == 200.0

    def test_inline_axis(self, scheduler: Scheduler, container: Element) -> None:
        scheduler.geometry.set_scroll(
            container, scroll_width=700, client_width=300, scroll_left=100
        )
        assert ScrollTimeline(source=container, axis="x").time_value() == 25.0
        assert ScrollTimeline(source=container, axis="block").time_value() == 0.0

    def test_default_source(self, document: Document) -> None:
        timeline = ScrollTimeline()
        assert timeline.source is document.scrolling_element

    def test_invalid_axis(self, container: Element) -> None:
        with pytest.raises(TypeError, match="Invalid axis value: diagonal"):
            ScrollTimeline(source=container, axis="diagonal")

    def test_invalid_source(self) -> None:
        with pytest.raises(TypeError):
            ScrollTimeline(source="main")  # type: ignore[arg-type]

    def test_duration(self, container: Element) -> None:
        timeline = ScrollTimeline(source=container)
        assert timeline.is_progress_based
        assert timeline.duration == percent(100)


class TestViewTimeline:
    """Subject visibility progress."""

    def test_below_container(
        self, scheduler: Scheduler, container: Element, subject: Element
    ) -> None:
        scheduler.geometry.set_bounding_box(subject, y=500, height=100)
        timeline = ViewTimeline(subject)
        assert timeline.container is container
        assert timeline.current_time == percent(-140)
        scheduler.geometry.set_bounding_box(subject, y=200)
        assert timeline.current_time == percent(-20)

    def test_inside_container(
        self, scheduler: Scheduler, container: Element, subject: Element
    ) -> None:
        scheduler.geometry.set_bounding_box(subject, y=200, height=100)
        assert ViewTimeline(subject).time_value() == pytest.approx(-20.0)

    def test_viewport_container(self, scheduler: Scheduler, element: Element) -> None:
        scheduler.geometry.set_bounding_box(element, y=768, height=100)
        timeline = ViewTimeline(element)
        assert timeline.container is element.owner_document.scrolling_element
        assert timeline.time_value() == pytest.approx(-100.0)

    def test_inset(self, scheduler: Scheduler, container: Element, subject: Element) -> None:
        scheduler.geometry.set_bounding_box(subject, y=250, height=100)
        assert ViewTimeline(subject, inset="50px").time_value() == pytest.approx(-50.0)

    def test_zero_total_distance(
        self, scheduler: Scheduler, container: Element, subject: Element
    ) -> None:
        scheduler.geometry.set_bounding_box(container, DOMRect(0, 0, 0, 0))
        assert ViewTimeline(subject).time_value() == -100.0

    def test_invalid_subject(self) -> None:
        with pytest.raises(TypeError, match="valid Element"):
            ViewTimeline(None)  # type: ignore[arg-type]

    def test_unsupported_inset_unit(self, subject: Element) -> None:
        with pytest.raises(TypeError, match="%"):
            ViewTimeline(subject, inset="10%")

    def test_source_is_container(self, container: Element, subject: Element) -> None:
        assert ViewTimeline(subject).source is container


class TestParseInset:
    """Inset parsing."""

    def test_forms(self) -> None:
        assert parse_inset("10px") == (10.0, 10.0)
        assert parse_inset("10px 20px") == (10.0, 20.0)
        assert parse_inset(["auto", 5]) == (0.0, 5.0)
        assert parse_inset(None) == (0.0, 0.0)

    def test_too_many(self) -> None:
        with pytest.raises(TypeError):
            parse_inset("1px 2px 3px")


class TestInvalidation:
    """Geometry changes reach the scheduler."""

    def test_scroll_invalidates(self, scheduler: Scheduler, container: Element) -> None:
        timeline = ScrollTimeline(source=container)
        with patch.object(scheduler, "invalidate") as invalidate:
            container.scroll_top = 10
        invalidate.assert_called_once_with(timeline)

    def test_view_timeline_watches_subject_and_container(
        self, scheduler: Scheduler, container: Element, subject: Element
    ) -> None:
        timeline = ViewTimeline(subject)
        with patch.object(scheduler, "invalidate") as invalidate:
            scheduler.geometry.set_bounding_box(subject, y=10)
            container.scroll_top = 10
        assert invalidate.call_count == 2

    def test_disconnect(self, scheduler: Scheduler, container: Element) -> None:
        timeline = ScrollTimeline(source=container)
        assert timeline.connected
        assert scheduler.geometry.subscriber_count(container) == 1
        timeline.disconnect()
        timeline.disconnect()
        assert not timeline.connected
        assert scheduler.geometry.subscriber_count(container) == 0
        with patch.object(scheduler, "invalidate") as invalidate:
            container.scroll_top = 10
        invalidate.assert_not_called()
