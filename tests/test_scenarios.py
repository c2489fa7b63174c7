"""End-to-end scenarios: reveal-on-enter and scroll-linked animation."""

from unittest.mock import MagicMock

import pytest

from wamock import (
    Animation,
    DOMRect,
    Document,
    Element,
    IntersectionObserver,
    InvalidStateError,
    KeyframeEffect,
    PlayState,
    Scheduler,
    ScrollTimeline,
    ViewTimeline,
    percent,
)

FADE = [{"opacity": 0}, {"opacity": 1}]


@pytest.fixture
def scroller(scheduler: Scheduler, document: Document) -> Element:
    """Scroll container with 900px of scrollable range."""
    el = document.body.append_child(document.create_element("div"))
    el.style.set_property("overflow", "auto")
    scheduler.geometry.set_bounding_box(el, DOMRect(0, 0, 300, 100))
    scheduler.geometry.set_scroll(el, scroll_height=1000, client_height=100, notify=False)
    return el


class TestRevealOnEnter:
    """An element fades in once it enters the viewport."""

    def test_reveal(self, scheduler: Scheduler, element: Element) -> None:
        started: list[Animation] = []

        def on_intersect(entries, observer) -> None:
            for entry in entries:
                if entry.is_intersecting:
                    started.append(
                        entry.target.animate(FADE, {"duration": 1000, "fill": "forwards"})
                    )
                    observer.unobserve(entry.target)

        IntersectionObserver(on_intersect).observe(element)
        scheduler.intersection.enter_node(element)
        assert len(started) == 1
        anim = started[0]
        assert anim.play_state is PlayState.PENDING

        scheduler.advance(0)
        assert anim.ready.fulfilled
        assert element.style["opacity"] == "0"

        scheduler.advance(600)
        assert element.style["opacity"] == "1"
        assert anim.finished.pending

        on_finish = MagicMock()
        anim.add_event_listener("finish", on_finish)
        scheduler.advance(400)
        assert anim.finished.fulfilled
        on_finish.assert_called_once()
        assert element.style["opacity"] == "1"
        assert element.get_animations() == []


class TestScrollLinked:
    """Opacity follows the scroll position of a container."""

    def test_scroll_progress(self, scheduler: Scheduler, scroller: Element) -> None:
        target = scroller.append_child(scroller.owner_document.create_element("div"))
        timeline = ScrollTimeline(source=scroller)
        anim = Animation(KeyframeEffect(target, FADE), timeline)
        anim.play()
        scroll_events = MagicMock()
        scroller.add_event_listener("scroll", scroll_events)

        scroller.scroll_top = 0
        assert anim.ready.fulfilled
        assert anim.current_time == percent(0)
        assert target.style["opacity"] == "0"

        scroller.scroll_top = 450
        assert anim.current_time == percent(50)
        assert target.style["opacity"] == "1"
        assert scroll_events.call_count == 2

    def test_scroll_to_end_and_back(self, scheduler: Scheduler, scroller: Element) -> None:
        target = scroller.append_child(scroller.owner_document.create_element("div"))
        anim = Animation(KeyframeEffect(target, FADE), ScrollTimeline(source=scroller))
        anim.play()
        scroller.scroll_top = 0

        scroller.scroll_top = 900
        assert anim.play_state is PlayState.FINISHED
        assert anim.finished.fulfilled
        assert target.style["opacity"] == ""

        scroller.scroll_top = 450
        assert anim.play_state is PlayState.RUNNING
        assert anim.finished.pending
        assert target.style["opacity"] == "1"

    def test_clock_does_not_drive_scroll_animation(
        self, scheduler: Scheduler, scroller: Element
    ) -> None:
        target = scroller.append_child(scroller.owner_document.create_element("div"))
        anim = Animation(KeyframeEffect(target, FADE), ScrollTimeline(source=scroller))
        anim.play()
        scroller.scroll_top = 0
        scheduler.advance(5000)
        assert anim.current_time == percent(0)
        assert target.style["opacity"] == "0"

    def test_seek_rejected(self, scroller: Element) -> None:
        anim = Animation(KeyframeEffect(None, FADE), ScrollTimeline(source=scroller))
        with pytest.raises(InvalidStateError):
            anim.current_time = 10


class TestViewLinked:
    """Opacity follows a subject moving through its container."""

    def test_view_progress(self, scheduler: Scheduler, scroller: Element) -> None:
        subject = scroller.append_child(scroller.owner_document.create_element("div"))
        scheduler.geometry.set_bounding_box(subject, y=100, height=100, notify=False)
        timeline = ViewTimeline(subject)
        anim = Animation(KeyframeEffect(subject, FADE), timeline)
        anim.play()
        scheduler.advance(0)
        assert timeline.time_value() == -100.0
        assert anim.play_state is PlayState.RUNNING

        scheduler.geometry.set_bounding_box(subject, y=0)
        assert timeline.time_value() == pytest.approx(0.0)
        assert anim.current_time == percent(0)
        assert subject.style["opacity"] == "0"

        scheduler.geometry.set_bounding_box(subject, y=-100)
        assert timeline.time_value() == pytest.approx(100.0)
        assert anim.play_state is PlayState.FINISHED
