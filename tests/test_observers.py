"""Tests for IntersectionObserver and ResizeObserver mocks."""

from unittest.mock import MagicMock

import pytest

from wamock import (
    DOMRect,
    Element,
    IntersectionObserver,
    ResizeObserver,
    ResizeObserverSize,
    Scheduler,
)


class TestIntersectionObserver:
    """Manual intersection triggers."""

    def test_enter_node(self, scheduler: Scheduler, element: Element) -> None:
        callback = MagicMock()
        observer = IntersectionObserver(callback)
        observer.observe(element)
        scheduler.intersection.enter_node(element)
        entries, passed = callback.call_args[0]
        assert passed is observer
        assert len(entries) == 1
        assert entries[0].target is element
        assert entries[0].is_intersecting
        assert entries[0].intersection_ratio == 1.0
        assert scheduler.intersection.is_intersecting(element)

    def test_leave_node(self, scheduler: Scheduler, element: Element) -> None:
        callback = MagicMock()
        IntersectionObserver(callback).observe(element)
        scheduler.intersection.leave_node(element)
        entry = callback.call_args[0][0][0]
        assert not entry.is_intersecting
        assert entry.intersection_rect == DOMRect()

    def test_rect_written_to_geometry(self, scheduler: Scheduler, element: Element) -> None:
        IntersectionObserver(MagicMock()).observe(element)
        scheduler.intersection.enter_node(element, {"top": 100, "height": 50}, ratio=0.5)
        assert element.get_bounding_client_rect() == DOMRect(0, 100, 0, 50)

    def test_unobserved_node(self, scheduler: Scheduler, element: Element) -> None:
        with pytest.raises(ValueError, match="is not observed"):
            scheduler.intersection.enter_node(element)

    def test_enter_all(self, scheduler: Scheduler, element: Element) -> None:
        other = element.owner_document.create_element("div")
        callback = MagicMock()
        observer = IntersectionObserver(callback)
        observer.observe(element)
        observer.observe(other)
        scheduler.intersection.enter_all()
        assert [e.target for e in callback.call_args[0][0]] == [element, other]

    def test_only_watching_observers_called(
        self, scheduler: Scheduler, element: Element
    ) -> None:
        watching, idle = MagicMock(), MagicMock()
        IntersectionObserver(watching).observe(element)
        IntersectionObserver(idle)
        scheduler.intersection.enter_node(element)
        watching.assert_called_once()
        idle.assert_not_called()

    def test_disconnect(self, scheduler: Scheduler, element: Element) -> None:
        callback = MagicMock()
        observer = IntersectionObserver(callback)
        observer.observe(element)
        observer.disconnect()
        with pytest.raises(ValueError):
            scheduler.intersection.enter_node(element)
        callback.assert_not_called()

    def test_invalid_threshold(self) -> None:
        with pytest.raises(ValueError):
            IntersectionObserver(MagicMock(), {"threshold": [0, 1.5]})

    def test_options(self, element: Element) -> None:
        observer = IntersectionObserver(
            MagicMock(), {"root": element, "rootMargin": "10px", "threshold": 0.5}
        )
        assert observer.root is element
        assert observer.root_margin == "10px"
        assert observer.thresholds == [0.5]

    def test_observe_non_element(self) -> None:
        with pytest.raises(TypeError):
            IntersectionObserver(MagicMock()).observe("div")  # type: ignore[arg-type]


class TestResizeObserver:
    """Manual resize triggers."""

    def test_resize(self, scheduler: Scheduler, element: Element) -> None:
        callback = MagicMock()
        observer = ResizeObserver(callback)
        observer.observe(element)
        scheduler.resize.set_size(element, {"inline_size": 200, "block_size": 100})
        scheduler.resize.resize(element)
        entries, passed = callback.call_args[0]
        assert passed is observer
        assert entries[0].content_rect == DOMRect(0, 0, 200, 100)
        assert entries[0].border_box_size == [ResizeObserverSize(200, 100)]

    def test_implicit_first_delivery(self, scheduler: Scheduler, element: Element) -> None:
        callback = MagicMock()
        ResizeObserver(callback).observe(element)
        scheduler.resize.set_size(element, ResizeObserverSize(10, 10))
        scheduler.resize.resize()
        assert callback.call_count == 1
        scheduler.resize.resize()
        assert callback.call_count == 1

    def test_ignore_implicit(self, scheduler: Scheduler, element: Element) -> None:
        callback = MagicMock()
        ResizeObserver(callback).observe(element)
        scheduler.resize.set_size(element, ResizeObserverSize(10, 10))
        scheduler.resize.resize(ignore_implicit=True)
        callback.assert_not_called()

    def test_zero_size_skipped(self, scheduler: Scheduler, element: Element) -> None:
        callback = MagicMock()
        ResizeObserver(callback).observe(element)
        scheduler.resize.resize(element)
        callback.assert_not_called()

    def test_falls_back_to_bounding_box(self, scheduler: Scheduler, element: Element) -> None:
        callback = MagicMock()
        ResizeObserver(callback).observe(element)
        scheduler.geometry.set_bounding_box(element, width=30, height=40)
        scheduler.resize.resize(element)
        assert callback.call_args[0][0][0].content_rect == DOMRect(0, 0, 30, 40)

    def test_set_size_errors(self, scheduler: Scheduler, element: Element) -> None:
        with pytest.raises(ValueError, match="Neither"):
            scheduler.resize.set_size(element)
        with pytest.raises(ValueError, match="same number"):
            scheduler.resize.set_size(
                element,
                content_box_size=[ResizeObserverSize(1, 1)],
                border_box_size=[ResizeObserverSize(1, 1), ResizeObserverSize(2, 2)],
            )
        with pytest.raises(ValueError, match="negative"):
            scheduler.resize.set_size(element, {"inlineSize": -1, "blockSize": 2})

    def test_invalid_box(self, element: Element) -> None:
        with pytest.raises(TypeError):
            ResizeObserver(MagicMock()).observe(element, box="margin-box")

    def test_unobserve(self, scheduler: Scheduler, element: Element) -> None:
        callback = MagicMock()
        observer = ResizeObserver(callback)
        observer.observe(element)
        observer.unobserve(element)
        scheduler.resize.set_size(element, ResizeObserverSize(10, 10))
        scheduler.resize.resize(element)
        callback.assert_not_called()
        assert scheduler.resize.observed_elements() == []
