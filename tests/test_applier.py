"""Tests for the style applier."""

import pytest

from wamock import Element, StyleApplier
from wamock.applier import format_value


@pytest.fixture
def applier() -> StyleApplier:
    return StyleApplier()


class TestFormatValue:
    """Keyframe value serialisation."""

    def test_numbers(self) -> None:
        assert format_value(0) == "0"
        assert format_value(1.0) == "1"
        assert format_value(0.5) == "0.5"

    def test_other(self) -> None:
        assert format_value("10px") == "10px"
        assert format_value(True) == "true"


class TestStyleApplier:
    """Writing keyframe values to inline styles."""

    def test_apply(self, applier: StyleApplier, element: Element) -> None:
        applier.apply(element, {"opacity": 0.5, "backgroundColor": "red"})
        assert element.style["opacity"] == "0.5"
        assert element.style["background-color"] == "red"

    def test_skips_non_style_keys(self, applier: StyleApplier, element: Element) -> None:
        applier.apply(
            element,
            {"offset": 0, "easing": "linear", "composite": "replace", "computed_offset": 0},
        )
        assert len(element.style) == 0

    def test_none_removes(self, applier: StyleApplier, element: Element) -> None:
        element.style.set_property("opacity", "1")
        applier.apply(element, {"opacity": None})
        assert "opacity" not in element.style

    def test_snapshot_restore(self, applier: StyleApplier, element: Element) -> None:
        element.style.set_property("opacity", "0.3")
        snap = applier.snapshot(element, ["opacity", "transform"])
        assert snap == {"opacity": "0.3", "transform": ""}
        applier.apply(element, {"opacity": 1, "transform": "scale(2)"})
        applier.restore(element, snap)
        assert element.style["opacity"] == "0.3"
        assert "transform" not in element.style
