"""Tests for CSS numeric values."""

import logging

import pytest

from wamock import CSSUnitValue, ms, percent, s, to_number


class TestCSSUnitValue:
    """Typed values."""

    def test_factories(self) -> None:
        assert percent(50) == CSSUnitValue(50.0, "percent")
        assert ms(10) == CSSUnitValue(10.0, "ms")
        assert s(2).unit == "s"

    def test_str(self) -> None:
        assert str(percent(50)) == "50%"
        assert str(percent(12.5)) == "12.5%"
        assert str(CSSUnitValue(3.0)) == "3"
        assert str(ms(16)) == "16ms"


class TestToNumber:
    """CSSNumberish conversion."""

    def test_plain(self) -> None:
        assert to_number(5) == 5.0
        assert to_number(None) is None

    def test_units(self) -> None:
        assert to_number(s(1.5)) == 1500.0
        assert to_number(ms(20)) == 20.0
        assert to_number(percent(30)) == 30.0

    def test_unsupported_unit(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="wamock.units"):
            assert to_number(CSSUnitValue(1.0, "em")) is None
        assert "em" in caplog.text
