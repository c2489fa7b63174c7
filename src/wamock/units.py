"""Typed CSS numeric values (the CSSUnitValue subset timelines need)."""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CSSUnitValue:
    """A number with a CSS unit, e.g. ``CSSUnitValue(50.0, "percent")``."""

    value: float
    unit: str = "number"

    def __repr__(self) -> str:
        return f"CSSUnitValue({self.value!r}, {self.unit!r})"

    def __str__(self) -> str:
        suffix = {"percent": "%", "number": ""}.get(self.unit, self.unit)
        return f"{_format_number(self.value)}{suffix}"


def percent(value: float) -> CSSUnitValue:
    return CSSUnitValue(float(value), "percent")


def ms(value: float) -> CSSUnitValue:
    return CSSUnitValue(float(value), "ms")


def s(value: float) -> CSSUnitValue:
    return CSSUnitValue(float(value), "s")


CSSNumberish = float | int | CSSUnitValue


def to_number(value: CSSNumberish | None) -> float | None:
    """Convert a CSSNumberish to a plain number.

    Seconds are converted to milliseconds. Percentages pass through as their
    percentage number. Any other unit cannot be placed on a timeline and
    yields None.
    """
    if value is None:
        return None
    if isinstance(value, CSSUnitValue):
        if value.unit == "s":
            return value.value * 1000.0
        if value.unit in ("ms", "number", "percent"):
            return value.value
        logger.warning("Unsupported CSS unit %r, returning None", value.unit)
        return None
    return float(value)


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))
