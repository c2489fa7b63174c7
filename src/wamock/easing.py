"""CSS easing functions."""

from __future__ import annotations

import math
import re
from functools import lru_cache
from typing import Callable

EasingFn = Callable[[float], float]

_NUMBER = r"\s*(-?\d*\.?\d+(?:e-?\d+)?)\s*"
_CUBIC_BEZIER = re.compile(rf"^cubic-bezier\({_NUMBER},{_NUMBER},{_NUMBER},{_NUMBER}\)$")
_STEPS = re.compile(r"^steps\(\s*(\d+)\s*(?:,\s*([a-z-]+)\s*)?\)$")

STEP_POSITIONS = ("jump-start", "jump-end", "jump-none", "jump-both", "start", "end")


def linear(x: float) -> float:
    return x


def cubic_bezier(x1: float, y1: float, x2: float, y2: float) -> EasingFn:
    """Build a cubic Bézier timing function through (0,0), (x1,y1), (x2,y2), (1,1).

    Raises ValueError if either x coordinate is outside [0, 1].
    """
    if not (0.0 <= x1 <= 1.0 and 0.0 <= x2 <= 1.0):
        raise ValueError(
            f"cubic-bezier x values must be in [0, 1], got ({x1}, {x2})"
        )

    if x1 == y1 and x2 == y2:
        return linear

    def sample(a: float, b: float, t: float) -> float:
        u = 1.0 - t
        return 3 * a * u * u * t + 3 * b * u * t * t + t * t * t

    def slope(a: float, b: float, t: float) -> float:
        u = 1.0 - t
        return 3 * a * u * u + 6 * (b - a) * u * t + 3 * (1.0 - b) * t * t

    def solve_t(x: float) -> float:
        t = x
        for _ in range(8):
            err = sample(x1, x2, t) - x
            if abs(err) < 1e-7:
                return t
            d = slope(x1, x2, t)
            if abs(d) < 1e-6:
                break
            t -= err / d

        lo, hi = 0.0, 1.0
        t = x
        while lo < hi:
            err = sample(x1, x2, t) - x
            if abs(err) < 1e-7:
                return t
            if err > 0:
                hi = t
            else:
                lo = t
            t = (lo + hi) / 2
            if hi - lo < 1e-9:
                break
        return t

    def ease(x: float) -> float:
        # Outside [0, 1] extend along the end tangents
        if x <= 0.0:
            if x1 > 0:
                return y1 / x1 * x
            if y1 == 0 and x2 > 0:
                return y2 / x2 * x
            return 0.0
        if x >= 1.0:
            if x2 < 1:
                return 1.0 + (y2 - 1.0) / (x2 - 1.0) * (x - 1.0)
            if y2 == 1 and x1 < 1:
                return 1.0 + (y1 - 1.0) / (x1 - 1.0) * (x - 1.0)
            return 1.0
        return sample(y1, y2, solve_t(x))

    return ease


def steps(count: int, position: str = "end") -> EasingFn:
    """Build a step timing function.

    Raises ValueError for an unknown position or a step count too small for it.
    """
    if position not in STEP_POSITIONS:
        raise ValueError(f"Unknown step position {position!r}")
    if count < 1 or (position == "jump-none" and count < 2):
        raise ValueError(f"Invalid step count {count} for position {position!r}")

    if position == "jump-both":
        jumps = count + 1
    elif position == "jump-none":
        jumps = count - 1
    else:
        jumps = count
    starts_high = position in ("jump-start", "start", "jump-both")

    def ease(x: float) -> float:
        step = math.floor(x * count)
        if starts_high:
            step += 1
        if x >= 0 and step < 0:
            step = 0
        if x <= 1 and step > jumps:
            step = jumps
        return step / jumps

    return ease


KEYWORDS: dict[str, EasingFn] = {
    "linear": linear,
    "ease": cubic_bezier(0.25, 0.1, 0.25, 1.0),
    "ease-in": cubic_bezier(0.42, 0.0, 1.0, 1.0),
    "ease-out": cubic_bezier(0.0, 0.0, 0.58, 1.0),
    "ease-in-out": cubic_bezier(0.42, 0.0, 0.58, 1.0),
    "step-start": steps(1, "start"),
    "step-end": steps(1, "end"),
}


@lru_cache(maxsize=128)
def parse_easing(value: str) -> EasingFn:
    """Parse a CSS easing string into a function of progress.

    Example:
        ease = parse_easing("cubic-bezier(0.4, 0, 0.2, 1)")
        ease(0.5)
    """
    text = value.strip().lower()
    if text in KEYWORDS:
        return KEYWORDS[text]

    match = _CUBIC_BEZIER.match(text)
    if match:
        x1, y1, x2, y2 = (float(g) for g in match.groups())
        try:
            return cubic_bezier(x1, y1, x2, y2)
        except ValueError as exc:
            raise ValueError(f"Invalid easing {value!r}: {exc}") from exc

    match = _STEPS.match(text)
    if match:
        count, position = match.groups()
        try:
            return steps(int(count), position or "end")
        except ValueError as exc:
            raise ValueError(f"Invalid easing {value!r}: {exc}") from exc

    raise ValueError(f"Invalid easing {value!r}")
