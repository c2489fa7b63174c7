"""Style applier: writes resolved keyframe values onto element inline styles."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from wamock.effects import NON_STYLE_KEYS
from wamock.model import Element, css_property_name

logger = logging.getLogger(__name__)

# Keys of computed keyframes that are not style properties either
_SKIPPED_KEYS = frozenset(NON_STYLE_KEYS) | {"computed_offset"}


def format_value(value: Any) -> str:
    """Serialise a keyframe value the way a style declaration stores it."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class StyleApplier:
    """Writes keyframe values to ``element.style``.

    A value of None or "" removes the property. Non-style keyframe keys
    (offset, easing, composite) are skipped.
    """

    def apply(self, target: Element, values: Mapping[str, Any]) -> None:
        for name, value in values.items():
            if name in _SKIPPED_KEYS:
                continue
            prop = css_property_name(name)
            if value is None or value == "":
                target.style.remove_property(prop)
            else:
                target.style.set_property(prop, format_value(value))
        logger.debug("Applied %r to %r", dict(values), target)

    def snapshot(self, target: Element, properties: Iterable[str]) -> dict[str, str]:
        """Current inline values of ``properties`` ("" when unset)."""
        return {name: target.style.get_property_value(name) for name in properties}

    def restore(self, target: Element, snapshot: Mapping[str, str]) -> None:
        """Put back values captured by snapshot()."""
        self.apply(target, snapshot)
