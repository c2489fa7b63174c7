"""Mock configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable

ActFn = Callable[[Callable[[], None]], None]

DEFAULT_FPS = 60.0

# Marks an omitted act argument; None is a value there
_KEEP: Any = object()


@dataclass
class MockConfig:
    """Per-scheduler settings.

    Args:
        act: Optional UI-update-batching hook. When set, promise settlement and
             event dispatch run as ``act(callback)`` instead of ``callback()``.
        fps: Frame rate of the real frame loop, and the step size used when
             advancing the virtual clock.
    """

    act: ActFn | None = None
    fps: float = DEFAULT_FPS

    def __post_init__(self) -> None:
        if self.fps <= 0:
            raise ValueError(f"fps must be positive, got {self.fps}")

    @property
    def frame_duration(self) -> float:
        """Frame duration in ms."""
        return 1000.0 / self.fps

    @classmethod
    def from_env(cls) -> MockConfig:
        """Build a config, reading WAMOCK_FPS when set."""
        fps = os.environ.get("WAMOCK_FPS")
        if fps is None:
            return cls()
        try:
            return cls(fps=float(fps))
        except ValueError as exc:
            raise ValueError(f"Invalid WAMOCK_FPS value {fps!r}") from exc


def configure_mocks(
    *,
    act: ActFn | None = _KEEP,
    fps: float | None = None,
) -> MockConfig:
    """Update the current scheduler's config. Returns it.

    Omitted arguments are left unchanged; ``act=None`` removes the hook.
    """
    from wamock.scheduler import get_scheduler

    config = get_scheduler().config
    if act is not _KEEP:
        config.act = act
    if fps is not None:
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        config.fps = fps
    return config
