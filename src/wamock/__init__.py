"""wamock - Web Animations mocks for tests without a renderer."""

from wamock.model import Document, Element, Event, EventTarget, StyleDeclaration
from wamock.geometry import DOMRect, GeometryProvider, ScrollMetrics, Subscription
from wamock.units import CSSUnitValue, percent, ms, s, to_number
from wamock.easing import parse_easing
from wamock.effects import (
    ComputedTiming,
    EffectTiming,
    Keyframe,
    KeyframeEffect,
    Phase,
    convert_property_indexed,
)
from wamock.timelines import (
    AnimationTimeline,
    DocumentTimeline,
    ScrollTimeline,
    ViewTimeline,
)
from wamock.promise import Deferred, DeferredState
from wamock.applier import StyleApplier
from wamock.animation import Animation, AnimationPlaybackEvent, PlayState, animate
from wamock.scheduler import (
    Scheduler,
    advance,
    enable_virtual_clock,
    get_document,
    get_scheduler,
    reset,
    restore_real_clock,
)
from wamock.observers import (
    IntersectionObserver,
    IntersectionObserverEntry,
    ResizeObserver,
    ResizeObserverEntry,
    ResizeObserverSize,
)
from wamock.config import MockConfig, configure_mocks
from wamock.errors import AbortError, DOMException, InvalidStateError

__all__ = [
    # Document model
    "Document",
    "Element",
    "Event",
    "EventTarget",
    "StyleDeclaration",
    # Geometry
    "DOMRect",
    "GeometryProvider",
    "ScrollMetrics",
    "Subscription",
    # Units
    "CSSUnitValue",
    "percent",
    "ms",
    "s",
    "to_number",
    # Effects
    "parse_easing",
    "ComputedTiming",
    "EffectTiming",
    "Keyframe",
    "KeyframeEffect",
    "Phase",
    "convert_property_indexed",
    # Timelines
    "AnimationTimeline",
    "DocumentTimeline",
    "ScrollTimeline",
    "ViewTimeline",
    # Animation
    "Deferred",
    "DeferredState",
    "StyleApplier",
    "Animation",
    "AnimationPlaybackEvent",
    "PlayState",
    "animate",
    # Scheduler
    "Scheduler",
    "advance",
    "enable_virtual_clock",
    "get_document",
    "get_scheduler",
    "reset",
    "restore_real_clock",
    # Observers
    "IntersectionObserver",
    "IntersectionObserverEntry",
    "ResizeObserver",
    "ResizeObserverEntry",
    "ResizeObserverSize",
    # Config and errors
    "MockConfig",
    "configure_mocks",
    "AbortError",
    "DOMException",
    "InvalidStateError",
]

__version__ = "0.1.0"
