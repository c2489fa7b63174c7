"""Shared fixtures: a fresh virtual-clock scheduler per test."""

from __future__ import annotations

from typing import Iterator

import pytest

from wamock import Document, Element, MockConfig, Scheduler


@pytest.fixture
def scheduler() -> Iterator[Scheduler]:
    """Scheduler on a virtual clock at t=0, current for the test."""
    sched = Scheduler(MockConfig())
    sched.enable_virtual_clock()
    with sched:
        yield sched
    sched.reset()


@pytest.fixture
def document(scheduler: Scheduler) -> Document:
    return scheduler.document


@pytest.fixture
def element(document: Document) -> Element:
    """A div attached to the body."""
    return document.body.append_child(document.create_element("div"))
