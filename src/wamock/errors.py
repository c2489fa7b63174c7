"""DOM-style exceptions raised by the mocks."""

from __future__ import annotations


class DOMException(Exception):
    """Base for DOM exceptions. ``name`` matches the browser's error name."""

    name = "Error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class InvalidStateError(DOMException):
    """Operation is not valid in the object's current state."""

    name = "InvalidStateError"


class AbortError(DOMException):
    """Rejection reason for promises of a canceled animation."""

    name = "AbortError"

    def __init__(self, message: str = "The user aborted a request.") -> None:
        super().__init__(message)
