"""Deferred: a settle-once future with callback, blocking and await interfaces."""

from __future__ import annotations

import asyncio
import threading
from enum import Enum
from typing import Any, Callable, Generator, Generic, TypeVar

T = TypeVar("T")


class DeferredState(Enum):
    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


class Deferred(Generic[T]):
    """A value that is settled at most once, synchronously.

    Callbacks registered with then()/catch() run at settlement time, or at
    registration time if already settled. A callback that raises rejects the
    derived Deferred; a callback returning a Deferred is adopted.

    Example:
        d = Deferred()
        d.then(lambda v: print("got", v))
        d.resolve(42)  # prints "got 42"
        d.result()     # 42
    """

    def __init__(self) -> None:
        self._state = DeferredState.PENDING
        self._value: T | None = None
        self._error: BaseException | None = None
        self._callbacks: list[Callable[[], None]] = []
        self._event = threading.Event()
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        if self._state is DeferredState.FULFILLED:
            return f"Deferred(fulfilled={self._value!r})"
        if self._state is DeferredState.REJECTED:
            return f"Deferred(rejected={self._error!r})"
        return "Deferred(pending)"

    @property
    def state(self) -> DeferredState:
        return self._state

    @property
    def pending(self) -> bool:
        return self._state is DeferredState.PENDING

    @property
    def fulfilled(self) -> bool:
        return self._state is DeferredState.FULFILLED

    @property
    def rejected(self) -> bool:
        return self._state is DeferredState.REJECTED

    # Settlement -------------------------------------------------------------

    def resolve(self, value: T) -> bool:
        """Fulfill with value. Returns False if already settled."""
        return self._settle(DeferredState.FULFILLED, value, None)

    def reject(self, error: BaseException) -> bool:
        """Reject with error. Returns False if already settled."""
        return self._settle(DeferredState.REJECTED, None, error)

    def _settle(
        self, state: DeferredState, value: T | None, error: BaseException | None
    ) -> bool:
        with self._lock:
            if self._state is not DeferredState.PENDING:
                return False
            self._state = state
            self._value = value
            self._error = error
            callbacks, self._callbacks = self._callbacks, []
        self._event.set()
        for callback in callbacks:
            callback()
        return True

    def _on_settle(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if self._state is DeferredState.PENDING:
                self._callbacks.append(callback)
                return
        callback()

    # Callback interface -------------------------------------------------------

    def then(
        self,
        on_fulfilled: Callable[[T], Any] | None = None,
        on_rejected: Callable[[BaseException], Any] | None = None,
    ) -> Deferred[Any]:
        child: Deferred[Any] = Deferred()

        def run() -> None:
            if self._state is DeferredState.FULFILLED:
                handler, arg = on_fulfilled, self._value
            else:
                handler, arg = on_rejected, self._error
            if handler is None:
                if self._state is DeferredState.FULFILLED:
                    child.resolve(self._value)
                else:
                    assert self._error is not None
                    child.reject(self._error)
                return
            try:
                result = handler(arg)  # type: ignore[arg-type]
            except Exception as exc:
                child.reject(exc)
                return
            if isinstance(result, Deferred):
                result.then(child.resolve, child.reject)
            else:
                child.resolve(result)

        self._on_settle(run)
        return child

    def catch(self, on_rejected: Callable[[BaseException], Any]) -> Deferred[Any]:
        return self.then(None, on_rejected)

    def finally_(self, callback: Callable[[], Any]) -> Deferred[T]:
        """Run callback on either outcome; the result passes through unchanged."""

        def on_fulfilled(value: T) -> T:
            callback()
            return value

        def on_rejected(error: BaseException) -> Any:
            callback()
            raise error

        return self.then(on_fulfilled, on_rejected)

    # Blocking interface -------------------------------------------------------

    def wait(self, timeout: float | None = None) -> bool:
        """Block until settled. Returns False on timeout."""
        return self._event.wait(timeout)

    def result(self, timeout: float | None = None) -> T:
        """The fulfilled value; raises the rejection error.

        Raises TimeoutError if still pending after ``timeout`` seconds (0 by
        default: do not block).
        """
        if not self._event.wait(0 if timeout is None else timeout):
            raise TimeoutError("Deferred is still pending")
        if self._state is DeferredState.REJECTED:
            assert self._error is not None
            raise self._error
        return self._value  # type: ignore[return-value]

    def exception(self) -> BaseException | None:
        return self._error

    # Await interface ----------------------------------------------------------

    def __await__(self) -> Generator[Any, None, T]:
        if self.pending:
            loop = asyncio.get_running_loop()
            future: asyncio.Future[None] = loop.create_future()

            def wake() -> None:
                if not loop.is_closed():
                    loop.call_soon_threadsafe(_set_done, future)

            self._on_settle(wake)
            yield from future.__await__()
        return self.result()


def _set_done(future: asyncio.Future[None]) -> None:
    if not future.done():
        future.set_result(None)


def resolved(value: T) -> Deferred[T]:
    deferred: Deferred[T] = Deferred()
    deferred.resolve(value)
    return deferred
