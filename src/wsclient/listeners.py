"""Listener contract and the ordered registry that fans events out.

A :class:`~wsclient.client.Request` notifies its listeners of five events:

============== ==============================================================
``on_request``  before the round trip starts (on the caller's context)
``on_cancel``   when a running request is cancelled or superseded
``on_complete`` after the round trip ended, with or without errors
``on_success``  after ``on_complete``, when the payload carries no error
``on_error``    after ``on_complete``, on transport or business errors
============== ==============================================================

Listeners are plain objects implementing :class:`RequestListener`. Subclass
:class:`EventListener` to override only the callbacks you need, or wrap
functions with :class:`CallbackListener`.
"""

from __future__ import annotations

from typing import Any, Callable, Generic, Iterator, Optional, Protocol, TypeVar, runtime_checkable

T = TypeVar("T")
T_contra = TypeVar("T_contra", contravariant=True)


@runtime_checkable
class RequestListener(Protocol[T_contra]):
    """Observer of one request client's lifecycle events."""

    def on_request(self, url: str) -> None: ...

    def on_cancel(self, url: str) -> None: ...

    def on_complete(self, url: str) -> None: ...

    def on_success(self, url: str, payload: T_contra) -> None: ...

    def on_error(self, url: str, code: str, message: str) -> None: ...


class EventListener(Generic[T]):
    """Listener whose callbacks all do nothing. Override what you need.

    Example::

        class PrintStatus(EventListener[dict]):
            def on_success(self, url: str, payload: dict) -> None:
                print(url, payload["status"])
    """

    def on_request(self, url: str) -> None:
        pass

    def on_cancel(self, url: str) -> None:
        pass

    def on_complete(self, url: str) -> None:
        pass

    def on_success(self, url: str, payload: T) -> None:
        pass

    def on_error(self, url: str, code: str, message: str) -> None:
        pass


class CallbackListener(EventListener[T]):
    """Adapt plain functions to the listener contract.

    Args:
        on_request: Called with ``url``.
        on_cancel: Called with ``url``.
        on_complete: Called with ``url``.
        on_success: Called with ``url, payload``.
        on_error: Called with ``url, code, message``.
    """

    def __init__(
        self,
        on_request: Optional[Callable[[str], Any]] = None,
        on_cancel: Optional[Callable[[str], Any]] = None,
        on_complete: Optional[Callable[[str], Any]] = None,
        on_success: Optional[Callable[[str, T], Any]] = None,
        on_error: Optional[Callable[[str, str, str], Any]] = None,
    ) -> None:
        self._on_request = on_request
        self._on_cancel = on_cancel
        self._on_complete = on_complete
        self._on_success = on_success
        self._on_error = on_error

    def on_request(self, url: str) -> None:
        if self._on_request is not None:
            self._on_request(url)

    def on_cancel(self, url: str) -> None:
        if self._on_cancel is not None:
            self._on_cancel(url)

    def on_complete(self, url: str) -> None:
        if self._on_complete is not None:
            self._on_complete(url)

    def on_success(self, url: str, payload: T) -> None:
        if self._on_success is not None:
            self._on_success(url, payload)

    def on_error(self, url: str, code: str, message: str) -> None:
        if self._on_error is not None:
            self._on_error(url, code, message)


class ListenerRegistry(Generic[T]):
    """Insertion-ordered, append-only sequence of listeners.

    Each ``fire_*`` method calls every listener once, synchronously and in
    insertion order, over a snapshot of the list taken when the dispatch
    starts. Listeners added during a dispatch see the next event, not the
    current one. A listener that raises aborts the remaining notifications
    for that event; the exception propagates to whoever fired it.
    """

    def __init__(self) -> None:
        self._listeners: list[RequestListener[T]] = []

    def add(self, listener: RequestListener[T]) -> None:
        """Append *listener*. The same listener may be added more than once."""
        self._listeners.append(listener)

    def __len__(self) -> int:
        return len(self._listeners)

    def __iter__(self) -> Iterator[RequestListener[T]]:
        return iter(list(self._listeners))

    def fire_request(self, url: str) -> None:
        for listener in list(self._listeners):
            listener.on_request(url)

    def fire_cancel(self, url: str) -> None:
        for listener in list(self._listeners):
            listener.on_cancel(url)

    def fire_complete(self, url: str) -> None:
        for listener in list(self._listeners):
            listener.on_complete(url)

    def fire_success(self, url: str, payload: T) -> None:
        for listener in list(self._listeners):
            listener.on_success(url, payload)

    def fire_error(self, url: str, code: str, message: str) -> None:
        for listener in list(self._listeners):
            listener.on_error(url, code, message)
