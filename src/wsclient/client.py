"""Asynchronous request client -- one cancellable request at a time.

This module provides :class:`Request`, the event-driven counterpart to the
blocking helpers in :mod:`wsclient.sync`. A client holds a request
configuration and a list of listeners; :meth:`Request.send` runs the round
trip on a background worker thread and reports the result to the listeners
on the client's delivery context (see :mod:`wsclient.dispatch`).

Lifecycle of one operation::

    send(url) -> SENDING -> IN_FLIGHT -> COMPLETED    on_complete, on_success
                                      -> FAILED       on_complete, on_error
    cancel()  -> SENDING or IN_FLIGHT -> CANCELLED    on_cancel

Guarantees for a single client:

- at most one operation exists; ``send()`` cancels its predecessor first;
- ``on_request`` precedes every other event of the same operation, and
  ``on_complete`` precedes ``on_success``/``on_error``;
- a cancelled operation never reports ``on_complete``/``on_success``/
  ``on_error``, even if its worker finished in the meantime;
- failures never escape ``send()``: every non-cancelled operation ends
  with exactly one ``on_complete`` + ``on_success``/``on_error`` pair.

Example::

    client = Request.json(timeout_ms=10_000)
    client.add_listener(CallbackListener(on_success=lambda url, obj: print(obj)))
    client.send("https://api.example.com/ws/status")
    client.join()
"""

from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Mapping, Optional, TypeVar
from xml.etree.ElementTree import Element

import httpx
from pydantic import ValidationError

from wsclient.decoders import (
    Decoded,
    Outcome,
    classify_failure,
    decode_json,
    decode_text,
    decode_xml,
    outcome_from,
)
from wsclient.dispatch import Dispatcher, LoopDispatcher, QueueDispatcher
from wsclient.exceptions import InvalidUsageError
from wsclient.listeners import ListenerRegistry, RequestListener
from wsclient.models import OperationState, RequestConfig, Settings
from wsclient.output import debug
from wsclient.transport import Connection, read_string

T = TypeVar("T")

_JOIN_POLL_INTERVAL = 0.1


@dataclass(eq=False)
class _Operation:
    """One send() call: its URL, frozen config and in-flight handles."""

    url: str
    config: RequestConfig
    dispatcher: Dispatcher
    state: OperationState = OperationState.SENDING
    connection: Optional[Connection] = None
    worker: Optional[threading.Thread] = None
    cancelled: bool = False
    done: threading.Event = field(default_factory=threading.Event)


class Request(Generic[T]):
    """Event-driven HTTP client parameterised by a response decoder.

    Args:
        decoder: Turns the raw response text into a
            :class:`~wsclient.decoders.Decoded` payload. Use
            :meth:`json`, :meth:`xml` or :meth:`text` for the built-in ones.
        timeout_ms: Connect/read timeout. Defaults to ``settings.timeout_ms``.
        headers: Initial request headers.
        dispatcher: Context on which terminal events are delivered. When
            ``None``, ``send()`` uses the running :mod:`asyncio` loop if there
            is one, otherwise the client's own queue, drained by
            :meth:`join` or :meth:`process_events`.
        settings: Transport defaults (user agent, default headers, SSL and
            redirect flags).
        transport: Optional :class:`httpx.BaseTransport` used for every
            connection, e.g. :class:`httpx.MockTransport` in tests.
    """

    def __init__(
        self,
        decoder: Callable[[str], Decoded[T]],
        *,
        timeout_ms: Optional[int] = None,
        headers: Optional[Mapping[str, str]] = None,
        dispatcher: Optional[Dispatcher] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._decoder = decoder
        self._settings = settings or Settings()
        try:
            self._config = RequestConfig(
                timeout_ms=timeout_ms if timeout_ms is not None else self._settings.timeout_ms,
                headers=dict(headers or {}),
            )
        except ValidationError as exc:
            raise InvalidUsageError(f"Invalid request configuration: {exc}") from exc
        self._listeners: ListenerRegistry[T] = ListenerRegistry()
        self._dispatcher = dispatcher
        self._own_dispatcher = QueueDispatcher()
        self._transport = transport

        self._lock = threading.RLock()
        self._operation: Optional[_Operation] = None
        self._state = OperationState.IDLE
        self._raw_response: Optional[str] = None
        self._last_outcome: Optional[Outcome[T]] = None

    # ------------------------------------------------------------------ #
    # Constructors for the built-in decoders
    # ------------------------------------------------------------------ #

    @classmethod
    def json(cls, **kwargs: Any) -> Request[dict[str, Any]]:
        """Client whose payloads are JSON objects, see :func:`~wsclient.decoders.decode_json`."""
        return cls(decode_json, **kwargs)  # type: ignore[arg-type]

    @classmethod
    def xml(cls, **kwargs: Any) -> Request[Element]:
        """Client whose payloads are XML root elements, see :func:`~wsclient.decoders.decode_xml`."""
        return cls(decode_xml, **kwargs)  # type: ignore[arg-type]

    @classmethod
    def text(cls, **kwargs: Any) -> Request[str]:
        """Client whose payloads are the raw response text."""
        return cls(decode_text, **kwargs)  # type: ignore[arg-type]

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> Request[T]:
        return self

    def __exit__(self, *args: object) -> None:
        self.cancel()

    # ------------------------------------------------------------------ #
    # Configuration (takes effect on the next send)
    # ------------------------------------------------------------------ #

    @property
    def config(self) -> RequestConfig:
        """The live configuration used by the next :meth:`send`."""
        return self._config

    @property
    def listeners(self) -> ListenerRegistry[T]:
        return self._listeners

    def add_listener(self, listener: RequestListener[T]) -> Request[T]:
        """Append *listener* to the registry. Returns ``self`` for chaining."""
        self._listeners.add(listener)
        return self

    def add_listeners(self, *listeners: RequestListener[T]) -> Request[T]:
        for listener in listeners:
            self._listeners.add(listener)
        return self

    def set_timeout(self, timeout_ms: int) -> Request[T]:
        """Set the connect/read timeout in milliseconds."""
        self._assign(timeout_ms=timeout_ms)
        return self

    def set_request_headers(self, headers: Mapping[str, str]) -> Request[T]:
        """Replace all request headers with *headers*."""
        self._config.headers = {str(k): str(v) for k, v in headers.items()}
        return self

    def add_request_header(self, name: str, value: str) -> Request[T]:
        headers = dict(self._config.headers)
        headers[name] = value
        self._config.headers = headers
        return self

    def clear_request_headers(self) -> Request[T]:
        self._config.headers = {}
        return self

    def set_request_method(self, method: str) -> Request[T]:
        """Set the request method (default ``GET``)."""
        self._assign(method=method)
        return self

    def set_request_body(self, body: Any) -> Request[T]:
        """Set the request body; a ``GET`` method is switched to ``POST``.

        ``dict``/``list`` bodies are sent as JSON, anything else as its
        ``str()`` form with a form-encoded content type.
        """
        self._config.body = body
        if body is not None and self._config.method == "GET":
            self._config.method = "POST"
        return self

    def set_request_method_and_body(self, method: str, body: Any) -> Request[T]:
        self.set_request_method(method)
        return self.set_request_body(body)

    def clear_request_body(self) -> Request[T]:
        self._config.body = None
        return self

    def _assign(self, **values: Any) -> None:
        for name, value in values.items():
            try:
                setattr(self._config, name, value)
            except ValidationError as exc:
                raise InvalidUsageError(f"Invalid {name}: {value!r}") from exc

    # ------------------------------------------------------------------ #
    # State
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> OperationState:
        """State of the most recent operation (``IDLE`` before the first send)."""
        with self._lock:
            return self._state

    def is_running(self) -> bool:
        """True from the start of :meth:`send` until its terminal or cancel event."""
        with self._lock:
            return self._operation is not None

    def get_raw_response(self) -> Optional[str]:
        """The last response body read successfully, or ``None``."""
        with self._lock:
            return self._raw_response

    @property
    def last_outcome(self) -> Optional[Outcome[T]]:
        """How the most recent non-cancelled operation ended, or ``None``."""
        with self._lock:
            return self._last_outcome

    # ------------------------------------------------------------------ #
    # Send / cancel
    # ------------------------------------------------------------------ #

    def send(self, url: str) -> None:
        """Start a request to *url*, cancelling any request still running.

        Fires ``on_request`` synchronously, then returns immediately; the
        round trip runs on a worker thread. Results arrive through the
        listeners only.
        """
        operation = _Operation(
            url=url,
            config=self._snapshot_config(),
            dispatcher=self._resolve_dispatcher(),
        )
        # An on_cancel listener may start another operation; cancel until none is left.
        while True:
            self.cancel()
            with self._lock:
                if self._operation is None:
                    self._operation = operation
                    self._state = OperationState.SENDING
                    break

        debug(f"Sending {operation.config.method} {url}")
        try:
            self._listeners.fire_request(url)
        except BaseException:
            self._abandon(operation)
            raise

        worker = threading.Thread(
            target=self._run,
            args=(operation,),
            name="wsclient-request",
            daemon=True,
        )
        operation.worker = worker
        worker.start()

    def cancel(self) -> None:
        """Cancel the running request, if any. Safe to call at any time.

        The operation's late result, if it ever arrives, is dropped. An open
        connection is closed on a separate thread so the caller never waits
        for socket teardown. Listeners get ``on_cancel(url)``.
        """
        with self._lock:
            operation = self._operation
            if operation is None:
                return
            operation.cancelled = True
            operation.state = OperationState.CANCELLED
            connection, operation.connection = operation.connection, None
            self._operation = None
            self._state = OperationState.CANCELLED
            operation.done.set()

        url = operation.url
        if connection is not None:
            url = connection.url
            threading.Thread(
                target=connection.disconnect,
                name="wsclient-disconnect",
                daemon=True,
            ).start()

        debug(f"Cancelled {url}")
        self._listeners.fire_cancel(url)

    # ------------------------------------------------------------------ #
    # Waiting for results
    # ------------------------------------------------------------------ #

    def join(self, timeout: Optional[float] = None) -> bool:
        """Block until the current operation has delivered its events.

        When results are delivered through a :class:`QueueDispatcher` (the
        default outside an event loop), this drains the queue on the calling
        thread, so listeners run here.

        Args:
            timeout: Maximum seconds to wait, or ``None`` to wait forever.

        Returns:
            ``True`` once no operation is running, ``False`` on timeout.

        Raises:
            InvalidUsageError: If results go to an :mod:`asyncio` loop, which
                cannot be drained from here.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                operation = self._operation
            if operation is None:
                return True

            remaining = _JOIN_POLL_INTERVAL
            if deadline is not None:
                remaining = min(remaining, deadline - time.monotonic())
                if remaining <= 0:
                    return False

            dispatcher = operation.dispatcher
            if isinstance(dispatcher, QueueDispatcher):
                dispatcher.run_once(timeout=remaining)
            elif isinstance(dispatcher, LoopDispatcher):
                raise InvalidUsageError(
                    "join() cannot drain an asyncio loop; wait for a listener event instead"
                )
            else:
                operation.done.wait(remaining)

    def process_events(self) -> int:
        """Run every event already queued for this client's own queue."""
        return self._own_dispatcher.run_pending()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _snapshot_config(self) -> RequestConfig:
        """Copy the configuration and merge in the settings' default headers."""
        headers = dict(self._settings.default_headers)
        headers.update(self._config.headers)
        user_agent = self._settings.user_agent
        if user_agent and not any(name.lower() == "user-agent" for name in headers):
            headers["User-Agent"] = user_agent
        return self._config.model_copy(update={"headers": headers})

    def _resolve_dispatcher(self) -> Dispatcher:
        if self._dispatcher is not None:
            return self._dispatcher
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return self._own_dispatcher
        return LoopDispatcher(loop)

    def _abandon(self, operation: _Operation) -> None:
        """Forget *operation* without events, used when ``on_request`` raised."""
        with self._lock:
            operation.cancelled = True
            if self._operation is operation:
                self._operation = None
                self._state = OperationState.CANCELLED
            operation.done.set()

    def _open(self, operation: _Operation) -> Optional[Connection]:
        """Open the connection unless *operation* was cancelled already."""
        with self._lock:
            if operation.cancelled:
                return None
            connection = Connection(
                operation.url,
                timeout_ms=operation.config.timeout_ms,
                verify_ssl=self._settings.verify_ssl,
                follow_redirects=self._settings.follow_redirects,
                transport=self._transport,
            )
            operation.connection = connection
            operation.state = OperationState.IN_FLIGHT
            if self._operation is operation:
                self._state = OperationState.IN_FLIGHT
            return connection

    def _release(self, operation: _Operation, connection: Connection) -> None:
        with self._lock:
            if operation.connection is connection:
                operation.connection = None
        connection.disconnect()

    def _run(self, operation: _Operation) -> None:
        """Worker thread body: round trip, decode, hand the result over."""
        raw: Optional[str] = None
        decoded: Optional[Decoded[T]] = None
        failure: Optional[Exception] = None
        try:
            connection = self._open(operation)
            if connection is None:
                return
            try:
                config = operation.config
                raw = read_string(connection, config.headers, config.method, config.body)
                decoded = self._decoder(raw)
            finally:
                self._release(operation, connection)
        except Exception as exc:
            failure = exc

        if operation.cancelled:
            debug(f"Dropping result of cancelled request to {operation.url}")
            return
        try:
            operation.dispatcher.call_soon(self._deliver, operation, raw, decoded, failure)
        except RuntimeError as exc:
            # The event loop was closed before the request finished.
            debug(f"Could not deliver result for {operation.url}: {exc}")

    def _deliver(
        self,
        operation: _Operation,
        raw: Optional[str],
        decoded: Optional[Decoded[T]],
        failure: Optional[Exception],
    ) -> None:
        """Runs on the delivery context: classify and notify listeners."""
        with self._lock:
            if operation.cancelled or self._operation is not operation:
                debug(f"Dropping superseded result for {operation.url}")
                return
            self._operation = None
            if raw is not None:
                self._raw_response = raw

            if failure is not None or decoded is None:
                outcome = classify_failure(failure or RuntimeError("no result"))
            else:
                outcome = outcome_from(decoded)
            self._state = OperationState.COMPLETED if outcome.is_success else OperationState.FAILED
            self._last_outcome = outcome
            operation.state = self._state
            operation.done.set()

        url = operation.url
        debug(f"Finished {url}: {outcome.kind.value}")
        self._listeners.fire_complete(url)
        if outcome.is_success:
            self._listeners.fire_success(url, outcome.payload)  # type: ignore[arg-type]
        else:
            self._listeners.fire_error(url, outcome.code or "", outcome.message or "")
