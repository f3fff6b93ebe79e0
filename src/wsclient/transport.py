"""Synchronous HTTP transport -- one blocking round trip per :class:`Connection`.

This is the leaf of the request stack. It is stateless apart from the
connection object the caller owns, and it is used both by the background
worker of :class:`~wsclient.client.Request` and directly by the blocking
helpers in :mod:`wsclient.sync`.

The round trip:

- applies connect/read/write timeouts from the caller's millisecond value;
- applies every header from the caller's mapping;
- sends a body when one is given (JSON for ``dict``/``list``, form-encoded
  text otherwise);
- raises :class:`~wsclient.exceptions.StatusError` for status codes of 400
  and above without reading the body;
- reads the body in :data:`READ_BUFFER_SIZE` chunks through an incremental
  UTF-8 decoder and returns the concatenated text.

Failures from :mod:`httpx` are mapped onto the
:class:`~wsclient.exceptions.TransportError` family, keeping the original
exception as ``__cause__``.
"""

from __future__ import annotations

import codecs
import json
import socket
import threading
from typing import Any, Mapping, Optional

import httpx

from wsclient.exceptions import ConnectionError_, StatusError, TransportError
from wsclient.models import DEFAULT_TIMEOUT_MS
from wsclient.output import debug

READ_BUFFER_SIZE = 4 * 1024

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class Connection:
    """A single-use HTTP connection to *url*.

    Wraps an :class:`httpx.Client` dedicated to one round trip so that it
    can be torn down from another thread while the round trip is blocked on
    the socket. The connection is never closed by :func:`read_string`; the
    owner calls :meth:`disconnect` when done.

    Args:
        url: Target URL, kept so cancellation can report it.
        timeout_ms: Connect, read, write and pool timeout in milliseconds.
        verify_ssl: Verify server certificates.
        follow_redirects: Let :mod:`httpx` follow redirects.
        transport: Optional :class:`httpx.BaseTransport`, used by tests to
            plug in :class:`httpx.MockTransport`.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        verify_ssl: bool = True,
        follow_redirects: bool = True,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.url = url
        self.timeout_ms = timeout_ms
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout_ms / 1000.0),
            verify=verify_ssl,
            follow_redirects=follow_redirects,
            transport=transport,
        )
        self._response: Optional[httpx.Response] = None
        self._stream: Any = None
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether :meth:`disconnect` has been called."""
        return self._closed

    def send(
        self,
        method: str,
        headers: Mapping[str, str],
        content: Optional[str | bytes] = None,
    ) -> httpx.Response:
        """Send the request and return the response with its body still unread."""
        if self._closed:
            raise ConnectionError_(f"Connection to {self.url} was closed")
        request = self._client.build_request(
            method.upper(),
            self.url,
            headers=dict(headers),
            content=content,
            extensions={"trace": self._trace},
        )
        response = self._client.send(request, stream=True)
        with self._lock:
            if self._closed:
                response.close()
                raise ConnectionError_(f"Connection to {self.url} was closed")
            self._response = response
        return response

    def _trace(self, event: str, info: dict[str, Any]) -> None:
        """Remember the network stream httpcore opens for this request."""
        if not event.endswith(_STREAM_OPENED_EVENTS):
            return
        stream = info.get("return_value")
        with self._lock:
            self._stream = stream
            closed = self._closed
        if closed:
            _abort_stream(stream)

    def disconnect(self) -> None:
        """Abort the socket, then close the response and the client. Idempotent.

        Shutting the socket down wakes a worker blocked waiting for the
        response headers; closing the client alone would not.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            response, self._response = self._response, None
            stream = self._stream
        _abort_stream(stream)
        if response is not None:
            response.close()
        self._client.close()


# httpcore trace events whose return value is the connection's network stream.
_STREAM_OPENED_EVENTS = (
    ".connect_tcp.complete",
    ".connect_unix_socket.complete",
    ".start_tls.complete",
)


def _abort_stream(stream: Any) -> None:
    if stream is None:
        return
    sock = stream.get_extra_info("socket")
    if sock is None:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        # Already closed or never connected.
        pass


def encode_body(body: Any) -> tuple[str | bytes, str]:
    """Serialise a request body and choose its content type.

    ``dict`` and ``list`` bodies are structured data and are sent as JSON;
    ``bytes`` are sent unchanged; any other object is sent as its ``str()``
    form with a form-encoded content type.

    Returns:
        A ``(content, content_type)`` tuple.
    """
    if isinstance(body, (dict, list)):
        return json.dumps(body, ensure_ascii=False), JSON_CONTENT_TYPE
    if isinstance(body, (bytes, bytearray)):
        return bytes(body), FORM_CONTENT_TYPE
    return str(body), FORM_CONTENT_TYPE


def read_string(
    connection: Connection,
    headers: Optional[Mapping[str, str]],
    method: str,
    body: Any = None,
) -> str:
    """Perform one blocking round trip on *connection* and return the body text.

    Args:
        connection: An open :class:`Connection`. It is left open.
        headers: Request headers, applied in order. May be ``None``.
        method: HTTP method (case-insensitive).
        body: Optional request body, see :func:`encode_body`.

    Returns:
        The full response body decoded as UTF-8.

    Raises:
        StatusError: On status codes of 400 and above.
        ConnectionError_: On timeouts and network-level failures.
        TransportError: On any other :mod:`httpx` failure.
    """
    merged_headers: dict[str, str] = dict(headers or {})
    content: Optional[str | bytes] = None
    if body is not None:
        content, content_type = encode_body(body)
        if not any(name.lower() == "content-type" for name in merged_headers):
            merged_headers["Content-Type"] = content_type

    method = method.upper()
    debug(f"{method} {connection.url}")

    try:
        response = connection.send(method, merged_headers, content)

        status = response.status_code
        debug(f"HTTP {status} {response.reason_phrase} <- {connection.url}")
        if status >= 400:
            raise StatusError(f"{status} {response.reason_phrase or ''}".strip(), status_code=status)

        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        chunks: list[str] = []
        for chunk in response.iter_bytes(chunk_size=READ_BUFFER_SIZE):
            chunks.append(decoder.decode(chunk))
        chunks.append(decoder.decode(b"", final=True))
        return "".join(chunks)

    except (httpx.TimeoutException, httpx.NetworkError) as exc:
        raise ConnectionError_(str(exc) or type(exc).__name__) from exc
    except httpx.HTTPError as exc:
        raise TransportError(str(exc) or type(exc).__name__) from exc
    except httpx.InvalidURL as exc:
        raise TransportError(str(exc)) from exc


def request_string_sync(
    url: str,
    headers: Optional[Mapping[str, str]] = None,
    method: str = "GET",
    body: Any = None,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> str:
    """Fetch *url* and return the response body as text, blocking the caller.

    Opens a :class:`Connection`, runs :func:`read_string` and always
    disconnects. Errors are raised to the caller unchanged.

    Example::

        text = request_string_sync("https://example.com/ws/ping", timeout_ms=5_000)
    """
    connection = Connection(url, timeout_ms=timeout_ms, transport=transport)
    try:
        return read_string(connection, headers, method, body)
    finally:
        connection.disconnect()
