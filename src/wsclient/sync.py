"""Blocking convenience functions built on the synchronous transport.

These are independent of :class:`~wsclient.client.Request`: they run on the
caller's thread, do not notify listeners, and raise every failure to the
caller. Errors are the caller's to handle.

All functions take ``(url, headers, method, body, timeout_ms)`` with the same
meaning as :func:`~wsclient.transport.request_string_sync`.

Example::

    from wsclient.sync import request_object_sync

    status = request_object_sync("https://api.example.com/ws/status", timeout_ms=5_000)
"""

from __future__ import annotations

from typing import Any, Mapping, Optional
from xml.etree.ElementTree import Element

import httpx

from wsclient.decoders import decode_json, decode_json_array, parse_xml
from wsclient.models import DEFAULT_TIMEOUT_MS
from wsclient.transport import request_string_sync

__all__ = [
    "request_string_sync",
    "request_object_sync",
    "request_array_sync",
    "request_document_sync",
]


def request_object_sync(
    url: str,
    headers: Optional[Mapping[str, str]] = None,
    method: str = "GET",
    body: Any = None,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> dict[str, Any]:
    """Fetch *url* and parse the body as a JSON object.

    The in-band ``"error"`` flag is not interpreted; the whole object is
    returned.

    Raises:
        TransportError: On status >= 400 or network failures.
        DecodeError: If the body is not a JSON object.
    """
    raw = request_string_sync(url, headers, method, body, timeout_ms, transport=transport)
    return decode_json(raw).payload


def request_array_sync(
    url: str,
    headers: Optional[Mapping[str, str]] = None,
    method: str = "GET",
    body: Any = None,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> list[Any]:
    """Fetch *url* and parse the body as a JSON array."""
    raw = request_string_sync(url, headers, method, body, timeout_ms, transport=transport)
    return decode_json_array(raw)


def request_document_sync(
    url: str,
    headers: Optional[Mapping[str, str]] = None,
    method: str = "GET",
    body: Any = None,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> Element:
    """Fetch *url* and parse the body as an XML document, returning its root."""
    raw = request_string_sync(url, headers, method, body, timeout_ms, transport=transport)
    return parse_xml(raw)
