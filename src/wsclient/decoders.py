"""Response decoders and outcome classification.

A decoder turns raw response text into a typed payload and reports whether
the payload carries its own in-band error signal. Three decoders are
provided:

* :func:`decode_json` -- a JSON object; error when ``"error"`` is true.
* :func:`decode_xml` -- an XML document; error when the root element has
  ``error="1"``.
* :func:`decode_text` -- the raw text; never an error.

Malformed input raises :class:`~wsclient.exceptions.DecodeError`, which is a
transport-class failure, not a business error.

:func:`classify_failure` and :func:`outcome_from` turn raised failures and
decoded payloads into :class:`Outcome` values that the client dispatches to
its listeners.
"""

from __future__ import annotations

import json
import socket
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Optional, TypeVar
from xml.etree.ElementTree import Element

from defusedxml import ElementTree
from defusedxml.common import DefusedXmlException

from wsclient.exceptions import (
    BusinessError,
    ConnectionError_,
    DecodeError,
    InvalidUsageError,
    TransportError,
)
from wsclient.models import OutcomeKind

T = TypeVar("T")

UNKNOWN_ERROR_CODE = "unknown_error"
UNKNOWN_ERROR_MESSAGE = "(unknown error)"
CONNECTION_ERROR_CODE = "connection_error"

ERROR_FLAG = "error"
ERROR_CODE_KEY = "error_code"
ERROR_MESSAGE_KEY = "error_message"


@dataclass(frozen=True)
class Decoded(Generic[T]):
    """Result of decoding one response body.

    Attributes:
        payload: The typed payload (the whole document, even on error).
        is_error: Whether the payload carries an in-band error signal.
        code: Error code, only meaningful when ``is_error``.
        message: Error message, only meaningful when ``is_error``.
    """

    payload: T
    is_error: bool = False
    code: str = UNKNOWN_ERROR_CODE
    message: str = UNKNOWN_ERROR_MESSAGE


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """How a finished, non-cancelled request ended.

    Exactly one of the three shapes:

    * ``SUCCESS`` with ``payload`` set;
    * ``BUSINESS_ERROR`` with ``code``/``message`` from the payload;
    * ``TRANSPORT_ERROR`` with ``code``/``message`` derived from the failure,
      which is kept in ``failure``.
    """

    kind: OutcomeKind
    payload: Optional[T] = None
    code: Optional[str] = None
    message: Optional[str] = None
    failure: Optional[BaseException] = field(default=None, compare=False, repr=False)

    @property
    def is_success(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    def raise_for_error(self) -> None:
        """Raise the matching :class:`~wsclient.exceptions.WSClientError` unless successful.

        Raises:
            BusinessError: For ``BUSINESS_ERROR`` outcomes.
            ConnectionError_: For ``"connection_error"`` transport outcomes.
            DecodeError: When the response body could not be decoded.
            TransportError: For every other transport outcome.
        """
        if self.kind is OutcomeKind.BUSINESS_ERROR:
            raise BusinessError(self.code or UNKNOWN_ERROR_CODE, self.message or UNKNOWN_ERROR_MESSAGE)
        if self.kind is OutcomeKind.TRANSPORT_ERROR:
            message = self.message or UNKNOWN_ERROR_MESSAGE
            if self.code == CONNECTION_ERROR_CODE:
                raise ConnectionError_(message) from self.failure
            if isinstance(self.failure, DecodeError):
                raise DecodeError(message) from self.failure
            raise TransportError(message) from self.failure


Decoder = Callable[[str], Decoded[Any]]


# --- Decoders ---


def _flag_is_set(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def _optional_text(value: Any, fallback: str) -> str:
    if value is None:
        return fallback
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def decode_json(raw: str) -> Decoded[dict[str, Any]]:
    """Decode *raw* as a single JSON object.

    The object is an error when its ``"error"`` key is ``true`` (boolean, or
    the string ``"true"``). ``error_code`` and ``error_message`` are then
    read with ``"unknown_error"`` / ``"(unknown error)"`` as fallbacks.

    Raises:
        DecodeError: If *raw* is not valid JSON or is not an object.
    """
    try:
        document = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Invalid JSON response: {exc}") from exc
    if not isinstance(document, dict):
        raise DecodeError(
            f"Expected a JSON object, got {type(document).__name__}"
        )

    if _flag_is_set(document.get(ERROR_FLAG, False)):
        return Decoded(
            payload=document,
            is_error=True,
            code=_optional_text(document.get(ERROR_CODE_KEY), UNKNOWN_ERROR_CODE),
            message=_optional_text(document.get(ERROR_MESSAGE_KEY), UNKNOWN_ERROR_MESSAGE),
        )
    return Decoded(payload=document)


def decode_json_array(raw: str) -> list[Any]:
    """Decode *raw* as a JSON array. Arrays carry no error signal.

    Raises:
        DecodeError: If *raw* is not valid JSON or is not an array.
    """
    try:
        document = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Invalid JSON response: {exc}") from exc
    if not isinstance(document, list):
        raise DecodeError(f"Expected a JSON array, got {type(document).__name__}")
    return document


def parse_xml(raw: str) -> Element:
    """Parse *raw* into an XML root element with entity expansion disabled.

    Raises:
        DecodeError: If *raw* is not a well-formed document or uses a
            forbidden construct (DTD entities, external references).
    """
    try:
        return ElementTree.fromstring(raw)
    except (ElementTree.ParseError, DefusedXmlException) as exc:
        raise DecodeError(f"Invalid XML response: {exc}") from exc


def decode_xml(raw: str) -> Decoded[Element]:
    """Decode *raw* as an XML document whose root may flag an error.

    The document is an error when the root element carries ``error="1"``;
    ``error_code`` and ``error_message`` attributes are then read with the
    usual fallbacks.
    """
    root = parse_xml(raw)
    if root.get(ERROR_FLAG) == "1":
        return Decoded(
            payload=root,
            is_error=True,
            code=root.get(ERROR_CODE_KEY, UNKNOWN_ERROR_CODE),
            message=root.get(ERROR_MESSAGE_KEY, UNKNOWN_ERROR_MESSAGE),
        )
    return Decoded(payload=root)


def decode_text(raw: str) -> Decoded[str]:
    """Return *raw* unchanged. Plain text has no error channel."""
    return Decoded(payload=raw)


DECODERS: dict[str, Decoder] = {
    "json": decode_json,
    "xml": decode_xml,
    "text": decode_text,
}


def get_decoder(name: str) -> Decoder:
    """Look up a decoder by name (``json``, ``xml`` or ``text``).

    Raises:
        InvalidUsageError: If *name* is not a known decoder.
    """
    try:
        return DECODERS[name.lower()]
    except KeyError:
        known = ", ".join(sorted(DECODERS))
        raise InvalidUsageError(f"Unknown decoder '{name}' (expected one of: {known})") from None


# --- Classification ---


_CONNECTION_FAILURES = (ConnectionError_, socket.timeout, socket.gaierror, TimeoutError, ConnectionError)


def outcome_from(decoded: Decoded[T]) -> Outcome[T]:
    """Turn a decoded payload into a success or business-error outcome."""
    if decoded.is_error:
        return Outcome(
            kind=OutcomeKind.BUSINESS_ERROR,
            code=decoded.code,
            message=decoded.message,
        )
    return Outcome(kind=OutcomeKind.SUCCESS, payload=decoded.payload)


def classify_failure(exc: BaseException) -> Outcome[Any]:
    """Turn a raised failure into a transport-error outcome.

    Timeouts, socket errors and host-resolution failures are
    ``"connection_error"``; everything else is ``"unknown_error"``. The
    message is ``"<kind>: <detail>"`` where *kind* is the class name of the
    underlying cause when the failure wraps one.
    """
    code = CONNECTION_ERROR_CODE if isinstance(exc, _CONNECTION_FAILURES) else UNKNOWN_ERROR_CODE
    cause = exc.__cause__ if exc.__cause__ is not None else exc
    detail = str(cause) or str(exc)
    return Outcome(
        kind=OutcomeKind.TRANSPORT_ERROR,
        code=code,
        message=f"{type(cause).__name__}: {detail}",
        failure=exc,
    )
