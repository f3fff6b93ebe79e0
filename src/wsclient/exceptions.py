"""Exception hierarchy for wsclient.

All exceptions inherit from :class:`WSClientError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`wsclient.exit_codes`.
The top-level error handler in :func:`wsclient.app.main` catches
``WSClientError`` and exits with the appropriate code.

The asynchronous :class:`~wsclient.client.Request` never lets these escape:
it converts them into ``on_error`` listener events. The blocking helpers in
:mod:`wsclient.sync` raise them straight to the caller.

Subclass hierarchy::

    WSClientError (exit 1)
    +-- InvalidUsageError     (exit 2)
    +-- ConfigError           (exit 1)
    +-- TransportError        (exit 5)
    |   +-- StatusError       (exit 5)
    |   +-- ConnectionError_  (exit 6)
    |   +-- DecodeError       (exit 7)
    +-- BusinessError         (exit 8)
"""

from __future__ import annotations

from wsclient.exit_codes import (
    EXIT_BUSINESS_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_DECODE_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_TRANSPORT_ERROR,
)


class WSClientError(Exception):
    """Base exception for all wsclient errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`wsclient.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(WSClientError):
    """Raised for invalid arguments (unknown decoder, bad header syntax, bad timeout)."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(WSClientError):
    """Raised for configuration problems (invalid settings file, bad env values)."""

    exit_code = EXIT_GENERIC_FAILURE


class TransportError(WSClientError):
    """Raised when the HTTP round trip, or the parsing of its body, fails."""

    exit_code = EXIT_TRANSPORT_ERROR


class StatusError(TransportError):
    """Raised when the server answers with a status code of 400 or above.

    The message is the numeric code followed by the reason phrase, e.g.
    ``"404 Not Found"``.
    """

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class ConnectionError_(TransportError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class DecodeError(TransportError):
    """Raised when a response body is not well-formed for the selected decoder."""

    exit_code = EXIT_DECODE_ERROR


class BusinessError(WSClientError):
    """Raised by callers that want an in-band service error as an exception.

    Args:
        code: The service's error code (``"unknown_error"`` when absent).
        message: The service's error message.
    """

    exit_code = EXIT_BUSINESS_ERROR

    def __init__(self, code: str, message: str):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.error_message = message
