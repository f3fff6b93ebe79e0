"""Canonical models shared across all wsclient modules.

The models fall into two groups:

**Configuration models** -- Pydantic models that are validated on input and,
for :class:`Settings`, serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`OutputConfig`, and :class:`Settings`.

**Lifecycle enums** -- describe where an asynchronous request is in its life
and how it ended:
    :class:`HTTPMethod`, :class:`OperationState`, and :class:`OutcomeKind`.

All models use Pydantic v2. :class:`RequestConfig` allows arbitrary body
objects since a request body is opaque until it is serialised by the
transport.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TIMEOUT_MS = 60_000
"""Connect and read timeout applied when none is configured."""

DEFAULT_USER_AGENT = "wsclient"


# --- Request configuration ---


class RequestConfig(BaseModel):
    """Per-client request settings consumed by the next ``send()``.

    A :class:`~wsclient.client.Request` owns one instance and mutates it
    through its chaining setters. ``send()`` takes a deep copy, so changes
    made while a request is in flight only affect the following request.

    Example::

        RequestConfig(
            method="POST",
            headers={"Accept": "application/json"},
            body={"query": "status"},
            timeout_ms=5_000,
        )
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, validate_assignment=True)

    method: str = Field(default="GET", description="HTTP method, upper-cased")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Request headers in insertion order"
    )
    body: Any = Field(
        default=None,
        description="Opaque body; dict/list are sent as JSON, anything else as form text",
    )
    timeout_ms: int = Field(
        default=DEFAULT_TIMEOUT_MS, gt=0, description="Connect/read timeout in milliseconds"
    )

    @field_validator("method")
    @classmethod
    def _upper_method(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("method must not be empty")
        return value


# --- Persisted settings ---


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`Settings`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )

    @field_validator("format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ("auto", "json", "plain", "rich"):
            raise ValueError(f"unknown output format '{value}'")
        return value


class Settings(BaseModel):
    """User-wide defaults persisted at ``~/.config/wsclient/settings.json``.

    Loaded and saved by :func:`~wsclient.config.load_settings` and
    :func:`~wsclient.config.save_settings`. Fields here have the lowest
    precedence and can be overridden by environment variables or explicit
    arguments. See :func:`~wsclient.config.resolve_settings`.
    """

    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    user_agent: Optional[str] = Field(
        default=DEFAULT_USER_AGENT, description="User-Agent header sent when the caller sets none"
    )
    default_headers: dict[str, str] = Field(default_factory=dict)
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    follow_redirects: bool = Field(
        default=True, description="Let the transport follow redirects on its own"
    )
    output: OutputConfig = Field(default_factory=OutputConfig)


# --- Lifecycle enums ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods accepted by the ``wsclient get --method`` option."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class OperationState(str, enum.Enum):
    """States of one asynchronous request operation.

    ``IDLE`` -> ``SENDING`` -> ``IN_FLIGHT`` -> one of the terminal states
    ``COMPLETED``, ``FAILED`` or ``CANCELLED``.
    """

    IDLE = "idle"
    SENDING = "sending"
    IN_FLIGHT = "in_flight"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class OutcomeKind(str, enum.Enum):
    """Classification of a finished (non-cancelled) request."""

    SUCCESS = "success"
    BUSINESS_ERROR = "business_error"
    TRANSPORT_ERROR = "transport_error"
