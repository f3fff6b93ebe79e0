"""The ``wsclient get`` command -- one request through the async client.

Builds a :class:`~wsclient.client.Request` with the selected decoder, sends
it, waits on the client's own event queue until the terminal event arrives,
and prints the payload to stdout. Errors are reported on stderr and mapped to
exit codes from :mod:`wsclient.exit_codes`.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import typer

from wsclient.exceptions import InvalidUsageError, WSClientError
from wsclient.models import HTTPMethod


def parse_header(value: str) -> tuple[str, str]:
    """Split a ``"Name: value"`` header argument.

    Raises:
        InvalidUsageError: If *value* has no colon or an empty name.
    """
    name, sep, header_value = value.partition(":")
    name = name.strip()
    if not sep or not name:
        raise InvalidUsageError(f"Invalid header '{value}' (expected 'Name: value')")
    return name, header_value.strip()


def parse_json_body(value: str) -> Any:  # noqa: ANN401
    """Parse a ``--json-body`` argument.

    Raises:
        InvalidUsageError: If *value* is not valid JSON.
    """
    try:
        return json.loads(value)
    except json.JSONDecodeError as exc:
        raise InvalidUsageError(f"--json-body is not valid JSON: {exc}") from exc


def get_command(
    url: str = typer.Argument(help="URL to request."),
    decoder: str = typer.Option(
        "json", "--decoder", "-d", help="Response decoder: json, xml or text."
    ),
    method: Optional[HTTPMethod] = typer.Option(
        None, "--method", "-X", help="HTTP method (default GET, POST when a body is set)."
    ),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Request header as 'Name: value'. Repeatable."
    ),
    body: Optional[str] = typer.Option(
        None, "--body", help="Form-encoded request body, sent as-is."
    ),
    json_body: Optional[str] = typer.Option(
        None, "--json-body", help="JSON request body."
    ),
    timeout: Optional[int] = typer.Option(
        None, "--timeout", "-t", help="Connect/read timeout in milliseconds."
    ),
) -> None:
    """Send one request and print the decoded payload.

    Exits with code 8 when the service reports an in-band error, 7 when the
    body cannot be decoded, 6 on connection failures and timeouts, and 5 on
    other transport errors.

    Example::

        wsclient get https://api.example.com/ws/status
        wsclient get https://api.example.com/ws/feed.xml --decoder xml
        wsclient get https://api.example.com/ws/login -H "Accept: application/json" \\
            --json-body '{"user": "demo"}'
    """
    from wsclient.client import Request
    from wsclient.config import resolve_settings
    from wsclient.decoders import get_decoder
    from wsclient.listeners import CallbackListener
    from wsclient.output import debug, error, format_payload

    if body is not None and json_body is not None:
        raise InvalidUsageError("Use either --body or --json-body, not both")

    settings = resolve_settings(timeout_ms=timeout)
    client: Request[Any] = Request(get_decoder(decoder), settings=settings)
    client.set_request_headers(dict(parse_header(h) for h in header or []))
    if method is not None:
        client.set_request_method(method.value)
    if json_body is not None:
        client.set_request_body(parse_json_body(json_body))
    elif body is not None:
        client.set_request_body(body)

    client.add_listener(
        CallbackListener(
            on_request=lambda u: debug(f"Request started: {u}"),
            on_complete=lambda u: debug(f"Request complete: {u}"),
            on_success=lambda u, payload: format_payload(payload),
            on_error=lambda u, code, message: error(f"{code}: {message}"),
        )
    )

    client.send(url)
    try:
        client.join()
    finally:
        # Ctrl-C arrives as SystemExit from the signal handler.
        if client.is_running():
            client.cancel()

    outcome = client.last_outcome
    if outcome is None:
        return
    try:
        outcome.raise_for_error()
    except WSClientError as exc:
        # Already reported by the on_error listener.
        raise typer.Exit(code=exc.exit_code) from None
