"""Shared test fixtures for wsclient.

Provides an isolated config environment, a recording listener, and helpers
to route every connection through :class:`httpx.MockTransport`. These
fixtures are discovered by pytest and available to all test modules.
"""

from __future__ import annotations

import socket
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator

import httpx
import pytest

from wsclient.listeners import EventListener
from wsclient.output import reset_output


Handler = Callable[[httpx.Request], httpx.Response]


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    CliRunner swaps sys.stdout/sys.stderr during a test; a manager created
    then would keep stale references.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Isolated config directory
# ---------------------------------------------------------------------------


@pytest.fixture
def config_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG config/data homes at *tmp_path* and clear wsclient env vars."""
    monkeypatch.setattr("wsclient.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("WSCLIENT_TIMEOUT_MS", raising=False)
    monkeypatch.delenv("WSCLIENT_USER_AGENT", raising=False)
    return tmp_path / "config" / "wsclient"


# ---------------------------------------------------------------------------
# Listener that records every event
# ---------------------------------------------------------------------------


class RecordingListener(EventListener[Any]):
    """Append every event to :attr:`events` as a tuple."""

    def __init__(self) -> None:
        self.events: list[tuple[Any, ...]] = []
        self.threads: list[int] = []

    def _record(self, *event: Any) -> None:
        self.events.append(event)
        self.threads.append(threading.get_ident())

    def on_request(self, url: str) -> None:
        self._record("request", url)

    def on_cancel(self, url: str) -> None:
        self._record("cancel", url)

    def on_complete(self, url: str) -> None:
        self._record("complete", url)

    def on_success(self, url: str, payload: Any) -> None:
        self._record("success", url, payload)

    def on_error(self, url: str, code: str, message: str) -> None:
        self._record("error", url, code, message)

    @property
    def names(self) -> list[str]:
        return [event[0] for event in self.events]


@pytest.fixture
def recorder() -> RecordingListener:
    return RecordingListener()


# ---------------------------------------------------------------------------
# Mock transport helpers
# ---------------------------------------------------------------------------


def mock_transport(handler: Handler) -> httpx.MockTransport:
    """Create an httpx.MockTransport from a handler function."""
    return httpx.MockTransport(handler)


def json_handler(data: Any, status_code: int = 200) -> Handler:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=data)

    return handler


def text_handler(text: str, status_code: int = 200) -> Handler:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, text=text)

    return handler


def gated_handler(gate: threading.Event, inner: Handler, timeout: float = 5.0) -> Handler:
    """Wrap *inner* so it blocks until *gate* is set (or *timeout* passes)."""

    def handler(request: httpx.Request) -> httpx.Response:
        gate.wait(timeout)
        return inner(request)

    return handler


# ---------------------------------------------------------------------------
# Real socket that never answers
# ---------------------------------------------------------------------------


@dataclass
class SilentServer:
    url: str
    received: threading.Event


@pytest.fixture
def silent_server(monkeypatch: pytest.MonkeyPatch) -> Iterator[SilentServer]:
    """Accept one connection, read the request, and never respond."""
    for var in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(var, raising=False)

    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    listener.settimeout(10.0)
    received = threading.Event()
    stop = threading.Event()

    def serve() -> None:
        try:
            conn, _ = listener.accept()
        except OSError:
            return
        with conn:
            conn.settimeout(0.1)
            while not stop.is_set():
                try:
                    data = conn.recv(4096)
                except socket.timeout:
                    continue
                except OSError:
                    return
                if not data:
                    return
                received.set()

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    port = listener.getsockname()[1]
    yield SilentServer(url=f"http://127.0.0.1:{port}/slow", received=received)
    stop.set()
    listener.close()
    thread.join(5.0)
