"""wsclient -- event-driven web service client with cancellable requests.

A :class:`Request` runs one HTTP round trip at a time on a background worker,
decodes the body (JSON object, XML document or plain text), separates
in-band service errors from transport failures, and reports everything to
its listeners on a single delivery context. Blocking helpers for scripts live
in :mod:`wsclient.sync`.

Typical use::

    from wsclient import CallbackListener, Request

    client = Request.json()
    client.add_listener(CallbackListener(
        on_success=lambda url, obj: print(obj),
        on_error=lambda url, code, message: print(code, message),
    ))
    client.send("https://api.example.com/ws/status")
    client.join()

Modules:
    client: The asynchronous :class:`Request` client.
    transport: One blocking HTTP round trip over :mod:`httpx`.
    decoders: JSON / XML / text decoders and outcome classification.
    listeners: Listener contract and registry.
    dispatch: Delivery contexts for terminal events.
    sync: Blocking convenience functions.
    config: XDG-aware settings file and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting with Rich support.
    app: Typer command-line entry point.
"""

__version__ = "0.1.0"

from wsclient.client import Request
from wsclient.dispatch import LoopDispatcher, QueueDispatcher
from wsclient.listeners import CallbackListener, EventListener, RequestListener

__all__ = [
    "Request",
    "RequestListener",
    "EventListener",
    "CallbackListener",
    "LoopDispatcher",
    "QueueDispatcher",
    "__version__",
]
