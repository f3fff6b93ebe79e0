"""Delivery contexts for terminal request events.

The background worker of a :class:`~wsclient.client.Request` never calls
listeners itself. It hands the finished result to a :class:`Dispatcher`,
which runs the delivery on one fixed context so listener code needs no
locking of its own:

* :class:`LoopDispatcher` -- an :mod:`asyncio` event loop, via
  :meth:`~asyncio.AbstractEventLoop.call_soon_threadsafe`.
* :class:`QueueDispatcher` -- a thread-safe queue drained by the thread that
  owns the client, with :meth:`QueueDispatcher.run_once` or
  :meth:`QueueDispatcher.run_pending`.
"""

from __future__ import annotations

import asyncio
import queue
from typing import Any, Callable, Optional, Protocol


class Dispatcher(Protocol):
    """Something that runs callbacks on a single owning context."""

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        """Schedule ``callback(*args)``. Must be safe to call from any thread."""
        ...


class LoopDispatcher:
    """Deliver callbacks on an :mod:`asyncio` event loop.

    Args:
        loop: The loop that owns the client, usually the running loop at the
            time :meth:`~wsclient.client.Request.send` was called.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self.loop = loop

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        self.loop.call_soon_threadsafe(callback, *args)


class QueueDispatcher:
    """Deliver callbacks on whichever thread drains the queue.

    Example::

        dispatcher = QueueDispatcher()
        client = Request.json(dispatcher=dispatcher)
        client.send(url)
        while client.is_running():
            dispatcher.run_once(timeout=0.1)
    """

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[tuple[Callable[..., Any], tuple[Any, ...]]] = queue.SimpleQueue()

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        self._queue.put((callback, args))

    def pending(self) -> int:
        """Approximate number of callbacks waiting to run."""
        return self._queue.qsize()

    def run_once(self, timeout: Optional[float] = None) -> bool:
        """Run the next callback, waiting up to *timeout* seconds for one.

        Returns:
            ``True`` if a callback ran, ``False`` if none arrived in time.
        """
        try:
            callback, args = self._queue.get(timeout=timeout)
        except queue.Empty:
            return False
        callback(*args)
        return True

    def run_pending(self) -> int:
        """Run every callback already queued without waiting. Returns the count."""
        count = 0
        while True:
            try:
                callback, args = self._queue.get_nowait()
            except queue.Empty:
                return count
            callback(*args)
            count += 1
