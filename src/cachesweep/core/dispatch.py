"""Routes progress callbacks from worker threads to one consumer thread."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Callable

log = logging.getLogger(__name__)

_STOP = object()


class SerialDispatcher:
    """Runs callbacks one at a time, in submission order, on a single thread.

    Scan workers and the cleaner call the wrapped callables from their own
    threads; observers only ever run on the dispatcher thread, so they never
    see interleaved updates.

    Usage::

        with SerialDispatcher() as dispatcher:
            engine.scan(on_discovered=dispatcher.wrap(show_progress))
    """

    def __init__(self, name: str = "progress") -> None:
        self._queue: queue.Queue[Any] = queue.Queue()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._started = False
        self._closed = False

    def __enter__(self) -> SerialDispatcher:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def start(self) -> None:
        if not self._started:
            self._started = True
            self._thread.start()

    def submit(self, func: Callable[..., Any], *args: Any) -> None:
        """Queue ``func(*args)`` for the consumer thread."""
        if self._closed:
            raise RuntimeError("Dispatcher is closed")
        self._queue.put((func, args))

    def wrap(self, func: Callable[..., Any] | None) -> Callable[..., None] | None:
        """Return a thread-safe stand-in for *func* (None stays None)."""
        if func is None:
            return None

        def dispatch(*args: Any) -> None:
            self.submit(func, *args)

        return dispatch

    def close(self, timeout: float | None = None) -> None:
        """Run everything already queued, then stop the consumer thread."""
        if self._closed:
            return
        self._closed = True
        if self._started:
            self._queue.put(_STOP)
            self._thread.join(timeout)

    def _run(self) -> None:
        while True:
            task = self._queue.get()
            if task is _STOP:
                return
            func, args = task
            try:
                func(*args)
            except Exception:
                log.exception("Progress callback %r failed", func)
