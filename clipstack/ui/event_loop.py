"""Single-threaded event loop for the presentation layer.

Other threads never touch presentation state directly; they queue work with
``call_soon`` the way a GUI toolkit's idle callbacks are used.
"""

import logging
import queue
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

_STOP = object()


class EventLoop:
    def __init__(self):
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._owner: Optional[threading.Thread] = None
        self._running = False
        self._stop_pending = False

    @property
    def running(self) -> bool:
        return self._running

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        """Queue callback(*args) to run on the loop thread. Safe from any thread."""
        self._queue.put((callback, args))

    def stop(self) -> None:
        self._queue.put(_STOP)

    def run_forever(self) -> None:
        """Process callbacks until stop() is called"""
        self._owner = threading.current_thread()
        self._running = True
        try:
            while not self._stop_pending:
                item = self._queue.get()
                if item is _STOP:
                    break
                self._run(item)
        finally:
            self._stop_pending = False
            self._running = False
            self._owner = None

    def run_pending(self) -> int:
        """Run everything already queued without blocking; returns the count run"""
        count = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return count
            if item is _STOP:
                self._stop_pending = True
                return count
            self._run(item)
            count += 1

    def _run(self, item) -> None:
        callback, args = item
        try:
            callback(*args)
        except Exception:
            logger.exception(f"Error in event loop callback {callback!r}")
