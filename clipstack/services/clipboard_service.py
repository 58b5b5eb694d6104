#!/usr/bin/env python3
"""
Clipboard Service - Polls the system clipboard and records new text

Polling is used instead of change notifications because those are not
reliably available on every desktop. Only a change relative to the last
observed value is recorded, so one copy that outlives several ticks yields
one entry.
"""
import logging
import threading
import time
from typing import Callable, Optional

import pyperclip

from clipstack.models import ErrorHook, PollOutcome
from clipstack.services.history_service import HistoryStore
from clipstack.settings import ClipboardSettings

logger = logging.getLogger(__name__)

ClipboardReader = Callable[[], Optional[str]]


def read_clipboard_text() -> Optional[str]:
    """Current clipboard text, or None when it holds no text"""
    text = pyperclip.paste()
    if not isinstance(text, str):
        return None
    return text


class ClipboardObserver:
    """Feeds clipboard changes into a HistoryStore from a daemon thread"""

    def __init__(
        self,
        store: HistoryStore,
        settings: Optional[ClipboardSettings] = None,
        reader: ClipboardReader = read_clipboard_text,
        on_error: Optional[ErrorHook] = None,
    ):
        """
        Initialize clipboard observer

        Args:
            store: History receiving new clipboard text
            settings: Clipboard settings providing the poll interval
            reader: Returns the clipboard text, None or "" when there is none
            on_error: Receives errors raised by the reader
        """
        self.store = store
        self.settings = settings or ClipboardSettings()
        self.interval = self.settings.poll_interval_ms / 1000.0
        self.reader = reader
        self.on_error = on_error
        self.last_seen: Optional[str] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        """Begin polling; the first poll runs immediately"""
        if self._thread is not None:
            logger.warning("Clipboard observer already started")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="clipboard-poll", daemon=True)
        self._thread.start()
        logger.info(f"Clipboard observer started (every {self.settings.poll_interval_ms} ms)")

    def stop(self, timeout: Optional[float] = None):
        """Stop polling and wait for the thread to finish"""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        logger.info("Clipboard observer stopped")

    def notify_copied(self, text: str):
        """Treat text as already observed, e.g. after the app itself copied it"""
        self.last_seen = text

    def poll_once(self) -> PollOutcome:
        """Read the clipboard once and append its text if it changed"""
        try:
            text = self.reader()
        except Exception as e:
            logger.debug(f"Clipboard read failed: {e}")
            if self.on_error is not None:
                self.on_error("clipboard", e)
            return PollOutcome.FAILED

        if not text:
            return PollOutcome.EMPTY
        if text == self.last_seen:
            return PollOutcome.UNCHANGED

        self.last_seen = text
        self.store.append(text)
        return PollOutcome.APPENDED

    def _run(self):
        next_tick = time.monotonic()
        while not self._stop_event.is_set():
            self.poll_once()
            next_tick += self.interval
            delay = next_tick - time.monotonic()
            if delay < 0:
                # fell behind, resync instead of bursting
                next_tick = time.monotonic()
                delay = 0
            self._stop_event.wait(delay)
