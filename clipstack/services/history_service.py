#!/usr/bin/env python3
"""
History Service - Bounded, newest-first clipboard history with substring search
"""
import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, Iterable, List, Optional

from clipstack.models import Entry
from clipstack.settings import HistorySettings

logger = logging.getLogger(__name__)

ChangeListener = Callable[["HistoryStore"], None]


def current_millis() -> int:
    return int(time.time() * 1000)


class HistoryStore:
    """In-memory clipboard history with thread-safety

    Entries are kept newest-first. The store never touches the filesystem;
    persistence hooks in through the change listener.
    """

    def __init__(
        self,
        settings: Optional[HistorySettings] = None,
        on_change: Optional[ChangeListener] = None,
        clock: Callable[[], int] = current_millis,
    ):
        """
        Initialize history store

        Args:
            settings: History settings providing the retention bound
            on_change: Called after every append/clear, outside the lock
            clock: Returns the current time in milliseconds since epoch
        """
        self.settings = settings or HistorySettings()
        self.max_items = self.settings.max_items
        self.on_change = on_change
        self._clock = clock
        self._entries: Deque[Entry] = deque(maxlen=self.max_items)
        self.lock = threading.RLock()

    def __len__(self) -> int:
        with self.lock:
            return len(self._entries)

    def set_change_listener(self, listener: Optional[ChangeListener]):
        """Replace the listener notified after mutations"""
        self.on_change = listener

    def append(self, text: str):
        """Insert a new entry at the head, evicting the oldest past the bound"""
        with self.lock:
            # maxlen drops from the tail on appendleft
            self._entries.appendleft(Entry(timestamp=self._clock(), text=text))
        logger.debug(f"Appended entry ({len(text)} chars)")
        self._notify()

    def clear(self):
        """Remove every entry"""
        with self.lock:
            self._entries.clear()
        logger.info("History cleared")
        self._notify()

    def search(self, query: Optional[str], limit: Optional[int] = None) -> List[Entry]:
        """Newest-first entries whose text contains query, case-insensitive

        An empty or missing query matches everything. The returned list is a
        copy and may be iterated while the store keeps changing.
        """
        if limit is not None and limit <= 0:
            return []

        needle = (query or "").lower()
        results: List[Entry] = []
        with self.lock:
            for entry in self._entries:
                if needle and needle not in entry.text.lower():
                    continue
                results.append(entry)
                if limit is not None and len(results) >= limit:
                    break
        return results

    def snapshot(self) -> List[Entry]:
        """All entries, newest-first, as an independent list"""
        with self.lock:
            return list(self._entries)

    def bulk_load(self, entries: Iterable[Entry], newest_first: bool = True):
        """Replace the contents without notifying the change listener

        Used once at startup after reading the history file.
        """
        items = list(entries)
        if not newest_first:
            items.reverse()
        with self.lock:
            self._entries.clear()
            self._entries.extend(items[: self.max_items])
        logger.info(f"Loaded {min(len(items), self.max_items)} entries into history")

    def _notify(self):
        listener = self.on_change
        if listener is not None:
            listener(self)
