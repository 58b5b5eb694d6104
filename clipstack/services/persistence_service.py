#!/usr/bin/env python3
"""
Persistence Service - Write-behind storage of the clipboard history

File format: one line per entry, newest first::

    <timestamp ms>\t<base64 of the UTF-8 text>

Saves always rewrite the whole file through a sibling temp file that is
renamed over the target, so a crash never leaves a truncated history.
"""
import base64
import binascii
import logging
import os
import shutil
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional

from clipstack.models import Entry, ErrorHook, LoadResult
from clipstack.services.history_service import HistoryStore
from clipstack.settings import HistorySettings

logger = logging.getLogger(__name__)


def encode_entry(entry: Entry) -> str:
    payload = base64.b64encode(entry.text.encode("utf-8", errors="surrogatepass")).decode("ascii")
    return f"{entry.timestamp}\t{payload}"


def decode_line(line: str) -> Optional[Entry]:
    """Parse one history line, returning None when it is malformed"""
    line = line.rstrip("\r\n")
    tab = line.find("\t")
    if tab <= 0:
        return None
    try:
        timestamp = int(line[:tab])
        text = base64.b64decode(line[tab + 1:], validate=True).decode("utf-8", errors="surrogatepass")
    except (ValueError, binascii.Error):
        # UnicodeDecodeError is a ValueError
        return None
    return Entry(timestamp=timestamp, text=text)


class PersistenceManager:
    """Owns the history file; serializes every write on one worker thread"""

    def __init__(
        self,
        history_path: Path,
        settings: Optional[HistorySettings] = None,
        on_error: Optional[ErrorHook] = None,
    ):
        """
        Initialize persistence manager

        Args:
            history_path: Target history file
            settings: History settings providing the entry cap
            on_error: Receives errors that load/save swallow
        """
        logger.info("[PersistenceManager.__init__] Starting initialization...")
        self.history_path = Path(history_path)
        self.settings = settings or HistorySettings()
        self.max_items = self.settings.max_items
        self.on_error = on_error
        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="history-io")
        self._closed = False
        logger.info(f"[PersistenceManager.__init__] History file: {self.history_path}")

    @property
    def temp_path(self) -> Path:
        return self.history_path.with_name(self.history_path.name + ".tmp")

    def attach(self, store: HistoryStore):
        """Persist the store asynchronously after each of its mutations"""
        store.set_change_listener(self.save_async)

    def load(self, store: HistoryStore) -> LoadResult:
        """Hydrate the store from disk

        A missing file leaves the store untouched. Malformed lines are skipped
        and I/O errors are swallowed, so startup always succeeds.
        """
        if not self.history_path.exists():
            logger.info(f"No history file at {self.history_path}, starting empty")
            return LoadResult()

        items: List[Entry] = []
        skipped = 0
        try:
            raw = self.history_path.read_bytes()
        except OSError as e:
            logger.error(f"Error reading history file: {e}")
            self._report("load", e)
            return LoadResult(found=True, error=e)

        for raw_line in raw.splitlines():
            if len(items) >= self.max_items:
                break
            if not raw_line.strip():
                continue
            try:
                line = raw_line.decode("ascii")
            except UnicodeDecodeError:
                skipped += 1
                continue
            entry = decode_line(line)
            if entry is None:
                skipped += 1
                continue
            items.append(entry)

        if skipped:
            logger.warning(f"Skipped {skipped} malformed line(s) in {self.history_path}")
        store.bulk_load(items, newest_first=True)
        return LoadResult(loaded=len(items), skipped=skipped, found=True)

    def save_async(self, store: HistoryStore) -> Optional[Future]:
        """Queue a save; the snapshot is taken when the task runs"""
        if self._closed:
            logger.debug("Persistence is shut down, dropping save request")
            return None
        try:
            return self.executor.submit(self.save, store)
        except RuntimeError:
            logger.debug("Executor already shut down, dropping save request")
            return None

    def save(self, store: HistoryStore) -> bool:
        """Write the current snapshot to disk. Returns False on failure, never raises"""
        tmp = self.temp_path
        try:
            self.history_path.parent.mkdir(parents=True, exist_ok=True)
            entries = store.snapshot()[: self.max_items]
            content = "".join(encode_entry(entry) + "\n" for entry in entries)
            with open(tmp, "w", encoding="ascii", newline="\n") as f:
                f.write(content)
            self._replace(tmp)
            logger.debug(f"Saved {len(entries)} entries to {self.history_path}")
            return True
        except Exception as e:
            logger.error(f"Error saving history: {e}")
            self._report("save", e)
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                pass
            return False

    def _replace(self, tmp: Path):
        try:
            os.replace(tmp, self.history_path)
        except OSError as e:
            logger.warning(f"Atomic replace failed ({e}), overwriting in place")
            shutil.copyfile(tmp, self.history_path)
            tmp.unlink(missing_ok=True)

    def shutdown(self, wait: bool = True):
        """Stop accepting saves and drain queued ones"""
        self._closed = True
        self.executor.shutdown(wait=wait)

    def _report(self, source: str, error: BaseException):
        if self.on_error is not None:
            self.on_error(source, error)
