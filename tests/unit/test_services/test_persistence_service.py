"""Tests for PersistenceManager."""

import base64
import os
import re
import threading
from pathlib import Path

import pytest

from clipstack.models import Entry
from clipstack.services import persistence_service
from clipstack.services.history_service import HistoryStore
from clipstack.services.persistence_service import PersistenceManager, decode_line, encode_entry
from clipstack.settings import HistorySettings

LINE_PATTERN = re.compile(r"^\d+\t[A-Za-z0-9+/=]+$")


@pytest.fixture
def manager(history_path: Path, history_settings: HistorySettings, error_hook):
    manager = PersistenceManager(history_path, history_settings, on_error=error_hook)
    yield manager
    manager.shutdown()


def b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


class TestLineCodec:
    """Test the per-line record format."""

    def test_encode_entry_format(self):
        line = encode_entry(Entry(123, "hi"))

        assert line == f"123\t{b64('hi')}"

    def test_decode_rejects_missing_tab(self):
        assert decode_line("123") is None

    def test_decode_rejects_leading_tab(self):
        assert decode_line(f"\t{b64('x')}") is None

    def test_decode_rejects_non_numeric_timestamp(self):
        assert decode_line(f"abc\t{b64('x')}") is None

    def test_decode_rejects_invalid_base64(self):
        assert decode_line("123\t!!!not base64!!!") is None

    def test_decode_rejects_invalid_utf8(self):
        payload = base64.b64encode(b"\xff\xfe").decode("ascii")

        assert decode_line(f"123\t{payload}") is None

    def test_decode_empty_payload_is_empty_text(self):
        assert decode_line("123\t") == Entry(123, "")

    def test_lone_surrogate_survives_codec(self):
        entry = Entry(7, "bad \ud83d text")

        assert decode_line(encode_entry(entry)) == entry


class TestSave:
    """Test the synchronous save path."""

    def test_concrete_io_scenario(self, manager: PersistenceManager, history_path: Path, store: HistoryStore):
        result = manager.load(store)
        assert result.loaded == 0
        assert store.snapshot() == []

        store.append("hello\nworld")
        assert manager.save(store) is True

        lines = history_path.read_text(encoding="ascii").splitlines()
        assert len(lines) == 1
        assert LINE_PATTERN.match(lines[0])
        payload = lines[0].split("\t", 1)[1]
        assert base64.b64decode(payload).decode("utf-8") == "hello\nworld"

    def test_save_creates_missing_directory(self, manager: PersistenceManager, history_path: Path, store):
        assert not history_path.parent.exists()

        manager.save(store)

        assert history_path.exists()

    def test_save_writes_newest_first(self, manager: PersistenceManager, history_path: Path, store):
        store.append("old")
        store.append("new")
        manager.save(store)

        lines = history_path.read_text().splitlines()
        assert [decode_line(line).text for line in lines] == ["new", "old"]

    def test_save_rewrites_whole_file(self, manager: PersistenceManager, history_path: Path, store):
        store.append("a")
        store.append("b")
        manager.save(store)
        store.clear()
        manager.save(store)

        assert history_path.read_text() == ""

    def test_unpaired_surrogate_does_not_block_later_saves(
        self, manager: PersistenceManager, history_path: Path, store, errors
    ):
        store.append("good before")
        assert manager.save(store) is True

        store.append("bad \ud83d text")
        store.append("good after")

        assert manager.save(store) is True
        assert errors == []
        texts = [decode_line(line).text for line in history_path.read_text().splitlines()]
        assert texts == ["good after", "bad \ud83d text", "good before"]

    def test_save_leaves_no_temp_file(self, manager: PersistenceManager, store):
        store.append("a")
        manager.save(store)

        assert not manager.temp_path.exists()

    def test_save_failure_is_swallowed(self, tmp_path: Path, store, errors, error_hook):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        manager = PersistenceManager(blocker / "history.txt", on_error=error_hook)
        store.append("a")

        try:
            assert manager.save(store) is False
        finally:
            manager.shutdown()

        assert errors and errors[0][0] == "save"

    def test_save_falls_back_when_atomic_replace_fails(self, manager, history_path, store, monkeypatch):
        def broken_replace(src, dst):
            raise OSError("atomic rename not supported")

        monkeypatch.setattr(persistence_service.os, "replace", broken_replace)
        store.append("fallback")

        assert manager.save(store) is True
        assert decode_line(history_path.read_text().strip()).text == "fallback"
        assert not manager.temp_path.exists()

    def test_failed_save_keeps_previous_file(self, manager, history_path, store, monkeypatch):
        store.append("kept")
        manager.save(store)
        previous = history_path.read_text()

        def broken_write(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(persistence_service.os, "replace", broken_write)
        monkeypatch.setattr(persistence_service.shutil, "copyfile", broken_write)
        store.append("lost")

        assert manager.save(store) is False
        assert history_path.read_text() == previous


class TestLoad:
    """Test hydration from disk."""

    def test_missing_file_leaves_store_untouched(self, manager: PersistenceManager, store):
        store.append("in memory")

        result = manager.load(store)

        assert result.found is False
        assert [e.text for e in store.snapshot()] == ["in memory"]

    def test_round_trip_preserves_entries(self, history_path, clock):
        settings = HistorySettings(max_items=10)
        original = HistoryStore(settings, clock=clock)
        for text in ["tab\there", "multi\nline\r\ntext", "naïve café 日本語 🎉", ""]:
            original.append(text)
        writer = PersistenceManager(history_path, settings)
        writer.save(original)
        writer.shutdown()

        restored = HistoryStore(settings)
        reader = PersistenceManager(history_path, settings)
        result = reader.load(restored)
        reader.shutdown()

        assert result.loaded == 4
        assert restored.snapshot() == original.snapshot()

    def test_malformed_lines_are_skipped(self, manager, history_path: Path, store):
        history_path.parent.mkdir(parents=True)
        history_path.write_text(
            "\n".join([
                f"3\t{b64('three')}",
                "garbage",
                f"x\t{b64('bad ts')}",
                "2\t%%%",
                f"1\t{b64('one')}",
            ]) + "\n"
        )

        result = manager.load(store)

        assert result.loaded == 2
        assert result.skipped == 3
        assert store.snapshot() == [Entry(3, "three"), Entry(1, "one")]

    def test_non_ascii_line_is_skipped(self, manager, history_path: Path, store):
        history_path.parent.mkdir(parents=True)
        history_path.write_bytes(b"1\t\xff\xfe\n" + f"2\t{b64('ok')}\n".encode("ascii"))

        result = manager.load(store)

        assert result.skipped == 1
        assert store.snapshot() == [Entry(2, "ok")]

    def test_load_stops_at_max_items(self, manager, history_path: Path, store):
        history_path.parent.mkdir(parents=True)
        history_path.write_text("".join(f"{100 - i}\t{b64(str(i))}\n" for i in range(12)))

        result = manager.load(store)

        assert result.loaded == 5
        assert [e.text for e in store.snapshot()] == ["0", "1", "2", "3", "4"]

    def test_load_does_not_trigger_save(self, manager, history_path: Path, store):
        history_path.parent.mkdir(parents=True)
        history_path.write_text(f"1\t{b64('a')}\n")
        manager.attach(store)
        mtime = os.stat(history_path).st_mtime_ns

        manager.load(store)
        manager.shutdown()

        assert os.stat(history_path).st_mtime_ns == mtime

    def test_unreadable_file_is_swallowed(self, manager, history_path: Path, store, errors):
        history_path.mkdir(parents=True)  # a directory cannot be read as a file

        result = manager.load(store)

        assert result.ok is False
        assert store.snapshot() == []
        assert errors and errors[0][0] == "load"


class TestSaveAsync:
    """Test the write-behind queue."""

    def test_save_async_writes_in_background(self, manager, history_path, store):
        store.append("queued")

        future = manager.save_async(store)

        assert future.result(timeout=5) is True
        assert decode_line(history_path.read_text().strip()).text == "queued"

    def test_attached_store_persists_on_append(self, manager, history_path, store):
        manager.attach(store)

        for i in range(10):
            store.append(f"burst {i}")
        manager.shutdown(wait=True)

        texts = [decode_line(line).text for line in history_path.read_text().splitlines()]
        assert texts == ["burst 9", "burst 8", "burst 7", "burst 6", "burst 5"]

    def test_save_async_after_shutdown_is_dropped(self, manager, store):
        manager.shutdown()

        assert manager.save_async(store) is None

    def test_snapshot_taken_at_execution_time(self, manager, history_path, store):
        release = threading.Event()
        blocker = manager.executor.submit(release.wait, 5)

        store.append("first")
        future = manager.save_async(store)
        store.append("second")
        release.set()

        assert blocker.result(timeout=5) is True
        assert future.result(timeout=5) is True
        texts = [decode_line(line).text for line in history_path.read_text().splitlines()]
        assert texts == ["second", "first"]
