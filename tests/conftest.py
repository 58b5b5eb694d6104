"""Pytest configuration and shared fixtures."""

import socket
from pathlib import Path
from typing import Iterator, List, Optional

import pytest

from clipstack.services.history_service import HistoryStore
from clipstack.settings import ClipboardSettings, ControlSettings, HistorySettings


class FakeClipboard:
    """Scriptable clipboard reader; raises when the next value is an exception."""

    def __init__(self, values: Optional[List] = None):
        self.values = list(values or [])
        self.current = None
        self.reads = 0

    def set(self, value):
        self.current = value

    def __call__(self):
        self.reads += 1
        if self.values:
            self.current = self.values.pop(0)
        if isinstance(self.current, BaseException):
            raise self.current
        return self.current


class FakeClock:
    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


@pytest.fixture
def history_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "history.txt"


@pytest.fixture
def history_settings() -> HistorySettings:
    return HistorySettings(max_items=5)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(history_settings: HistorySettings, clock: FakeClock) -> HistoryStore:
    return HistoryStore(history_settings, clock=clock)


@pytest.fixture
def fake_clipboard() -> FakeClipboard:
    return FakeClipboard()


@pytest.fixture
def fast_clipboard_settings() -> ClipboardSettings:
    return ClipboardSettings(poll_interval_ms=10)


@pytest.fixture
def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def control_settings(free_port: int) -> ControlSettings:
    return ControlSettings(port=free_port, connect_timeout=1.0, read_timeout=1.0)


@pytest.fixture
def errors() -> Iterator[list]:
    collected: list = []
    yield collected


@pytest.fixture
def error_hook(errors: list):
    def hook(source, exc):
        errors.append((source, exc))

    return hook
