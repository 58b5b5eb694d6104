"""Value types shared by the clipboard history services."""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

# Called with (source, exception) whenever a boundary operation swallows an error.
ErrorHook = Callable[[str, BaseException], None]


@dataclass(frozen=True)
class Entry:
    """One captured clipboard value."""

    timestamp: int
    text: str

    def __str__(self) -> str:
        return self.text


class PollOutcome(str, Enum):
    APPENDED = "appended"
    UNCHANGED = "unchanged"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(frozen=True)
class LoadResult:
    """Summary of a history file load."""

    loaded: int = 0
    skipped: int = 0
    found: bool = False
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ControlCommand(str, Enum):
    """Commands accepted on the control channel.

    The value is the wire token; ``method`` names the presentation hook it
    triggers.
    """

    TOGGLE = "TOGGLE"
    SHOW = "SHOW"
    HIDE = "HIDE"

    @property
    def method(self) -> str:
        return self.value.lower()

    def to_wire(self) -> bytes:
        return f"{self.value}\n".encode("utf-8")


def parse_command(line: Optional[str]) -> Optional[ControlCommand]:
    """Return the command carried by a protocol line, or None if unknown."""
    if line is None:
        return None
    token = line.strip().upper()
    try:
        return ControlCommand(token)
    except ValueError:
        return None
