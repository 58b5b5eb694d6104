"""Headless popup state: visibility, search query and the rows to render."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

import pyperclip

from clipstack.models import Entry
from clipstack.services.history_service import HistoryStore
from clipstack.settings import DisplaySettings
from clipstack.utils.formatting import format_timestamp, to_single_line

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PopupRow:
    entry: Entry
    preview: str
    time_label: str


class PopupController:
    """Presentation-side consumer of the history read API.

    Implements the toggle/show/hide hooks the control server dispatches to.
    Must only be used from the presentation event loop.
    """

    def __init__(
        self,
        store: HistoryStore,
        settings: Optional[DisplaySettings] = None,
        copy_text: Callable[[str], None] = pyperclip.copy,
    ):
        self.store = store
        self.settings = settings or DisplaySettings()
        self.copy_text = copy_text
        self.visible = False
        self.query = ""

    def toggle(self) -> None:
        if self.visible:
            self.hide()
        else:
            self.show()

    def show(self) -> None:
        if not self.visible:
            logger.info("Showing popup")
        self.visible = True

    def hide(self) -> None:
        if self.visible:
            logger.info("Hiding popup")
        self.visible = False

    def set_query(self, query: Optional[str]) -> None:
        self.query = query or ""

    def entries(self) -> List[Entry]:
        return self.store.search(self.query, self.settings.max_visible)

    def rows(self, now: Optional[datetime] = None) -> List[PopupRow]:
        return [
            PopupRow(
                entry=entry,
                preview=to_single_line(entry.text, self.settings.preview_chars),
                time_label=format_timestamp(entry.timestamp, now),
            )
            for entry in self.entries()
        ]

    @property
    def no_results(self) -> bool:
        return not self.entries()

    def clear_history(self) -> None:
        self.store.clear()

    def copy_entry(self, entry: Entry) -> bool:
        """Put the original text (line breaks and tabs intact) on the clipboard and hide"""
        try:
            self.copy_text(entry.text)
        except Exception as e:
            logger.warning(f"Could not copy entry to clipboard: {e}")
            return False
        finally:
            self.hide()
        return True
