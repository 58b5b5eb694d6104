"""Text formatting utilities."""

import unicodedata
from datetime import datetime, timedelta
from typing import Optional


def format_timestamp(timestamp_ms: int, now: Optional[datetime] = None) -> str:
    """Human label for a capture time, relative to now (local time)."""
    dt = datetime.fromtimestamp(timestamp_ms / 1000.0)
    now = now or datetime.now()
    seconds = max(0, int((now - dt).total_seconds()))

    if seconds < 45:
        return "just now"
    if seconds < 90:
        return "1 minute ago"
    minutes = seconds // 60
    if minutes < 45:
        return f"{minutes} minutes ago"
    if minutes < 90:
        return "1 hour ago"

    if dt.date() == now.date():
        return f"today {dt:%H:%M}"
    if dt.date() + timedelta(days=1) == now.date():
        return f"yesterday {dt:%H:%M}"
    return f"{dt:%d/%m %H:%M}"


def to_single_line(text: str, max_chars: int = 80) -> str:
    """Compact one-line preview; the stored text is left untouched."""
    if not text:
        return ""
    flat = text.replace("\r", "").replace("\n", "⏎").replace("\t", "⇥")
    flat = "".join("•" if unicodedata.category(ch) == "Cc" else ch for ch in flat)
    if len(flat) > max_chars:
        flat = flat[: max(0, max_chars - 1)] + "…"
    return flat
