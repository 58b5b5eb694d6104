"""Utility functions."""

from .formatting import format_timestamp, to_single_line

__all__ = [
    "format_timestamp",
    "to_single_line",
]
