"""Presentation layer."""

from .event_loop import EventLoop
from .popup_controller import PopupController, PopupRow

__all__ = ["EventLoop", "PopupController", "PopupRow"]
