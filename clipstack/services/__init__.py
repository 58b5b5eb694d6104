"""Core services: history, persistence, clipboard polling and the control channel."""

from .clipboard_service import ClipboardObserver
from .history_service import HistoryStore
from .ipc_client import ControlClient
from .ipc_service import ControlServer, try_bind
from .persistence_service import PersistenceManager
from .singleton_service import InstanceRole, SingletonCoordinator

__all__ = [
    "ClipboardObserver",
    "ControlClient",
    "ControlServer",
    "HistoryStore",
    "InstanceRole",
    "PersistenceManager",
    "SingletonCoordinator",
    "try_bind",
]
