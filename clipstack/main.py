#!/usr/bin/env python3
"""
ClipStack Main Entry Point
Resolves the instance role, wires all services together and runs the app
"""
import argparse
import logging
import signal
import socket
import sys
from pathlib import Path
from typing import Callable, List, Optional

import pyperclip

from clipstack.config.paths import AppPaths
from clipstack.models import ControlCommand, ErrorHook
from clipstack.services.clipboard_service import ClipboardObserver, ClipboardReader, read_clipboard_text
from clipstack.services.history_service import HistoryStore
from clipstack.services.ipc_service import ControlServer
from clipstack.services.persistence_service import PersistenceManager
from clipstack.services.singleton_service import SingletonCoordinator
from clipstack.settings import SettingsManager
from clipstack.ui.event_loop import EventLoop
from clipstack.ui.popup_controller import PopupController

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ClipStackApp:
    """Primary instance: owns the history, the observer and the control server"""

    def __init__(
        self,
        settings_manager: SettingsManager,
        listener: socket.socket,
        history_path: Optional[Path] = None,
        clipboard_reader: ClipboardReader = read_clipboard_text,
        copy_text: Callable[[str], None] = pyperclip.copy,
        on_error: Optional[ErrorHook] = None,
    ):
        """Initialize every service in dependency order"""
        logger.info("Initializing services...")
        settings = settings_manager.settings
        if history_path is None:
            history_path = AppPaths.from_settings(settings.history).history_path

        self.settings = settings
        self.listener = listener
        self.event_loop = EventLoop()
        self.history = HistoryStore(settings.history)
        self.persistence = PersistenceManager(history_path, settings.history, on_error=on_error)
        self.observer = ClipboardObserver(
            self.history, settings.clipboard, reader=clipboard_reader, on_error=on_error
        )
        self.popup = PopupController(self.history, settings.display, copy_text=copy_text)
        self.control_server = ControlServer(
            self.popup, self.event_loop.call_soon, settings.control, on_error=on_error
        )
        self._started = False
        self._stopped = False
        logger.info("All services initialized successfully")

    def start(self, ready_timeout: float = 5.0):
        """Hydrate history, then start polling and serving"""
        if self._started:
            logger.warning("ClipStack already started")
            return
        self._started = True

        result = self.persistence.load(self.history)
        logger.info(f"History ready: {result.loaded} loaded, {result.skipped} skipped")
        self.persistence.attach(self.history)

        self.observer.start()
        self.control_server.start(self.listener)
        if not self.control_server.wait_ready(ready_timeout):
            logger.warning("Control server did not report ready in time")

    def run(self):
        """Run the presentation loop on the calling thread until stop()"""
        self.event_loop.run_forever()

    def stop(self):
        self.event_loop.stop()

    def shutdown(self, timeout: float = 5.0):
        """Stop background tasks and flush the history once more"""
        if self._stopped:
            return
        self._stopped = True
        logger.info("Shutting down...")

        self.control_server.stop(timeout)
        self.listener.close()
        self.observer.stop(timeout)
        self.event_loop.stop()

        self.persistence.shutdown(wait=True)
        if self._started:
            self.persistence.save(self.history)
        logger.info("Shutdown complete")

    def signal_handler(self, signum, frame):
        logger.info(f"Received signal {signum}, stopping...")
        self.stop()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="clipstack", description="Clipboard history manager")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--toggle", action="store_true", help="Toggle the popup of the running instance")
    group.add_argument("--show", action="store_true", help="Show the popup of the running instance")
    parser.add_argument("--config", type=Path, default=None, help="Path to settings.yml")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    return parser.parse_args(argv)


def launch_command(args: argparse.Namespace) -> Optional[ControlCommand]:
    if args.toggle:
        return ControlCommand.TOGGLE
    if args.show:
        return ControlCommand.SHOW
    return None


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)

    settings_manager = SettingsManager(args.config)
    command = launch_command(args)

    role = SingletonCoordinator(settings_manager.control).resolve(command)
    if not role.is_primary:
        return 0

    app = ClipStackApp(settings_manager, role.listener)
    signal.signal(signal.SIGTERM, app.signal_handler)
    signal.signal(signal.SIGINT, app.signal_handler)

    try:
        app.start()
        if command is not None:
            # Nobody was running: open the popup right away
            app.event_loop.call_soon(getattr(app.popup, command.method))
        app.run()
    finally:
        app.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
