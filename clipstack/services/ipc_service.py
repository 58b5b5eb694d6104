#!/usr/bin/env python3
"""
IPC Service - Loopback TCP control channel of the primary instance

Protocol: one UTF-8 command line (TOGGLE, SHOW or HIDE, case-insensitive)
per connection, no reply. The server hands each recognised command to the
presentation layer through a dispatch callable, since presentation hooks
are not safe to call from the accept thread.
"""
import asyncio
import logging
import os
import socket
import threading
from typing import Any, Callable, Optional, Protocol

from clipstack.models import ControlCommand, ErrorHook, parse_command
from clipstack.settings import ControlSettings

logger = logging.getLogger(__name__)

Dispatch = Callable[[Callable[[], Any]], Any]


class ControlTarget(Protocol):
    def toggle(self) -> None: ...

    def show(self) -> None: ...

    def hide(self) -> None: ...


def try_bind(host: str, port: int, backlog: int = 50) -> Optional[socket.socket]:
    """Bind and listen on host:port, or return None if the port is taken"""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        if os.name == "nt":
            # Windows lets SO_REUSEADDR steal a bound port; demand exclusivity instead
            exclusive = getattr(socket, "SO_EXCLUSIVEADDRUSE", None)
            if exclusive is not None:
                sock.setsockopt(socket.SOL_SOCKET, exclusive, 1)
        else:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(backlog)
    except OSError as e:
        logger.info(f"Control port {host}:{port} unavailable: {e}")
        sock.close()
        return None
    logger.info(f"Control server bound to {host}:{port}")
    return sock


class ControlServer:
    """Accept loop forwarding control commands to a presentation target"""

    def __init__(
        self,
        target: ControlTarget,
        dispatch: Dispatch,
        settings: Optional[ControlSettings] = None,
        on_error: Optional[ErrorHook] = None,
    ):
        """
        Initialize control server

        Args:
            target: Object exposing toggle/show/hide
            dispatch: Schedules a callable on the presentation context
            settings: Control settings providing the read timeout
            on_error: Receives per-connection errors
        """
        logger.info("[ControlServer.__init__] Starting initialization...")
        self.target = target
        self.dispatch = dispatch
        self.settings = settings or ControlSettings()
        self.on_error = on_error
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stopped: Optional[asyncio.Event] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()
        self._stop_requested = threading.Event()
        logger.info("[ControlServer.__init__] Initialization complete")

    def serve(self, listener: socket.socket):
        """Serve connections on the calling thread until stop() is called"""
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._stopped = asyncio.Event()
        self._loop = loop
        try:
            loop.run_until_complete(self._serve(listener))
        finally:
            loop.close()
            self._loop = None
            logger.info("Control server stopped")

    def start(self, listener: socket.socket) -> threading.Thread:
        """Run serve() on a daemon thread"""
        self._thread = threading.Thread(
            target=self.serve, args=(listener,), name="control-server", daemon=True
        )
        self._thread.start()
        return self._thread

    def wait_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop is running"""
        return self._ready.wait(timeout)

    def stop(self, timeout: Optional[float] = None):
        """Stop the accept loop from any thread and join the server thread"""
        self._stop_requested.set()
        loop = self._loop
        if loop is not None and self._stopped is not None:
            try:
                loop.call_soon_threadsafe(self._stopped.set)
            except RuntimeError:
                # loop already closed
                pass
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    async def _serve(self, listener: socket.socket):
        server = await asyncio.start_server(self.client_handler, sock=listener)
        async with server:
            self._ready.set()
            logger.info("Control server accepting connections")
            if not self._stop_requested.is_set():
                await self._stopped.wait()

    async def client_handler(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """Handle one connection: read a single command line, then close"""
        addr = writer.get_extra_info('peername', 'unknown')
        try:
            raw = await asyncio.wait_for(reader.readline(), timeout=self.settings.read_timeout)
            line = raw.decode("utf-8", errors="replace")
            command = parse_command(line)
            if command is None:
                if line.strip():
                    logger.debug(f"Ignoring unknown control command from {addr}: {line.strip()!r}")
                return
            logger.info(f"Received {command.value} from {addr}")
            self.handle_command(command)
        except Exception as e:
            logger.warning(f"Control connection from {addr} failed: {e}")
            if self.on_error is not None:
                self.on_error("control", e)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except Exception:
                pass

    def handle_command(self, command: ControlCommand):
        """Schedule the presentation hook matching command"""
        hook = getattr(self.target, command.method)
        self.dispatch(hook)
