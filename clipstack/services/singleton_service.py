#!/usr/bin/env python3
"""
Singleton Service - Decides whether this process is the primary instance

The control port doubles as the instance lock: whoever binds it is primary.
A port held by an unrelated program looks exactly like a running instance.
"""
import logging
import socket
from dataclasses import dataclass
from typing import Callable, Optional

from clipstack.models import ControlCommand
from clipstack.services.ipc_client import send as send_command
from clipstack.services.ipc_service import try_bind
from clipstack.settings import ControlSettings

logger = logging.getLogger(__name__)


@dataclass
class InstanceRole:
    """Outcome of the startup decision"""

    listener: Optional[socket.socket] = None
    signaled: bool = False

    @property
    def is_primary(self) -> bool:
        return self.listener is not None


class SingletonCoordinator:
    """Runs the primary/secondary decision once at process start"""

    def __init__(
        self,
        settings: Optional[ControlSettings] = None,
        bind: Callable[[str, int], Optional[socket.socket]] = try_bind,
        send: Callable[..., bool] = send_command,
    ):
        self.settings = settings or ControlSettings()
        self._bind = bind
        self._send = send

    def claim_primary(self) -> Optional[socket.socket]:
        return self._bind(self.settings.host, self.settings.port)

    def signal_primary(self, command: ControlCommand = ControlCommand.TOGGLE) -> bool:
        return self._send(
            command,
            host=self.settings.host,
            port=self.settings.port,
            timeout=self.settings.connect_timeout,
        )

    def resolve(self, initial_command: Optional[ControlCommand] = None) -> InstanceRole:
        """
        Decide the role of this process

        Args:
            initial_command: Command requested on launch (--toggle/--show), if any

        Returns:
            InstanceRole holding the bound listener when primary
        """
        # A launch command goes to a running instance first
        if initial_command is not None and self.signal_primary(initial_command):
            logger.info(f"Delivered {initial_command.value} to running instance")
            return InstanceRole(signaled=True)

        listener = self.claim_primary()
        if listener is not None:
            logger.info("Running as primary instance")
            return InstanceRole(listener=listener)

        signaled = self.signal_primary(ControlCommand.TOGGLE)
        if signaled:
            logger.info("Another instance is running, sent TOGGLE")
        else:
            logger.warning(
                f"Control port {self.settings.port} is busy but nothing answered; exiting"
            )
        return InstanceRole(signaled=signaled)
