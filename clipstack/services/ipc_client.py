"""Control channel client used by secondary instances."""

import logging
import socket
from typing import Optional, Union

from clipstack.models import ControlCommand
from clipstack.settings import ControlSettings

logger = logging.getLogger(__name__)


def send(
    command: Union[ControlCommand, str],
    host: str = "127.0.0.1",
    port: int = 51515,
    timeout: float = 1.0,
) -> bool:
    """Deliver one command to a running instance.

    Returns False when no instance listens; never raises.
    """
    try:
        command = ControlCommand(str(getattr(command, "value", command)).upper())
    except ValueError:
        logger.warning(f"Refusing to send unknown control command {command!r}")
        return False
    try:
        with socket.create_connection((host, port), timeout=timeout) as sock:
            sock.sendall(command.to_wire())
    except OSError as e:
        logger.debug(f"Could not reach control server on {host}:{port}: {e}")
        return False
    logger.info(f"Sent {command.value} to {host}:{port}")
    return True


class ControlClient:
    """Sends commands to the control server described by settings."""

    def __init__(self, settings: Optional[ControlSettings] = None):
        self.settings = settings or ControlSettings()

    def send(self, command: Union[ControlCommand, str]) -> bool:
        return send(
            command,
            host=self.settings.host,
            port=self.settings.port,
            timeout=self.settings.connect_timeout,
        )
