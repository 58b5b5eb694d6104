"""ClipStack - resident clipboard history with a loopback control channel."""

__version__ = "0.1.0"
