"""Link layer: raw serial channel to the launch pad and port discovery."""

from .base import Link
from .serial import SerialLink, DEFAULT_BAUDRATE
from .finder import PortInfo, find_ports, find_single_port, is_matching_port

__all__ = [
    "Link",
    "SerialLink",
    "DEFAULT_BAUDRATE",
    "PortInfo",
    "find_ports",
    "find_single_port",
    "is_matching_port",
]
