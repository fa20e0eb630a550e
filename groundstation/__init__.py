"""Ground station core - serial telemetry framing, history and launch pad commands."""

from .models import Reading, ThrustSample, Command, LinkState
from .errors import (
    GroundStationError,
    TransportUnavailable,
    PortNotFoundError,
    MultiplePortsError,
    TransportError,
    UnboundedLine,
    MalformedLine,
    NotConnected,
)
from .protocol import StreamFramer, TelemetryDecoder
from .history import HistoryStore
from .dispatcher import CommandDispatcher
from .link import Link, SerialLink
from .manager import ConnectionManager

__all__ = [
    "Reading",
    "ThrustSample",
    "Command",
    "LinkState",
    "GroundStationError",
    "TransportUnavailable",
    "PortNotFoundError",
    "MultiplePortsError",
    "TransportError",
    "UnboundedLine",
    "MalformedLine",
    "NotConnected",
    "StreamFramer",
    "TelemetryDecoder",
    "HistoryStore",
    "CommandDispatcher",
    "Link",
    "SerialLink",
    "ConnectionManager",
]
