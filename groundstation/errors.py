"""Exception hierarchy for the ground station core."""
from __future__ import annotations

from typing import List, Optional, Sequence


class GroundStationError(RuntimeError):
    """Base class for all ground station errors."""
    pass


class TransportUnavailable(GroundStationError):
    """Raised when the serial link cannot be opened."""
    pass


class PortNotFoundError(TransportUnavailable):
    """Raised when no matching serial port could be found."""
    pass


class MultiplePortsError(TransportUnavailable):
    """Raised when more than one matching serial port is found."""
    def __init__(self, message, ports):
        super().__init__(message)
        self.ports = ports  # list[PortInfo]


class TransportError(GroundStationError):
    """Raised when a read or write fails on an open link.

    Always terminates the current session.
    """
    pass


class UnboundedLine(TransportError):
    """Raised when the pending partial line grows past its cap without a newline.

    Attributes:
        size: Length of the discarded partial line
        lines: Lines completed by the same chunk before the overflow
    """
    def __init__(self, size: int, lines: Optional[Sequence[str]] = None):
        super().__init__(f"No line terminator within {size} characters")
        self.size = size
        self.lines: List[str] = list(lines or [])


class MalformedLine(GroundStationError):
    """Raised when a telemetry line carries no recognised field."""
    def __init__(self, line: str):
        super().__init__(f"No telemetry field in line: {line[:80]!r}")
        self.line = line


class NotConnected(GroundStationError):
    """Raised when a command is sent while the link is not connected."""
    pass
