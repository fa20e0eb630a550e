"""Abstract base class for the vehicle link.

A Link is a raw, half-duplex character channel: a chunk source for telemetry
and a sink for command bytes. It does not interpret what flows through it.

Key principles:
- Blocking pull of the next chunk (silence is not an error)
- End of stream reported as None, failures as TransportError
- Safe to close from another thread while a read is pending
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class Link(ABC):
    """Abstract transport for the ground station.

    Links are responsible for:
    1. Opening and releasing the underlying device
    2. Delivering raw chunks in arrival order
    3. Writing command bytes

    Links should NOT frame, decode or buffer telemetry.
    """

    @abstractmethod
    def open(self) -> None:
        """Acquire the device.

        Raises:
            TransportUnavailable: If the device cannot be opened
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the device.

        Should be safe to call multiple times and from any thread.
        """
        pass

    @abstractmethod
    def is_open(self) -> bool:
        pass

    @abstractmethod
    def read_chunk(self) -> Optional[bytes]:
        """Wait for the next chunk.

        Returns:
            Bytes received, b"" if nothing arrived within the read timeout,
            or None at end of stream (the link was closed)

        Raises:
            TransportError: On a read failure
        """
        pass

    @abstractmethod
    def write(self, data: bytes) -> None:
        """Write bytes and return once the transport has accepted them.

        Raises:
            TransportError: If the link is closed or the write fails
        """
        pass

    @property
    def description(self) -> str:
        """Short label for status messages (e.g. the port name)."""
        return type(self).__name__

    def __enter__(self) -> Link:
        """Context manager support - open on enter."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager support - close on exit."""
        self.close()
