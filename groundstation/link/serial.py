"""Serial port link to the launch pad controller.

Thin pyserial wrapper: opens the port, hands out raw chunks and writes
command bytes. Does not interpret the stream.
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

import serial

from ..errors import TransportError, TransportUnavailable
from .base import Link
from .finder import find_single_port

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 9600
READ_TIMEOUT = 0.1  # seconds
READ_CHUNK_SIZE = 4096  # bytes


class SerialLink(Link):
    """Link over a local serial port.

    Example:
        >>> link = SerialLink(port="/dev/ttyACM0")
        >>> link.open()
        >>> link.write(b"A\\n")
        >>> chunk = link.read_chunk()
        >>> link.close()
    """

    def __init__(self,
                 port: Optional[str] = None,
                 baudrate: int = DEFAULT_BAUDRATE,
                 timeout: float = READ_TIMEOUT,
                 chunk_size: int = READ_CHUNK_SIZE,
                 **port_criteria):
        """Initialize serial link.

        Args:
            port: Serial port path (e.g. '/dev/ttyACM0'), or None to auto-detect
            baudrate: Serial baud rate (default 9600)
            timeout: Read timeout in seconds; an idle read returns b""
            chunk_size: Maximum bytes to read per chunk
            **port_criteria: Filters passed to find_single_port when auto-detecting
        """
        self._port = port
        self._baudrate = baudrate
        self._timeout = timeout
        self._chunk_size = chunk_size
        self._port_criteria = port_criteria

        self._serial: Optional[serial.Serial] = None
        self._lock = threading.Lock()

    @property
    def port(self) -> Optional[str]:
        return self._port

    @property
    def description(self) -> str:
        return self._port or "auto"

    def open(self) -> None:
        """Open the serial port, auto-detecting it if no port was given."""
        if self.is_open():
            logger.warning("Already open")
            return

        if self._port is None:
            info = find_single_port(**self._port_criteria)
            self._port = info.port
            logger.info(f"Auto-detected serial port {self._port}")

        try:
            ser = serial.Serial(
                port=self._port,
                baudrate=self._baudrate,
                timeout=self._timeout,
            )
            ser.reset_input_buffer()
            ser.reset_output_buffer()
        except (serial.SerialException, OSError, ValueError) as e:
            logger.error(f"Failed to open {self._port}: {e}")
            raise TransportUnavailable(f"Cannot open {self._port}: {e}") from e

        with self._lock:
            self._serial = ser
        logger.info(f"Opened {self._port} @ {self._baudrate} baud")

    def close(self) -> None:
        with self._lock:
            ser, self._serial = self._serial, None

        if ser is None:
            return

        try:
            ser.close()
        except (serial.SerialException, OSError) as e:
            logger.error(f"Error closing serial port: {e}")
        logger.info(f"Closed {self._port}")

    def is_open(self) -> bool:
        ser = self._serial
        return ser is not None and ser.is_open

    def read_chunk(self) -> Optional[bytes]:
        ser = self._serial
        if ser is None:
            return None

        try:
            return ser.read(self._chunk_size)
        except (serial.SerialException, OSError) as e:
            if self._serial is None:
                # Closed underneath a pending read
                return None
            raise TransportError(f"Serial read error: {e}") from e

    def write(self, data: bytes) -> None:
        ser = self._serial
        if ser is None:
            raise TransportError("Serial port is closed")

        try:
            ser.write(data)
            ser.flush()
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"Serial write error: {e}") from e
