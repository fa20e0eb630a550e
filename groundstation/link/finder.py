"""Serial port discovery for the launch pad controller."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from serial.tools import list_ports

from ..errors import PortNotFoundError, MultiplePortsError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PortInfo:
    """
    Representation of one serial port as seen by pyserial.

    Attributes:
        port: Port name to open with pyserial (e.g. 'COM3', '/dev/ttyACM0').
        vid: USB Vendor ID (integer) or None if not a USB device.
        pid: USB Product ID (integer) or None.
        manufacturer: USB manufacturer string, if available.
        product: USB product string, if available.
        serial_number: USB serial string, if available.
        hwid: Raw hardware ID string from pyserial (for debugging).
    """
    port: str
    vid: Optional[int]
    pid: Optional[int]
    manufacturer: Optional[str]
    product: Optional[str]
    serial_number: Optional[str]
    hwid: str

    @property
    def is_usb(self) -> bool:
        return self.vid is not None


def _port_to_info(port) -> PortInfo:
    """Convert pyserial's ListPortInfo to PortInfo."""
    return PortInfo(
        port=port.device,
        vid=port.vid,
        pid=port.pid,
        manufacturer=port.manufacturer,
        product=port.product,
        serial_number=port.serial_number,
        hwid=port.hwid,
    )


def is_matching_port(
    info: PortInfo,
    *,
    expected_vid: Optional[int] = None,
    expected_pid: Optional[int] = None,
    product_substring: Optional[str] = None,
    usb_only: bool = True,
) -> bool:
    """
    Decide whether a port looks like the launch pad controller.

    All checks are AND-combined; a criterion left as None is ignored.
    Boards are usually USB CDC or USB-serial bridges, so non-USB ports
    (legacy COM ports, Bluetooth SPP) are skipped unless usb_only is False.
    """
    if usb_only and not info.is_usb:
        return False

    if expected_vid is not None and info.vid != expected_vid:
        return False

    if expected_pid is not None and info.pid != expected_pid:
        return False

    if product_substring is not None:
        text = " ".join(filter(None, (info.product, info.manufacturer)))
        if product_substring.lower() not in text.lower():
            return False

    return True


def find_ports(
    *,
    matcher: Optional[Callable[[PortInfo], bool]] = None,
    expected_vid: Optional[int] = None,
    expected_pid: Optional[int] = None,
    product_substring: Optional[str] = None,
    usb_only: bool = True,
) -> List[PortInfo]:
    """
    List candidate serial ports on this machine.

    Pass either a custom `matcher(info) -> bool` or the built-in criteria.
    """
    results: List[PortInfo] = []

    for port in list_ports.comports():
        info = _port_to_info(port)
        if matcher is not None:
            matched = matcher(info)
        else:
            matched = is_matching_port(
                info,
                expected_vid=expected_vid,
                expected_pid=expected_pid,
                product_substring=product_substring,
                usb_only=usb_only,
            )
        if matched:
            results.append(info)

    return results


def find_single_port(**criteria) -> PortInfo:
    """
    Find exactly one candidate port.

    Behaviour:
        - 0 matches  -> PortNotFoundError
        - 1 match    -> return it
        - >1 matches -> MultiplePortsError (never picks one implicitly)
    """
    matches = find_ports(**criteria)

    if not matches:
        raise PortNotFoundError("No matching serial port found")

    if len(matches) > 1:
        logger.error(
            "Multiple candidate serial ports found; refusing to choose automatically. "
            "Ports: %s",
            [m.port for m in matches],
        )
        raise MultiplePortsError(
            f"Multiple candidate serial ports found ({len(matches)} ports)",
            ports=matches,
        )

    return matches[0]
