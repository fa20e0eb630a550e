"""Human-readable status lines published to the UI status sink."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from .models import Command, LinkState, Reading

STATUS_CONNECTING = "STATUS: CONNECTING..."
STATUS_DISCONNECTED = "STATUS: DISCONNECTED"
STATUS_NOT_CONNECTED = "STATUS: ERROR - Not connected. Click CONNECT."
LAUNCH_NOTICE = "LAUNCH SEQUENCE STARTED!"


def format_time(timestamp: float) -> str:
    """Format a Unix timestamp as local en-US clock time, e.g. ``3:04:05 PM``."""
    text = datetime.fromtimestamp(timestamp).strftime("%I:%M:%S %p")
    return text[1:] if text.startswith("0") else text


def format_state(state: LinkState, port: Optional[str] = None) -> str:
    if state == LinkState.CONNECTED:
        return f"STATUS: CONNECTED ({port})" if port else "STATUS: CONNECTED"
    if state == LinkState.CONNECTING:
        return STATUS_CONNECTING
    if state == LinkState.ERRORED:
        return "STATUS: ERROR"
    return STATUS_DISCONNECTED


def format_error(error: BaseException) -> str:
    return f"STATUS: ERROR - {error}"


def format_reading(reading: Reading) -> str:
    """Multi-line status block for a reading with environmental data.

    Unknown fields are shown as ``--``.
    """
    return "\n".join([
        "STATUS: ONLINE",
        f"THRUST: {_fmt(reading.thrust, 2)} N",
        f"TEMP: {_fmt(reading.temperature, 1)} °C",
        f"HUMI: {_fmt(reading.humidity, 1)} %",
    ])


def format_command_sent(command: Command) -> str:
    return f"COMMAND SENT: {command.code}"


def format_silence(seconds: float) -> str:
    return f"STATUS: NO TELEMETRY FOR {seconds:.0f}s"


def _fmt(value: Optional[float], places: int) -> str:
    if value is None:
        return "--"
    return f"{value:.{places}f}"
