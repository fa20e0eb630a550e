"""Protocol layer for the launch pad serial link."""

from .framer import StreamFramer, MAX_PENDING_LINE
from .decoder import TelemetryDecoder, FIELD_KEYS
from .commands import encode_command, DEFAULT_TERMINATOR

__all__ = [
    "StreamFramer",
    "MAX_PENDING_LINE",
    "TelemetryDecoder",
    "FIELD_KEYS",
    "encode_command",
    "DEFAULT_TERMINATOR",
]
