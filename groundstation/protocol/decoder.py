"""Telemetry line decoder.

Parses launch pad telemetry lines into Reading objects. Lines look like::

    Thrust:12.34,Temp:22.1,Humi:55.0

Older firmware sends a single thrust value with a unit suffix::

    Thrust: 12.34 N
"""
from __future__ import annotations

import logging
import math
import time
from typing import Callable, Dict, Optional

from ..errors import MalformedLine
from ..models import Reading

logger = logging.getLogger(__name__)

# Wire key -> Reading attribute
FIELD_KEYS = {
    "Thrust": "thrust",
    "Temp": "temperature",
    "Humi": "humidity",
}

# Key and unit of the single-value line sent by older firmware
LEGACY_KEY = "Thrust"
LEGACY_UNIT = "N"


class TelemetryDecoder:
    """Decoder for comma-separated Key:Value telemetry lines.

    Unknown keys are ignored and a component that fails to parse is dropped
    without invalidating the rest of the line. A line is rejected only when
    no recognised key carries a parseable value.
    """

    def __init__(self, clock: Callable[[], float] = time.time, legacy_units: bool = True):
        """Initialize decoder.

        Args:
            clock: Source of the wall-clock timestamp stamped on each Reading
            legacy_units: Accept a thrust value followed by a separate
                ``N`` token, as in ``Thrust: 12.3 N``
        """
        self._clock = clock
        self._legacy_units = legacy_units
        self._rejected = 0

    @property
    def rejected_count(self) -> int:
        """Number of lines rejected by decode() since the last reset."""
        return self._rejected

    def reset(self) -> None:
        self._rejected = 0

    def decode(self, line: str) -> Optional[Reading]:
        """Decode a line, returning None if it carries no telemetry.

        Examples:
            >>> decoder = TelemetryDecoder(clock=lambda: 0.0)
            >>> decoder.decode("Thrust:12.3,Temp:garbled")
            Reading(thrust=12.3, temperature=None, humidity=None, timestamp=0.0)
            >>> decoder.decode("garbage") is None
            True
        """
        try:
            return self.parse(line)
        except MalformedLine:
            self._rejected += 1
            logger.debug(f"Discarded line: {line[:80]!r}")
            return None

    def parse(self, line: str) -> Reading:
        """Decode a line into a Reading.

        Raises:
            MalformedLine: If no recognised field parses
        """
        values: Dict[str, float] = {}

        for component in line.split(","):
            key, sep, raw = component.partition(":")
            if not sep:
                continue
            key = key.strip()
            attr = FIELD_KEYS.get(key)
            if attr is None:
                continue
            value = self._parse_value(key, raw)
            if value is not None:
                values[attr] = value

        if not values:
            raise MalformedLine(line)

        return Reading(timestamp=self._clock(), **values)

    def _parse_value(self, key: str, raw: str) -> Optional[float]:
        """Parse a field value, returning None if it is not a finite number."""
        token = raw.strip()
        value = _to_float(token)
        if value is None and self._legacy_units and key == LEGACY_KEY:
            parts = token.rsplit(None, 1)
            if len(parts) == 2 and parts[1] == LEGACY_UNIT:
                value = _to_float(parts[0])
        return value


def _to_float(token: str) -> Optional[float]:
    try:
        value = float(token)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value
