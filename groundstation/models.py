"""Immutable data models for telemetry readings, commands and link state.

All models are frozen dataclasses or enums so they can be handed across the
reader thread and the caller without copying.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

# Telemetry fields carried by a Reading
READING_FIELDS = ("thrust", "temperature", "humidity")


@dataclass(frozen=True)
class Reading:
    """One decoded telemetry sample.

    Attributes:
        thrust: Thrust in newtons, or None if the line did not carry it
        temperature: Temperature in degrees Celsius, or None
        humidity: Relative humidity in percent, or None
        timestamp: Unix timestamp assigned when the line was decoded
    """
    thrust: Optional[float] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    timestamp: float = 0.0

    def __post_init__(self):
        if self.thrust is None and self.temperature is None and self.humidity is None:
            raise ValueError("Reading requires at least one telemetry field")

    @property
    def has_thrust(self) -> bool:
        return self.thrust is not None

    @property
    def has_environment(self) -> bool:
        """Whether both temperature and humidity are known."""
        return self.temperature is not None and self.humidity is not None


@dataclass(frozen=True)
class ThrustSample:
    """A (timestamp, thrust) pair held in the rolling chart window."""
    timestamp: float
    thrust: float


class Command(Enum):
    """Launch pad commands and their single-byte protocol codes."""
    ARM = "A"
    SAFE = "S"
    TEST = "T"
    LAUNCH = "I"

    @property
    def code(self) -> str:
        return self.value


class LinkState(Enum):
    """Lifecycle state of one ground station connection."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERRORED = "errored"
