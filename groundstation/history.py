"""Telemetry history: rolling chart window plus the per-session export log.

The window is a fixed-capacity FIFO of thrust samples for live charting.
The session log keeps every Reading of the current connection until the
next reset().
"""
from __future__ import annotations

import csv
import io
import logging
import threading
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Deque, List, Optional, Tuple, Union

from .models import Reading, ThrustSample
from .status import format_time

logger = logging.getLogger(__name__)

HISTORY_CAPACITY = 100  # samples kept for the live chart
CSV_HEADER = ("Time", "Thrust (N)", "Temperature (°C)", "Humidity (%)")
DEFAULT_EXPORT_PREFIX = "DhumketuX"


class HistoryStore:
    """Thread-safe owner of the rolling window and the session log.

    Recording happens on the reader thread; snapshot() and the export
    methods may be called from any thread.
    """

    def __init__(self, capacity: int = HISTORY_CAPACITY):
        """Initialize store.

        Args:
            capacity: Maximum number of thrust samples kept in the window
        """
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._window: Deque[ThrustSample] = deque(maxlen=capacity)
        self._log: List[Reading] = []
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def record(self, reading: Reading) -> None:
        """Append a reading to the session log and, if it has thrust, the window."""
        with self._lock:
            self._log.append(reading)
            if reading.thrust is not None:
                self._window.append(ThrustSample(reading.timestamp, reading.thrust))

    def snapshot(self) -> Tuple[ThrustSample, ...]:
        """Independent copy of the window, oldest first."""
        with self._lock:
            return tuple(self._window)

    def chart_series(self) -> Tuple[Tuple[str, ...], Tuple[float, ...]]:
        """Window as (time labels, thrust values) for the chart sink."""
        samples = self.snapshot()
        labels = tuple(format_time(s.timestamp) for s in samples)
        values = tuple(s.thrust for s in samples)
        return labels, values

    def records(self) -> Tuple[Reading, ...]:
        """Copy of the session log in append order."""
        with self._lock:
            return tuple(self._log)

    def reset(self) -> None:
        """Clear both the window and the session log."""
        with self._lock:
            self._window.clear()
            self._log.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._log)

    # --- Export ---

    def export_records(self) -> str:
        """Serialize the session log as CSV text.

        Returns:
            Header row followed by one row per reading. Thrust has two
            decimals, temperature and humidity one; unknown fields are empty.
        """
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for reading in self.records():
            writer.writerow(_csv_row(reading))
        return buf.getvalue()

    def export_bytes(self) -> bytes:
        """CSV export encoded as UTF-8, ready for the save collaborator."""
        return self.export_records().encode("utf-8")

    def save_csv(
        self,
        directory: Union[str, Path] = ".",
        prefix: str = DEFAULT_EXPORT_PREFIX,
        now: Optional[datetime] = None,
    ) -> Path:
        """Write the export to a timestamped CSV file.

        Args:
            directory: Destination directory (created if missing)
            prefix: File name prefix
            now: Timestamp used in the file name, rendered in UTC
                (default: current time)

        Returns:
            Path of the written file

        Raises:
            ValueError: If no data has been recorded this session
        """
        if not len(self):
            raise ValueError("No data collected yet")

        moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
        stamp = moment.strftime("%Y-%m-%dT%H-%M-%S-") + f"{moment.microsecond // 1000:03d}Z"
        out_dir = Path(directory)
        out_dir.mkdir(parents=True, exist_ok=True)
        path = out_dir / f"{prefix}_Test_Data_{stamp}.csv"

        path.write_bytes(self.export_bytes())
        logger.info(f"Saved {len(self)} readings to {path}")
        return path


def _csv_row(reading: Reading) -> Tuple[str, str, str, str]:
    return (
        format_time(reading.timestamp),
        _fmt(reading.thrust, 2),
        _fmt(reading.temperature, 1),
        _fmt(reading.humidity, 1),
    )


def _fmt(value: Optional[float], places: int) -> str:
    if value is None:
        return ""
    return f"{value:.{places}f}"
