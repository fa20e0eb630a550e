"""Connection manager for the ground station.

Owns the link lifecycle and all session-scoped state:

- LinkState machine (DISCONNECTED -> CONNECTING -> CONNECTED, or via ERRORED)
- The reader thread feeding StreamFramer -> TelemetryDecoder -> HistoryStore
- The CommandDispatcher bound to the same link
- Subscriber fan-out for state, status text and chart updates

There are no module-level singletons; each manager is one terminal session.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Iterator, List, Optional, Tuple

from .dispatcher import CommandDispatcher, DEFAULT_MIN_SEND_INTERVAL
from .errors import NotConnected, TransportError, TransportUnavailable
from .history import HistoryStore
from .link.base import Link
from .link.serial import SerialLink
from .models import Command, LinkState, ThrustSample
from .protocol.commands import DEFAULT_TERMINATOR
from .protocol.decoder import TelemetryDecoder
from .protocol.framer import StreamFramer, MAX_PENDING_LINE
from .status import (
    STATUS_CONNECTING,
    STATUS_DISCONNECTED,
    STATUS_NOT_CONNECTED,
    format_error,
    format_reading,
    format_silence,
    format_state,
)

logger = logging.getLogger(__name__)

READER_JOIN_TIMEOUT = 1.0  # seconds


class ConnectionManager:
    """One ground station session over a Link.

    Example:
        >>> manager = ConnectionManager(port="/dev/ttyACM0")
        >>> manager.subscribe_status(print)
        >>> manager.connect()
        >>> manager.send(Command.ARM)
        >>> manager.disconnect()
        >>> csv_text = manager.history.export_records()
    """

    def __init__(self,
                 link: Optional[Link] = None,
                 port: Optional[str] = None,
                 history: Optional[HistoryStore] = None,
                 decoder: Optional[TelemetryDecoder] = None,
                 max_pending: int = MAX_PENDING_LINE,
                 inactivity_timeout: Optional[float] = None,
                 terminator: str = DEFAULT_TERMINATOR,
                 min_send_interval: float = DEFAULT_MIN_SEND_INTERVAL):
        """Initialize manager.

        Args:
            link: Existing Link, or None to create a SerialLink
            port: Serial port for a new SerialLink (if link is None)
            history: History store (default: new HistoryStore)
            decoder: Telemetry decoder (default: new TelemetryDecoder)
            max_pending: Longest partial line before the session is aborted
            inactivity_timeout: Seconds of silence before a status warning,
                or None to disable the watchdog
            terminator: Text written after each command byte
            min_send_interval: Minimum seconds between command writes
        """
        self._link = link or SerialLink(port=port)
        self._history = history or HistoryStore()
        self._decoder = decoder or TelemetryDecoder()
        self._max_pending = max_pending
        self._framer = StreamFramer(max_pending=max_pending)
        self._inactivity_timeout = inactivity_timeout

        self._state = LinkState.DISCONNECTED
        self._state_lock = threading.RLock()
        self._state_changed = threading.Condition(self._state_lock)
        self._last_error: Optional[Exception] = None

        # Reader
        # Each session gets its own stop event; set means no session is reading
        self._stop = threading.Event()
        self._stop.set()
        self._reader_thread: Optional[threading.Thread] = None
        self._line_count = 0
        self._last_rx = 0.0
        self._silence_reported = False

        # Callbacks
        self._state_callbacks: List[Callable[[LinkState], None]] = []
        self._status_callbacks: List[Callable[[str], None]] = []
        self._chart_callbacks: List[Callable[[Tuple[str, ...], Tuple[float, ...]], None]] = []
        self._callback_lock = threading.Lock()

        self._dispatcher = CommandDispatcher(
            self._link,
            state=lambda: self.state,
            terminator=terminator,
            min_send_interval=min_send_interval,
            notify=self._emit_status,
            on_transport_error=self._fail,
        )

    # --- Properties ---

    @property
    def state(self) -> LinkState:
        with self._state_lock:
            return self._state

    @property
    def last_error(self) -> Optional[Exception]:
        """Cause of the most recent failed connect or terminated session."""
        return self._last_error

    @property
    def history(self) -> HistoryStore:
        return self._history

    @property
    def dispatcher(self) -> CommandDispatcher:
        return self._dispatcher

    @property
    def link(self) -> Link:
        return self._link

    @property
    def line_count(self) -> int:
        """Lines framed this session."""
        return self._line_count

    @property
    def malformed_count(self) -> int:
        """Lines discarded by the decoder this session."""
        return self._decoder.rejected_count

    def is_connected(self) -> bool:
        return self.state == LinkState.CONNECTED

    # --- Lifecycle ---

    def connect(self) -> None:
        """Open the link and start the reader thread.

        Starts a fresh session: history and framing state are reset.

        Raises:
            TransportUnavailable: If the link cannot be opened. The manager
                passes through ERRORED and ends DISCONNECTED.
        """
        with self._state_lock:
            if self._state != LinkState.DISCONNECTED:
                logger.warning(f"Connect ignored, link is {self._state.value}")
                return
            self._last_error = None
            self._set_state(LinkState.CONNECTING)
        self._emit_status(STATUS_CONNECTING)

        # A session ended by a failed write leaves its reader to exit on its own
        self._join_reader()

        try:
            self._link.open()
        except TransportUnavailable as e:
            logger.error(f"Connect failed: {e}")
            self._fail(e)
            raise

        with self._state_lock:
            if self._state != LinkState.CONNECTING:
                # disconnect() won the race
                self._link.close()
                return
            self._history.reset()
            self._framer = StreamFramer(max_pending=self._max_pending)
            self._decoder.reset()
            self._line_count = 0
            self._last_rx = time.monotonic()
            self._silence_reported = False
            self._stop = threading.Event()
            self._set_state(LinkState.CONNECTED)
            self._start_reader_thread(self._framer, self._stop)

        logger.info(f"Connected via {self._link.description}")
        self._emit_status(format_state(LinkState.CONNECTED, self._link.description))

    def disconnect(self) -> None:
        """Close the link and stop reading.

        Safe to call from any state and more than once. The session log is
        kept until the next connect().
        """
        with self._state_lock:
            self._stop.set()

        self._link.close()
        self._join_reader()

        with self._state_lock:
            if self._state == LinkState.DISCONNECTED:
                return
            self._set_state(LinkState.DISCONNECTED)

        logger.info("Disconnected")
        self._emit_status(STATUS_DISCONNECTED)

    def wait_for_state(self, state: LinkState, timeout: Optional[float] = None) -> bool:
        """Block until the manager reaches state.

        Returns:
            True if the state was reached, False on timeout
        """
        with self._state_changed:
            return self._state_changed.wait_for(lambda: self._state == state, timeout)

    # --- Commands ---

    def send(self, command: Command) -> None:
        """Send a command through the dispatcher.

        Raises:
            NotConnected: If the link is not CONNECTED
            TransportError: If the write fails (the session is terminated)
        """
        try:
            self._dispatcher.send(command)
        except NotConnected:
            self._emit_status(STATUS_NOT_CONNECTED)
            raise

    # --- History shortcuts ---

    def snapshot(self) -> Tuple[ThrustSample, ...]:
        return self._history.snapshot()

    def export_records(self) -> str:
        return self._history.export_records()

    # --- Subscriptions ---

    def subscribe_state(self, callback: Callable[[LinkState], None]) -> Callable[[], None]:
        """Subscribe to LinkState transitions.

        Returns:
            Unsubscribe function
        """
        return self._subscribe(self._state_callbacks, callback)

    def subscribe_status(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """Subscribe to human-readable status lines."""
        return self._subscribe(self._status_callbacks, callback)

    def subscribe_chart(self, callback: Callable[[Tuple[str, ...], Tuple[float, ...]], None]) -> Callable[[], None]:
        """Subscribe to (labels, values) chart updates.

        Invoked on the reader thread after each thrust-bearing reading.
        """
        return self._subscribe(self._chart_callbacks, callback)

    def _subscribe(self, callbacks: list, callback: Callable) -> Callable[[], None]:
        with self._callback_lock:
            callbacks.append(callback)

        def unsubscribe():
            with self._callback_lock:
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    # --- Internal methods ---

    def _set_state(self, state: LinkState) -> None:
        with self._state_lock:
            if self._state == state:
                return
            logger.debug(f"Link state {self._state.value} -> {state.value}")
            self._state = state
            self._state_changed.notify_all()
        self._notify(self._state_callbacks, state)

    def _fail(self, error: Exception, stop: Optional[threading.Event] = None) -> None:
        """Terminate the session: ERRORED, release the link, DISCONNECTED.

        Does not join the reader thread, so it is safe to call from it.

        Args:
            error: Cause reported to the caller
            stop: Stop event of the failing reader; ignored unless it
                belongs to the current session
        """
        with self._state_lock:
            if stop is not None and stop is not self._stop:
                return
            if self._state not in (LinkState.CONNECTING, LinkState.CONNECTED):
                return
            self._stop.set()
            self._last_error = error
            self._set_state(LinkState.ERRORED)

        self._emit_status(format_error(error))
        self._link.close()

        with self._state_lock:
            if self._state == LinkState.ERRORED:
                self._set_state(LinkState.DISCONNECTED)

    def _start_reader_thread(self, framer: StreamFramer, stop: threading.Event) -> None:
        self._reader_thread = threading.Thread(
            target=self._reader_loop,
            args=(framer, stop),
            daemon=True,
            name="TelemetryReader"
        )
        self._reader_thread.start()

    def _join_reader(self) -> None:
        """Wait for the previous session's reader thread to exit."""
        thread = self._reader_thread
        if thread is None or thread is threading.current_thread():
            return
        if thread.is_alive():
            thread.join(timeout=READER_JOIN_TIMEOUT)
            if thread.is_alive():
                logger.warning("Reader thread did not exit in time")
                return
        self._reader_thread = None

    def _reader_loop(self, framer: StreamFramer, stop: threading.Event) -> None:
        """Frame, decode and record telemetry until the session ends.

        The framer and stop event belong to one session; a reader left
        behind by an earlier session never touches the current one.
        """
        logger.debug("Reader thread started")

        try:
            for line in framer.frames(self._chunks(stop)):
                if stop.is_set():
                    break
                self._handle_line(line)
        except TransportError as e:
            if not stop.is_set():
                logger.error(f"Telemetry read failed: {e}")
                self._fail(e, stop)
        except Exception as e:
            if not stop.is_set():
                logger.exception("Reader error")
                self._fail(TransportError(f"Reader error: {e}"), stop)
        else:
            if not stop.is_set():
                logger.warning("Telemetry stream ended")
                self._fail(TransportError("Telemetry stream ended"), stop)

        logger.debug("Reader thread exiting")

    def _chunks(self, stop: threading.Event) -> Iterator[bytes]:
        """Pull chunks from the link until it closes or the session stops."""
        while not stop.is_set():
            chunk = self._link.read_chunk()
            if chunk is None or stop.is_set():
                return
            if not chunk:
                self._check_watchdog()
                continue
            self._last_rx = time.monotonic()
            self._silence_reported = False
            yield chunk

    def _handle_line(self, line: str) -> None:
        self._line_count += 1
        reading = self._decoder.decode(line)
        if reading is None:
            return

        self._history.record(reading)

        if reading.has_thrust:
            labels, values = self._history.chart_series()
            self._notify(self._chart_callbacks, labels, values)
        if reading.has_environment:
            self._emit_status(format_reading(reading))

    def _check_watchdog(self) -> None:
        if self._inactivity_timeout is None or self._silence_reported:
            return
        silent = time.monotonic() - self._last_rx
        if silent >= self._inactivity_timeout:
            self._silence_reported = True
            logger.warning(f"No telemetry for {silent:.1f}s")
            self._emit_status(format_silence(silent))

    def _emit_status(self, message: str) -> None:
        self._notify(self._status_callbacks, message)

    def _notify(self, callbacks: list, *args) -> None:
        with self._callback_lock:
            targets = list(callbacks)

        for callback in targets:
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"Error in subscriber callback: {e}")

    def __enter__(self) -> ConnectionManager:
        """Context manager support - connect on enter."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager support - disconnect on exit."""
        self.disconnect()
