"""Command dispatcher for the launch pad.

Maps logical commands to protocol bytes and serializes writes so bytes of
two commands never interleave on the link.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from .errors import NotConnected, TransportError
from .link.base import Link
from .models import Command, LinkState
from .protocol.commands import encode_command, DEFAULT_TERMINATOR
from .status import LAUNCH_NOTICE, format_command_sent

logger = logging.getLogger(__name__)

DEFAULT_MIN_SEND_INTERVAL = 0.01  # 10ms between commands


class CommandDispatcher:
    """Single-writer command path to the vehicle.

    There is no acknowledgment from the vehicle: a successful send() means
    the local transport accepted the bytes.

    Example:
        >>> dispatcher = CommandDispatcher(link, state=lambda: LinkState.CONNECTED)
        >>> dispatcher.send(Command.ARM)
    """

    def __init__(self,
                 link: Link,
                 state: Callable[[], LinkState],
                 terminator: str = DEFAULT_TERMINATOR,
                 min_send_interval: float = DEFAULT_MIN_SEND_INTERVAL,
                 notify: Optional[Callable[[str], None]] = None,
                 on_transport_error: Optional[Callable[[TransportError], None]] = None):
        """Initialize dispatcher.

        Args:
            link: Outbound channel
            state: Returns the current LinkState of the owning connection
            terminator: Text written after each command byte ("" for none)
            min_send_interval: Minimum seconds between consecutive writes
            notify: Status sink for sent-command and launch notices
            on_transport_error: Called when a write fails, before re-raising
        """
        self._link = link
        self._state = state
        self._terminator = terminator
        self._min_send_interval = min_send_interval
        self._notify = notify
        self._on_transport_error = on_transport_error

        self._write_lock = threading.Lock()
        self._last_send_time = 0.0
        self._sent = 0

    @property
    def sent_count(self) -> int:
        return self._sent

    def send(self, command: Command) -> None:
        """Write one command to the link.

        Raises:
            NotConnected: If the link is not CONNECTED; nothing is written
            TransportError: If the write fails
        """
        data = encode_command(command, self._terminator)
        failure: Optional[TransportError] = None

        with self._write_lock:
            state = self._state()
            if state != LinkState.CONNECTED:
                logger.warning(f"Cannot send {command.name}, link is {state.value}")
                raise NotConnected(f"Cannot send {command.name}: link is {state.value}")

            # Rate limiting
            elapsed = time.monotonic() - self._last_send_time
            if elapsed < self._min_send_interval:
                time.sleep(self._min_send_interval - elapsed)

            try:
                self._link.write(data)
            except TransportError as e:
                logger.error(f"Failed to send {command.name}: {e}")
                failure = e
            else:
                self._sent += 1
            finally:
                self._last_send_time = time.monotonic()

        # The hook closes the link, so it runs outside the write lock
        if failure is not None:
            if self._on_transport_error is not None:
                self._on_transport_error(failure)
            raise failure

        logger.info(f"Sent {command.name} ({command.code!r})")
        self._emit(format_command_sent(command))

        if command == Command.LAUNCH:
            logger.warning("Launch command sent")
            self._emit(LAUNCH_NOTICE)

    def _emit(self, message: str) -> None:
        if self._notify is None:
            return
        try:
            self._notify(message)
        except Exception as e:
            logger.error(f"Error in status callback: {e}")
