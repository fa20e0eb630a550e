"""Line framer for the telemetry byte stream.

Reassembles newline-terminated lines from arbitrarily chunked serial reads.
Framing is format-agnostic: whitespace-only lines are emitted and left for the
decoder to reject.
"""
from __future__ import annotations

import codecs
import logging
from typing import Iterable, Iterator, List, Tuple, Union

from ..errors import UnboundedLine

logger = logging.getLogger(__name__)

MAX_PENDING_LINE = 64 * 1024  # characters

Chunk = Union[bytes, bytearray, str]


class StreamFramer:
    """Splits a chunk stream into complete lines.

    Keeps exactly one pending buffer: the text after the last newline seen.
    Not thread-safe; a single reader owns each instance.

    Example:
        >>> framer = StreamFramer()
        >>> framer.feed(b"Thrust:1.5,Te")
        []
        >>> framer.feed(b"mp:20.0\\r\\nThr")
        ['Thrust:1.5,Temp:20.0']
        >>> framer.pending
        'Thr'
    """

    def __init__(self, max_pending: int = MAX_PENDING_LINE, encoding: str = "utf-8"):
        """Initialize framer.

        Args:
            max_pending: Longest partial line tolerated before UnboundedLine
            encoding: Text encoding used for byte chunks
        """
        self._max_pending = max_pending
        self._encoding = encoding
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""

    @property
    def pending(self) -> str:
        """Partial line waiting for its terminator."""
        return self._pending

    def feed(self, chunk: Chunk) -> List[str]:
        """Consume one chunk and return the lines it completed.

        Raises:
            UnboundedLine: If the pending buffer exceeds max_pending. The
                buffer is discarded and completed lines ride on the exception.
        """
        lines, overflow = self._push(chunk)
        if overflow:
            raise UnboundedLine(overflow, lines)
        return lines

    def frames(self, chunks: Iterable[Chunk]) -> Iterator[str]:
        """Lazily frame an iterable of chunks into lines.

        Lines completed by an overflowing chunk are yielded before
        UnboundedLine is raised.
        """
        for chunk in chunks:
            lines, overflow = self._push(chunk)
            yield from lines
            if overflow:
                raise UnboundedLine(overflow)

    def reset(self) -> None:
        """Drop the pending partial line and any buffered partial characters."""
        self._pending = ""
        self._decoder.reset()

    def _push(self, chunk: Chunk) -> Tuple[List[str], int]:
        if isinstance(chunk, str):
            text = chunk
        else:
            text = self._decoder.decode(bytes(chunk))

        if not text:
            return [], 0

        segments = (self._pending + text).split("\n")
        self._pending = segments.pop()
        lines = [s[:-1] if s.endswith("\r") else s for s in segments]

        size = len(self._pending)
        if size > self._max_pending:
            logger.warning(f"Discarding {size} characters without a line terminator")
            self.reset()
            return lines, size

        return lines, 0
