"""Growable byte arena holding the unconsumed tail of the dump stream."""

from __future__ import annotations

import logging
from typing import BinaryIO, Optional

from .errors import EndOfStream, ReplayIOError

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1024 * 1024
NEWLINE = b"\n"


class StreamBuffer:
    """Arena with three cursors over a single ``bytearray``.

    ``[consumed_start, filled_end)`` holds bytes read from the source but not
    yet handed off. ``scan_cursor`` records how far newline scanning has
    progressed inside that region, so a statement spanning many reads is
    scanned once. ``origin`` is the absolute stream offset of index 0.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY, origin: int = 0) -> None:
        if capacity < 2:
            raise ValueError("buffer capacity must be at least 2 bytes")
        self._data = bytearray(capacity)
        self.consumed_start = 0
        self.scan_cursor = 0
        self.filled_end = 0
        self.origin = origin
        self.growth_events = 0

    @property
    def capacity(self) -> int:
        return len(self._data)

    @property
    def arena(self) -> bytearray:
        """The backing arena; only valid until the next reclaim()."""
        return self._data

    @property
    def unconsumed(self) -> int:
        return self.filled_end - self.consumed_start

    def fill(self, source: BinaryIO) -> int:
        """Read more bytes from ``source`` into the free tail of the arena."""
        if self.filled_end >= self.capacity:
            raise BufferError("no free capacity; reclaim() before filling")
        view = memoryview(self._data)[self.filled_end :]
        try:
            count = source.readinto(view)
        except OSError as exc:
            raise ReplayIOError(f"unable to read dump: {exc}") from exc
        finally:
            view.release()
        if count is None:
            raise ReplayIOError("dump source is non-blocking and had no data ready")
        if count == 0:
            raise EndOfStream()
        self.filled_end += count
        return count

    def next_boundary(self) -> Optional[int]:
        """Return the index of the next newline, or None if none is buffered."""
        index = self._data.find(NEWLINE, self.scan_cursor, self.filled_end)
        if index < 0:
            self.scan_cursor = self.filled_end
            return None
        self.scan_cursor = index + 1
        return index

    def candidate(self, boundary: int) -> bytes:
        """Bytes from the consumed cursor up to (not including) ``boundary``."""
        return bytes(self._data[self.consumed_start : boundary])

    def position_after(self, boundary: int) -> int:
        """Absolute stream offset just past the byte at ``boundary``."""
        return self.origin + boundary + 1

    def advance_consumed(self, new_start: int) -> None:
        if not self.consumed_start <= new_start <= self.scan_cursor:
            raise ValueError(
                f"cannot consume to {new_start}: outside "
                f"[{self.consumed_start}, {self.scan_cursor}]"
            )
        self.consumed_start = new_start

    def reclaim(self) -> None:
        """Drop consumed bytes, doubling the arena if the residue is too large."""
        start = self.consumed_start
        residue = self.filled_end - start
        target = self._data
        if residue > len(self._data) // 2:
            target = bytearray(len(self._data) * 2)
            self.growth_events += 1
            logger.debug("growing stream buffer to %d bytes", len(target))
        if start or target is not self._data:
            target[:residue] = self._data[start : self.filled_end]
        self._data = target
        self.origin += start
        self.scan_cursor -= start
        self.consumed_start = 0
        self.filled_end = residue

    def check_invariants(self) -> None:
        if not (
            0
            <= self.consumed_start
            <= self.scan_cursor
            <= self.filled_end
            <= self.capacity
        ):
            raise AssertionError(
                "stream buffer cursors out of order: "
                f"consumed={self.consumed_start} scan={self.scan_cursor} "
                f"filled={self.filled_end} capacity={self.capacity}"
            )


__all__ = ["DEFAULT_CAPACITY", "StreamBuffer"]
