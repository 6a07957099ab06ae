import io

import pytest

from sql_replay.buffer import StreamBuffer
from sql_replay.errors import EndOfStream, ReplayIOError


class _ChunkedSource(io.RawIOBase):
    """Returns at most ``chunk`` bytes per read to exercise partial fills."""

    def __init__(self, data: bytes, chunk: int):
        self._data = data
        self._offset = 0
        self._chunk = chunk

    def readable(self):
        return True

    def readinto(self, target):
        piece = self._data[self._offset : self._offset + min(self._chunk, len(target))]
        target[: len(piece)] = piece
        self._offset += len(piece)
        return len(piece)


@pytest.mark.unit
def test_fill_then_scan_boundaries():
    buffer = StreamBuffer(capacity=64)
    buffer.fill(io.BytesIO(b"a;\nbb;\n"))

    first = buffer.next_boundary()
    assert first == 2
    assert buffer.candidate(first) == b"a;"
    assert buffer.position_after(first) == 3
    buffer.advance_consumed(first + 1)

    second = buffer.next_boundary()
    assert buffer.candidate(second) == b"bb;"
    assert buffer.next_boundary() is None
    buffer.check_invariants()


@pytest.mark.unit
def test_fill_signals_end_of_stream():
    buffer = StreamBuffer(capacity=8)
    with pytest.raises(EndOfStream):
        buffer.fill(io.BytesIO(b""))


@pytest.mark.unit
def test_fill_requires_free_capacity():
    buffer = StreamBuffer(capacity=4)
    buffer.fill(io.BytesIO(b"abcd"))
    with pytest.raises(BufferError):
        buffer.fill(io.BytesIO(b"e"))


@pytest.mark.unit
def test_read_failure_is_io_error():
    class _Broken(io.RawIOBase):
        def readinto(self, _target):
            raise OSError("bad sector")

    with pytest.raises(ReplayIOError):
        StreamBuffer(capacity=8).fill(_Broken())


@pytest.mark.unit
def test_scan_cursor_is_not_rewound_across_fills():
    buffer = StreamBuffer(capacity=16)
    source = _ChunkedSource(b"abcdef\n", chunk=3)

    buffer.fill(source)
    assert buffer.next_boundary() is None
    assert buffer.scan_cursor == 3

    buffer.fill(source)
    assert buffer.next_boundary() is None
    assert buffer.scan_cursor == 6

    buffer.fill(source)
    assert buffer.next_boundary() == 6


@pytest.mark.unit
def test_reclaim_compacts_small_residue_in_place():
    buffer = StreamBuffer(capacity=16, origin=100)
    buffer.fill(io.BytesIO(b"one;\ntwo"))
    boundary = buffer.next_boundary()
    buffer.advance_consumed(boundary + 1)
    buffer.next_boundary()

    buffer.reclaim()

    assert buffer.capacity == 16
    assert buffer.growth_events == 0
    assert (buffer.consumed_start, buffer.scan_cursor, buffer.filled_end) == (0, 3, 3)
    assert buffer.origin == 105
    assert buffer.candidate(3) == b"two"
    buffer.check_invariants()


@pytest.mark.unit
def test_reclaim_doubles_when_residue_exceeds_half():
    buffer = StreamBuffer(capacity=8)
    buffer.fill(io.BytesIO(b"abcdefgh"))
    assert buffer.next_boundary() is None

    buffer.reclaim()

    assert buffer.capacity == 16
    assert buffer.growth_events == 1
    assert buffer.candidate(buffer.filled_end) == b"abcdefgh"
    assert buffer.scan_cursor == 8
    buffer.check_invariants()


@pytest.mark.unit
def test_advance_consumed_rejects_out_of_range():
    buffer = StreamBuffer(capacity=8)
    buffer.fill(io.BytesIO(b"ab\ncd"))
    buffer.next_boundary()

    with pytest.raises(ValueError):
        buffer.advance_consumed(4)


@pytest.mark.unit
def test_capacity_too_small():
    with pytest.raises(ValueError):
        StreamBuffer(capacity=1)


@pytest.mark.unit
def test_non_blocking_source_without_data_is_not_end_of_stream():
    class _WouldBlock(io.RawIOBase):
        def readable(self):
            return True

        def readinto(self, _target):
            return None

    with pytest.raises(ReplayIOError):
        StreamBuffer(capacity=8).fill(_WouldBlock())
