"""Tests for sinks, sources and the scratch region."""

from __future__ import annotations

import io

import pytest

from tagpack import (
    AllocationFailure,
    BufferSink,
    BytesSource,
    CountingSink,
    HeapAllocator,
    ScratchRegion,
    SinkFailure,
    SourceExhausted,
    SourceFailure,
    StreamSink,
    StreamSource,
)
from tagpack.codec.io import as_sink, as_source


class FailingStream(io.RawIOBase):
    """Stream whose reads and writes always fail."""

    def readable(self) -> bool:
        return True

    def writable(self) -> bool:
        return True

    def readinto(self, buffer: memoryview) -> int:
        raise OSError("device unplugged")

    def write(self, data: bytes) -> int:
        raise OSError("disk full")


class TrickleStream(io.RawIOBase):
    """Stream that returns at most one byte per read."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: memoryview) -> int:
        if self._pos >= len(self._data) or len(buffer) == 0:
            return 0
        buffer[0] = self._data[self._pos]
        self._pos += 1
        return 1


class TestSinks:
    """Test byte sinks."""

    def test_buffer_sink(self) -> None:
        """Test BufferSink accumulates bytes in order."""
        sink = BufferSink()
        sink.write_byte(0xC0)
        sink.write(b"\x01\x02")
        assert sink.getvalue() == b"\xc0\x01\x02"
        assert len(sink) == 3

        sink.clear()
        assert sink.getvalue() == b""

    def test_counting_sink(self) -> None:
        """Test CountingSink counts without storing."""
        sink = CountingSink()
        sink.write_byte(1)
        sink.write(b"abcd")
        assert sink.count == 5

    def test_stream_sink(self) -> None:
        """Test StreamSink writes through to the stream."""
        stream = io.BytesIO()
        sink = StreamSink(stream)
        sink.write_byte(0x93)
        sink.write(b"\x01\x02\x03")
        assert stream.getvalue() == b"\x93\x01\x02\x03"

    def test_stream_sink_failure(self) -> None:
        """Test write errors surface as SinkFailure."""
        sink = StreamSink(FailingStream())
        with pytest.raises(SinkFailure, match="disk full"):
            sink.write(b"abc")

    def test_closed_stream_sink(self) -> None:
        """Test writing to a closed stream raises SinkFailure."""
        stream = io.BytesIO()
        stream.close()
        with pytest.raises(SinkFailure):
            StreamSink(stream).write_byte(0)

    def test_as_sink(self) -> None:
        """Test sink coercion."""
        assert isinstance(as_sink(None), BufferSink)
        assert isinstance(as_sink(io.BytesIO()), StreamSink)
        sink = CountingSink()
        assert as_sink(sink) is sink
        with pytest.raises(TypeError):
            as_sink(42)  # type: ignore[arg-type]


class TestSources:
    """Test byte sources."""

    def test_bytes_source(self) -> None:
        """Test BytesSource reads bytes in order and tracks position."""
        source = BytesSource(b"\x01\x02\x03\x04")
        assert source.read_byte() == 1
        buffer = bytearray(2)
        source.read_into(memoryview(buffer))
        assert buffer == b"\x02\x03"
        assert source.position == 3
        assert source.remaining() == 1

    def test_bytes_source_exhausted(self) -> None:
        """Test reading past the end raises SourceExhausted."""
        source = BytesSource(b"\x01")
        source.read_byte()
        with pytest.raises(SourceExhausted):
            source.read_byte()

    def test_bytes_source_short_read(self) -> None:
        """Test SourceExhausted reports needed and available counts."""
        source = BytesSource(b"ab")
        with pytest.raises(SourceExhausted) as exc_info:
            source.read_into(memoryview(bytearray(5)))
        assert exc_info.value.needed == 5
        assert exc_info.value.available == 2
        # Nothing consumed on failure
        assert source.position == 0

    def test_stream_source(self) -> None:
        """Test StreamSource reads from a file-like object."""
        source = StreamSource(io.BytesIO(b"\xa2hi"))
        assert source.remaining() is None
        assert source.read_byte() == 0xA2
        buffer = bytearray(2)
        source.read_into(memoryview(buffer))
        assert buffer == b"hi"

    def test_stream_source_partial_reads(self) -> None:
        """Test StreamSource keeps reading until the buffer is full."""
        source = StreamSource(TrickleStream(b"abcdef"))
        buffer = bytearray(6)
        source.read_into(memoryview(buffer))
        assert buffer == b"abcdef"

    def test_stream_source_exhausted(self) -> None:
        """Test a stream ending early raises SourceExhausted."""
        source = StreamSource(io.BytesIO(b"abc"))
        with pytest.raises(SourceExhausted) as exc_info:
            source.read_into(memoryview(bytearray(5)))
        assert exc_info.value.available == 3

    def test_stream_source_failure(self) -> None:
        """Test read errors surface as SourceFailure."""
        source = StreamSource(FailingStream())
        with pytest.raises(SourceFailure, match="device unplugged"):
            source.read_byte()

    def test_as_source(self) -> None:
        """Test source coercion."""
        assert isinstance(as_source(b"abc"), BytesSource)
        assert isinstance(as_source(bytearray(b"abc")), BytesSource)
        assert isinstance(as_source(io.BytesIO(b"abc")), StreamSource)
        with pytest.raises(TypeError):
            as_source(3.14)  # type: ignore[arg-type]


class TestScratchRegion:
    """Test the decoder's scratch region."""

    def test_allocate_and_write(self) -> None:
        """Test allocated views are writable and independent."""
        region = ScratchRegion(HeapAllocator(), chunk_size=16)
        first = region.allocate(3)
        second = region.allocate(4)
        first[:] = b"abc"
        second[:] = b"defg"
        assert bytes(first) == b"abc"
        assert bytes(second) == b"defg"
        assert region.used == 7
        region.release()

    def test_views_survive_growth(self) -> None:
        """Test earlier views stay valid when a new chunk is added."""
        region = ScratchRegion(HeapAllocator(), chunk_size=4)
        first = region.allocate(4)
        first[:] = b"1234"
        big = region.allocate(100)
        big[:] = b"x" * 100
        assert bytes(first) == b"1234"
        assert region.reserved >= 104
        region.release()

    def test_freeze_is_readonly(self) -> None:
        """Test frozen views reject writes."""
        region = ScratchRegion(HeapAllocator())
        view = region.allocate(2)
        view[:] = b"ok"
        frozen = region.freeze(view)
        assert frozen.readonly
        with pytest.raises(TypeError):
            frozen[0] = 0
        region.release()

    def test_release_invalidates_views(self) -> None:
        """Test views cannot be used after release."""
        region = ScratchRegion(HeapAllocator())
        view = region.freeze(region.allocate(5))
        region.release()
        with pytest.raises(ValueError):
            bytes(view)
        assert region.used == 0
        assert region.reserved == 0

    def test_release_returns_memory(self) -> None:
        """Test the allocator gets back everything the region took."""
        allocator = HeapAllocator()
        region = ScratchRegion(allocator, chunk_size=8)
        region.allocate(5)
        region.allocate(20)
        assert allocator.outstanding > 0
        region.release()
        assert allocator.outstanding == 0

    def test_zero_size(self) -> None:
        """Test zero-length allocations need no chunk."""
        allocator = HeapAllocator()
        region = ScratchRegion(allocator)
        assert len(region.allocate(0)) == 0
        assert allocator.outstanding == 0
        region.release()

    def test_zero_size_is_writable(self) -> None:
        """Test a zero-length view accepts an empty read like any other."""
        region = ScratchRegion(HeapAllocator())
        view = region.allocate(0)
        assert not view.readonly
        view[:] = b""
        assert region.freeze(view).readonly
        region.release()

    def test_allocation_limit(self) -> None:
        """Test HeapAllocator refuses to exceed its limit."""
        region = ScratchRegion(HeapAllocator(limit=64), chunk_size=16)
        region.allocate(10)
        with pytest.raises(AllocationFailure, match="Scratch limit exceeded"):
            region.allocate(100)
        region.release()

    def test_chunks_capped_at_headroom(self) -> None:
        """Test chunk growth stops at the allocator limit."""
        allocator = HeapAllocator(limit=100)
        region = ScratchRegion(allocator, chunk_size=64)
        region.allocate(60)
        region.allocate(40)
        assert region.reserved == 100
        assert allocator.headroom() == 0
        with pytest.raises(AllocationFailure):
            region.allocate(1)
        region.release()
        assert allocator.headroom() == 100

    def test_headroom_unbounded(self) -> None:
        """Test an allocator without a limit reports no headroom bound."""
        assert HeapAllocator().headroom() is None
