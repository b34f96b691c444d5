"""Byte sinks and sources.

The encoder writes to a ``Sink`` and the decoder reads from a ``Source``.
These are the only places the codec touches I/O; everything above them works
on whole bytes and big-endian integers.

Failures are always reported as tagpack exceptions:

- ``SinkFailure`` when a write fails
- ``SourceExhausted`` when the source ends before a declared length is satisfied
- ``SourceFailure`` for any other read failure
"""

from __future__ import annotations

from typing import BinaryIO, Protocol, Union, runtime_checkable

from ..exceptions import SinkFailure, SourceExhausted, SourceFailure

BytesLike = Union[bytes, bytearray, memoryview]


@runtime_checkable
class Sink(Protocol):
    """Destination of encoded bytes."""

    def write_byte(self, byte: int) -> None: ...

    def write(self, data: BytesLike) -> None: ...


@runtime_checkable
class Source(Protocol):
    """Origin of encoded bytes."""

    def read_byte(self) -> int: ...

    def read_into(self, buffer: memoryview) -> None: ...

    def remaining(self) -> int | None: ...


class BufferSink:
    """Sink that accumulates bytes in memory.

    Example:
        >>> sink = BufferSink()
        >>> sink.write_byte(0xC0)
        >>> sink.getvalue()
        b'\\xc0'
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    def write_byte(self, byte: int) -> None:
        self._buffer.append(byte)

    def write(self, data: BytesLike) -> None:
        self._buffer += data

    def getvalue(self) -> bytes:
        """Return everything written so far."""
        return bytes(self._buffer)

    def clear(self) -> None:
        self._buffer.clear()

    def __len__(self) -> int:
        return len(self._buffer)


class CountingSink:
    """Sink that only counts the bytes written to it."""

    def __init__(self) -> None:
        self.count = 0

    def write_byte(self, byte: int) -> None:
        self.count += 1

    def write(self, data: BytesLike) -> None:
        self.count += len(data)


class StreamSink:
    """Sink writing to a binary file-like object.

    Args:
        stream: Object with a ``write(bytes)`` method (file, socket file, BytesIO)
    """

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream

    def write_byte(self, byte: int) -> None:
        self.write(bytes((byte,)))

    def write(self, data: BytesLike) -> None:
        try:
            written = self._stream.write(data)
        except (OSError, ValueError) as e:
            raise SinkFailure(f"Write to stream failed: {e}") from e
        # Raw (unbuffered) streams may write less than asked
        if written is not None and written != len(data):
            raise SinkFailure(f"Short write: {written} of {len(data)} bytes")


class BytesSource:
    """Source reading from an in-memory buffer.

    Args:
        data: Encoded bytes
    """

    def __init__(self, data: BytesLike) -> None:
        view = memoryview(data)
        if view.format != "B" or view.ndim != 1:
            view = view.cast("B")
        self._data = view
        self._position = 0

    @property
    def position(self) -> int:
        """Number of bytes consumed so far."""
        return self._position

    def remaining(self) -> int:
        return len(self._data) - self._position

    def read_byte(self) -> int:
        if self._position >= len(self._data):
            raise SourceExhausted(1, 0)
        byte = self._data[self._position]
        self._position += 1
        return byte

    def read_into(self, buffer: memoryview) -> None:
        size = len(buffer)
        available = self.remaining()
        if size > available:
            raise SourceExhausted(size, available)
        buffer[:] = self._data[self._position : self._position + size]
        self._position += size


class StreamSource:
    """Source reading from a binary file-like object.

    Args:
        stream: Object with ``readinto`` or ``read`` (file, socket file, BytesIO)
    """

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream

    def remaining(self) -> None:
        return None

    def read_byte(self) -> int:
        buffer = bytearray(1)
        self.read_into(memoryview(buffer))
        return buffer[0]

    def read_into(self, buffer: memoryview) -> None:
        size = len(buffer)
        filled = 0
        while filled < size:
            try:
                count = self._readinto(buffer[filled:])
            except (OSError, ValueError) as e:
                raise SourceFailure(f"Read from stream failed: {e}") from e
            if not count:
                raise SourceExhausted(size, filled)
            filled += count

    def _readinto(self, view: memoryview) -> int:
        readinto = getattr(self._stream, "readinto", None)
        if readinto is not None:
            return readinto(view) or 0
        chunk = self._stream.read(len(view))
        view[: len(chunk)] = chunk
        return len(chunk)


def as_sink(target: Sink | BinaryIO | None) -> Sink:
    """Wrap a stream in a Sink (a fresh BufferSink when target is None)."""
    if target is None:
        return BufferSink()
    if isinstance(target, Sink):
        return target
    if hasattr(target, "write"):
        return StreamSink(target)
    raise TypeError(f"Cannot write to {type(target).__name__}")


def as_source(origin: Source | BytesLike | BinaryIO) -> Source:
    """Wrap bytes or a stream in a Source."""
    if isinstance(origin, (bytes, bytearray, memoryview)):
        return BytesSource(origin)
    if isinstance(origin, Source):
        return origin
    if hasattr(origin, "readinto") or hasattr(origin, "read"):
        return StreamSource(origin)
    raise TypeError(f"Cannot read from {type(origin).__name__}")
