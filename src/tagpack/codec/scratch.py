"""Scratch region for decoded payloads.

A decoder owns exactly one ``ScratchRegion``. Every string, binary and
extension payload it decodes is copied into the region and handed back as a
read-only ``memoryview``. Nothing is freed individually: ``release()`` drops the
whole region at once and invalidates every view it handed out, after which
touching one raises ``ValueError``. Copy a payload out (``bytes(view)``) to keep
it past the decoder's lifetime.
"""

from __future__ import annotations

from typing import Optional, Protocol

from structlog import get_logger

from ..exceptions import AllocationFailure

logger = get_logger()

_MAX_CHUNK = 1 << 20


class Allocator(Protocol):
    """Capability the scratch region draws memory from."""

    def allocate(self, size: int) -> bytearray: ...

    def free(self, size: int) -> None: ...

    def headroom(self) -> Optional[int]:
        """Bytes still available, or None when unbounded."""
        ...


class HeapAllocator:
    """Allocator backed by the Python heap with an optional byte limit.

    Args:
        limit: Maximum number of bytes outstanding at once, or None
    """

    def __init__(self, limit: Optional[int] = None) -> None:
        self.limit = limit
        self.outstanding = 0

    def allocate(self, size: int) -> bytearray:
        if self.limit is not None and self.outstanding + size > self.limit:
            raise AllocationFailure(
                f"Scratch limit exceeded: {self.outstanding} + {size} > {self.limit} bytes"
            )
        try:
            chunk = bytearray(size)
        except MemoryError as e:
            raise AllocationFailure(f"Out of memory allocating {size} bytes") from e
        self.outstanding += size
        return chunk

    def free(self, size: int) -> None:
        self.outstanding -= size

    def headroom(self) -> Optional[int]:
        if self.limit is None:
            return None
        return max(0, self.limit - self.outstanding)


class ScratchRegion:
    """Growable arena of byte chunks.

    Chunks never move or resize once allocated, so views into them stay valid
    until ``release()``.

    Example:
        >>> region = ScratchRegion(HeapAllocator())
        >>> view = region.allocate(3)
        >>> view[:] = b"abc"
        >>> bytes(view)
        b'abc'
        >>> region.release()
    """

    def __init__(self, allocator: Allocator, chunk_size: int = 4096) -> None:
        self._allocator = allocator
        self._chunks: list[bytearray] = []
        self._views: list[memoryview] = []
        self._next_chunk_size = chunk_size
        self._current: Optional[memoryview] = None
        self._offset = 0
        self.used = 0
        self.reserved = 0
        self.log = logger.new()

    def allocate(self, size: int) -> memoryview:
        """Reserve ``size`` writable bytes that live until ``release()``."""
        if size == 0:
            return self._track(memoryview(bytearray()))

        if self._current is None or len(self._current) - self._offset < size:
            self._grow(size)

        assert self._current is not None
        view = self._current[self._offset : self._offset + size]
        self._offset += size
        self.used += size
        return self._track(view)

    def freeze(self, view: memoryview) -> memoryview:
        """Return a read-only view of a payload, also released with the region."""
        return self._track(view.toreadonly())

    def release(self) -> None:
        """Drop every chunk and invalidate all views handed out."""
        for view in self._views:
            view.release()
        if self._current is not None:
            self._current.release()
        for chunk in self._chunks:
            self._allocator.free(len(chunk))
        self.log.debug("scratch region released", used=self.used, reserved=self.reserved,
                       chunks=len(self._chunks))
        self._views.clear()
        self._chunks.clear()
        self._current = None
        self._offset = 0
        self.used = 0
        self.reserved = 0

    def _grow(self, size: int) -> None:
        chunk_size = self._next_chunk_size
        headroom = self._allocator.headroom()
        if headroom is not None:
            # Never reserve more than the allocator has left
            chunk_size = min(chunk_size, headroom)
        chunk_size = max(size, chunk_size)
        chunk = self._allocator.allocate(chunk_size)
        if self._current is not None:
            self._current.release()
        self._chunks.append(chunk)
        self._current = memoryview(chunk)
        self._offset = 0
        self.reserved += chunk_size
        self._next_chunk_size = min(self._next_chunk_size * 2, _MAX_CHUNK)
        self.log.debug("scratch chunk allocated", size=chunk_size, reserved=self.reserved)

    def _track(self, view: memoryview) -> memoryview:
        self._views.append(view)
        return view
