"""Decoder configuration.

This module provides the configuration dataclass used by ``Decoder`` to bound
the resources a single decoder instance may consume on untrusted input.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class DecoderConfig:
    """Resource limits for a decoder instance.

    Attributes:
        max_scratch_bytes: Upper bound on the scratch region's total size in
            bytes, or None for no limit (default). Exceeding it raises
            AllocationFailure. The region holds every string, binary and
            extension payload decoded through the decoder until it is closed.

        chunk_size: Size of the first scratch chunk in bytes (default 4096,
            capped at max_scratch_bytes).
            Later chunks double in size up to 1 MiB; a payload larger than the
            next chunk gets a chunk of its own.

        max_depth: Maximum nesting depth of arrays/maps accepted by dynamic
            decode (default 256). Deeper input raises NestingTooDeep.

    Examples:
        ```python
        from tagpack import Decoder, DecoderConfig

        # Cap memory for messages from an untrusted peer
        config = DecoderConfig(max_scratch_bytes=1 << 20, max_depth=32)

        with Decoder(data, config=config) as decoder:
            value = decoder.decode_dynamic()
        ```
    """

    max_scratch_bytes: Optional[int] = None
    chunk_size: int = 4096
    max_depth: int = 256

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.max_scratch_bytes is not None and self.max_scratch_bytes < 0:
            raise ValueError(f"max_scratch_bytes must be >= 0, got {self.max_scratch_bytes}")

        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be > 0, got {self.chunk_size}")

        if self.max_depth <= 0:
            raise ValueError(f"max_depth must be > 0, got {self.max_depth}")
