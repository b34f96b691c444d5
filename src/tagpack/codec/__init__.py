"""Self-describing binary codec for tagpack.

This module provides the tag catalog, the Encoder/Decoder pair, type
descriptors, and the sink/source/scratch-region plumbing they run on.
"""

from __future__ import annotations

from .decoder import Decoder, decode, iter_unpack, unpack
from .encoder import Encoder, encode
from .io import BufferSink, BytesSource, CountingSink, Sink, Source, StreamSink, StreamSource
from .schema import (
    ANY,
    BIN,
    BOOL,
    EXT,
    FLOAT32,
    FLOAT64,
    INT8,
    INT16,
    INT32,
    INT64,
    NIL,
    STR,
    UINT8,
    UINT16,
    UINT32,
    UINT64,
    FieldSchema,
    MessageSchema,
    TypeSpec,
    array_of,
    float_spec,
    int_spec,
    map_of,
    record_of,
)
from .scratch import Allocator, HeapAllocator, ScratchRegion
from .tags import FixedRange, FormatTag, Kind, LengthRule, TagInfo, classify
from .value import ExtType, Value, ValueKind

__all__ = [
    "encode",
    "decode",
    "unpack",
    "iter_unpack",
    "Encoder",
    "Decoder",
    "MessageSchema",
    "FieldSchema",
    "TypeSpec",
    "int_spec",
    "float_spec",
    "array_of",
    "map_of",
    "record_of",
    "ANY",
    "NIL",
    "BOOL",
    "UINT8",
    "UINT16",
    "UINT32",
    "UINT64",
    "INT8",
    "INT16",
    "INT32",
    "INT64",
    "FLOAT32",
    "FLOAT64",
    "STR",
    "BIN",
    "EXT",
    "FormatTag",
    "FixedRange",
    "Kind",
    "LengthRule",
    "TagInfo",
    "classify",
    "Value",
    "ValueKind",
    "ExtType",
    "Sink",
    "Source",
    "BufferSink",
    "CountingSink",
    "StreamSink",
    "BytesSource",
    "StreamSource",
    "Allocator",
    "HeapAllocator",
    "ScratchRegion",
]
