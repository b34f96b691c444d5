"""tagpack: Self-Describing Binary Codec

A Python library for compact, self-describing binary encoding of typed values,
wire-compatible with the MessagePack tag catalog. Every value starts with a tag
byte naming its type and how its length is found, so messages are
self-delimiting and can be decoded without a schema.

Key Features:
- Minimal tags: fixint/fixstr/fixarray/fixmap forms for small values
- Declared-width integers and bit-exact IEEE-754 floats
- Pydantic-based record modeling (records travel as arrays)
- Schema-less dynamic decode into a tagged Value union
- Typed, recoverable errors for all malformed input

Quick Start:
    >>> from tagpack import BaseMessage, FixedFloat, FixedInt, decode, encode
    >>>
    >>> class Character(BaseMessage):
    ...     x: float = FixedFloat(bits=32)
    ...     y: float = FixedFloat(bits=32)
    ...     name: str
    ...     id: int = FixedInt(bits=64, signed=False)
    >>>
    >>> msg = Character(x=3.5, y=6123.25, name="Ziggy", id=2**64 - 1)
    >>> data = encode(msg)
    >>> decoded = decode(Character, data)
"""

from __future__ import annotations

__version__ = "0.1.0"

from .codec import (
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
    Allocator,
    BufferSink,
    BytesSource,
    CountingSink,
    Decoder,
    Encoder,
    ExtType,
    FieldSchema,
    FormatTag,
    HeapAllocator,
    Kind,
    MessageSchema,
    ScratchRegion,
    Sink,
    Source,
    StreamSink,
    StreamSource,
    TypeSpec,
    Value,
    ValueKind,
    array_of,
    classify,
    decode,
    encode,
    float_spec,
    int_spec,
    iter_unpack,
    map_of,
    record_of,
    unpack,
)
from .config import DecoderConfig
from .exceptions import (
    AllocationFailure,
    DecodeError,
    DuplicateKey,
    EncodeError,
    LengthMismatch,
    MalformedTag,
    NestingTooDeep,
    SchemaError,
    SinkFailure,
    SourceExhausted,
    SourceFailure,
    TagpackError,
    TypeMismatch,
)
from .models import BaseMessage, FixedFloat, FixedInt
from .utils import encoded_size, field_sizes

__all__ = [
    # Core API
    "BaseMessage",
    "encode",
    "decode",
    "unpack",
    "iter_unpack",
    "Encoder",
    "Decoder",
    "DecoderConfig",
    # Field helpers
    "FixedInt",
    "FixedFloat",
    # Type descriptors
    "TypeSpec",
    "MessageSchema",
    "FieldSchema",
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
    # Tag catalog
    "FormatTag",
    "Kind",
    "classify",
    # Dynamic values
    "Value",
    "ValueKind",
    "ExtType",
    # I/O and memory
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
    # Exceptions
    "TagpackError",
    "SchemaError",
    "EncodeError",
    "SinkFailure",
    "DecodeError",
    "SourceFailure",
    "SourceExhausted",
    "MalformedTag",
    "TypeMismatch",
    "LengthMismatch",
    "DuplicateKey",
    "NestingTooDeep",
    "AllocationFailure",
    # Sizing
    "encoded_size",
    "field_sizes",
    # Version
    "__version__",
]
