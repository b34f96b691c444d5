"""Encoder: typed values to tagged bytes.

This module provides the Encoder class, which writes one tagged value per call
to a sink, and the encode() convenience function that returns bytes.

Length tiering for variable-length payloads:

========  ===========  ============  =============  ==================
payload   fix form     8-bit length  16-bit length  32-bit length
========  ===========  ============  =============  ==================
str       0-31         32-255        256-65535      65536-4294967295
bin       (none)       0-255         256-65535      65536-4294967295
array     0-15         (none)        16-65535       65536-4294967295
map       0-15         (none)        16-65535       65536-4294967295
========  ===========  ============  =============  ==================

All multi-byte lengths and numbers are big-endian.
"""

from __future__ import annotations

import struct
from collections.abc import Mapping
from typing import Any, BinaryIO, Iterable, Optional, Sequence, Union

from pydantic import BaseModel

from ..exceptions import EncodeError, SchemaError, SinkFailure
from .io import BufferSink, BytesLike, Sink, as_sink
from .schema import ANY, FLOAT64, INT64, UINT64, MessageSchema, TypeSpec, record_of, spec_for_value
from .tags import FixedRange, FormatTag, Kind, float_tag, int_tag
from .value import ExtType, Value, ValueKind

_MAX_U32 = 0xFFFFFFFF
_NEG_FIXINT_MIN = -31

_FIXEXT_TAGS = {
    1: FormatTag.FIXEXT1,
    2: FormatTag.FIXEXT2,
    4: FormatTag.FIXEXT4,
    8: FormatTag.FIXEXT8,
    16: FormatTag.FIXEXT16,
}

_FLOAT_FORMATS = {32: ">f", 64: ">d"}


class Encoder:
    """Writes tagged values to a sink.

    The encoder keeps no state besides its sink, so calls are independent of
    each other. The sink belongs to the caller.

    Args:
        sink: A Sink, a binary stream, or None for an in-memory buffer

    Example:
        >>> encoder = Encoder()
        >>> encoder.encode_int(13, UINT8)
        >>> encoder.encode_float(3.5, bits=32)
        >>> encoder.encode_str("Hello, tagpack")
        >>> data = encoder.getvalue()
    """

    def __init__(self, sink: Union[Sink, BinaryIO, None] = None) -> None:
        self.sink: Sink = as_sink(sink)

    def getvalue(self) -> bytes:
        """Return the bytes written so far (in-memory sinks only)."""
        if not isinstance(self.sink, BufferSink):
            raise TypeError("getvalue() requires an in-memory BufferSink")
        return self.sink.getvalue()

    # -- scalars -----------------------------------------------------------

    def encode_nil(self) -> None:
        self.sink.write_byte(FormatTag.NIL)

    def encode_bool(self, value: bool) -> None:
        self.sink.write_byte(FormatTag.TRUE if value else FormatTag.FALSE)

    def encode_int(self, value: int, spec: TypeSpec) -> None:
        """Encode an integer at its declared width.

        Values 0..127 and -31..-1 always use the one-byte fixint forms. Every
        other value uses the explicit tag of the declared width and signedness,
        even when a narrower tag could hold it.

        Args:
            value: Integer to encode
            spec: Integer descriptor (e.g. UINT8, INT64)

        Raises:
            EncodeError: If value is outside the declared width's range
        """
        if spec.kind not in (Kind.INT, Kind.UINT):
            raise SchemaError(f"encode_int requires an integer descriptor, got {spec.label}")
        if isinstance(value, bool) or not isinstance(value, int):
            raise EncodeError(f"expected int, got {type(value).__name__}")
        if value < spec.min_value or value > spec.max_value:
            raise EncodeError(
                f"value {value} out of bounds for {spec.label} [{spec.min_value}, {spec.max_value}]"
            )

        if 0 <= value <= FixedRange.POS_FIXINT.limit:
            self.sink.write_byte(value)
            return
        if _NEG_FIXINT_MIN <= value < 0:
            self.sink.write_byte(value & 0xFF)
            return

        tag = int_tag(spec.bits, spec.signed)
        self.sink.write_byte(tag)
        self.sink.write(value.to_bytes(spec.bits // 8, "big", signed=spec.signed))

    def encode_float(self, value: float, bits: int = 64) -> None:
        """Encode an IEEE-754 float of the declared width.

        float64 values are written bit-for-bit. float32 values are rounded
        from the host double; use encode_float_bits() to write an exact
        float32 pattern such as a NaN with payload.
        """
        tag = float_tag(bits)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise EncodeError(f"expected float, got {type(value).__name__}")
        try:
            payload = struct.pack(_FLOAT_FORMATS[bits], value)
        except OverflowError as e:
            raise EncodeError(f"value {value} out of range for float{bits}") from e
        self.sink.write_byte(tag)
        self.sink.write(payload)

    def encode_float_bits(self, pattern: int, bits: int = 64) -> None:
        """Encode a float from its raw IEEE-754 bit pattern."""
        tag = float_tag(bits)
        if not 0 <= pattern < (1 << bits):
            raise EncodeError(f"bit pattern {pattern:#x} does not fit float{bits}")
        self.sink.write_byte(tag)
        self.sink.write(pattern.to_bytes(bits // 8, "big"))

    # -- variable-length payloads -----------------------------------------

    def encode_str(self, value: Union[str, BytesLike]) -> None:
        """Encode a string (``str`` is UTF-8 encoded; bytes are written as-is)."""
        data = value.encode("utf-8") if isinstance(value, str) else value
        size = len(data)
        if size <= FixedRange.FIXSTR.limit:
            self.sink.write_byte(FixedRange.FIXSTR.pack(size))
        elif size <= 0xFF:
            self._write_header(FormatTag.STR8, size, 1)
        elif size <= 0xFFFF:
            self._write_header(FormatTag.STR16, size, 2)
        elif size <= _MAX_U32:
            self._write_header(FormatTag.STR32, size, 4)
        else:
            raise EncodeError(f"string of {size} bytes exceeds the 32-bit length limit")
        self.sink.write(data)

    def encode_bin(self, value: BytesLike) -> None:
        """Encode a binary blob. There is no fix form: empty blobs use bin8."""
        if isinstance(value, str):
            raise EncodeError("expected bytes, got str")
        size = len(value)
        if size <= 0xFF:
            self._write_header(FormatTag.BIN8, size, 1)
        elif size <= 0xFFFF:
            self._write_header(FormatTag.BIN16, size, 2)
        elif size <= _MAX_U32:
            self._write_header(FormatTag.BIN32, size, 4)
        else:
            raise EncodeError(f"binary of {size} bytes exceeds the 32-bit length limit")
        self.sink.write(value)

    def encode_ext(self, type_id: int, data: BytesLike) -> None:
        """Encode an extension value (fixext for 1/2/4/8/16 bytes, else ext8/16/32)."""
        if not isinstance(type_id, int) or not -128 <= type_id <= 127:
            raise EncodeError(f"Extension type id must be -128..127, got {type_id!r}")
        size = len(data)
        fixed = _FIXEXT_TAGS.get(size)
        if fixed is not None:
            self.sink.write_byte(fixed)
        elif size <= 0xFF:
            self._write_header(FormatTag.EXT8, size, 1)
        elif size <= 0xFFFF:
            self._write_header(FormatTag.EXT16, size, 2)
        elif size <= _MAX_U32:
            self._write_header(FormatTag.EXT32, size, 4)
        else:
            raise EncodeError(f"extension of {size} bytes exceeds the 32-bit length limit")
        self.sink.write_byte(type_id & 0xFF)
        self.sink.write(data)

    # -- containers --------------------------------------------------------

    def encode_array_header(self, count: int) -> None:
        self._container_header(count, FixedRange.FIXARRAY, FormatTag.ARRAY16, FormatTag.ARRAY32)

    def encode_map_header(self, count: int) -> None:
        self._container_header(count, FixedRange.FIXMAP, FormatTag.MAP16, FormatTag.MAP32)

    def encode_record(self, value: Any, schema: MessageSchema) -> None:
        """Encode a record as an array of its fields in declared order.

        Args:
            value: Pydantic model instance, mapping of field names, or a
                sequence of field values in schema order
            schema: Ordered field schema

        Raises:
            EncodeError: If a field is missing or cannot be encoded
        """
        if isinstance(value, BaseModel):
            values = [getattr(value, field.name) for field in schema.fields]
        elif isinstance(value, Mapping):
            missing = [field.name for field in schema.fields if field.name not in value]
            if missing:
                raise EncodeError(f"{schema.name}: missing fields {missing}")
            values = [value[field.name] for field in schema.fields]
        elif isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
            if len(value) != len(schema):
                raise EncodeError(
                    f"{schema.name}: expected {len(schema)} field values, got {len(value)}"
                )
            values = list(value)
        else:
            raise EncodeError(f"{schema.name}: cannot encode {type(value).__name__} as a record")

        self.encode_array_header(len(schema))
        for field, item in zip(schema.fields, values):
            try:
                self.encode(item, field.spec)
            except SinkFailure:
                raise
            except EncodeError as e:
                raise EncodeError(f"Field {field.name}: {e}") from e

    def encode_list(self, items: Sequence[Any], element: TypeSpec = ANY) -> None:
        """Encode a variable-length array whose items share one descriptor."""
        self.encode_array_header(len(items))
        for item in items:
            self.encode(item, element)

    def encode_map(
        self,
        entries: Union[Mapping[Any, Any], Iterable[tuple[Any, Any]]],
        key: TypeSpec = ANY,
        value: TypeSpec = ANY,
    ) -> None:
        """Encode a map as ordered key/value pairs.

        Entries are written in iteration order. Keys must be unique: a pair
        sequence repeating a key raises EncodeError.
        """
        if isinstance(entries, Mapping):
            pairs = list(entries.items())
        else:
            pairs = [tuple(pair) for pair in entries]
            seen: set[Any] = set()
            for pair in pairs:
                if len(pair) != 2:
                    raise EncodeError(f"map entry must be a (key, value) pair, got {pair!r}")
                try:
                    if pair[0] in seen:
                        raise EncodeError(f"duplicate map key {pair[0]!r}")
                    seen.add(pair[0])
                except TypeError as e:
                    raise EncodeError(f"map key {pair[0]!r} is not hashable") from e

        self.encode_map_header(len(pairs))
        for entry_key, entry_value in pairs:
            self.encode(entry_key, key)
            self.encode(entry_value, value)

    # -- dispatch ----------------------------------------------------------

    def encode(self, value: Any, spec: Optional[TypeSpec] = None) -> None:
        """Encode any supported value.

        Args:
            value: Value to encode
            spec: Declared wire type; inferred from the value when None or ANY

        Raises:
            EncodeError: If the value does not fit the descriptor
        """
        if isinstance(value, Value):
            self.encode_value(value)
            return
        if spec is None or spec.kind is None:
            spec = spec_for_value(value)
            if spec.kind is None:
                raise EncodeError(f"Cannot encode value of type {type(value).__name__}")
        if value is None:
            if spec.nullable or spec.kind is Kind.NIL:
                self.encode_nil()
                return
            raise EncodeError(f"{spec.label} value is required but got None")

        kind = spec.kind
        if kind is Kind.NIL:
            raise EncodeError(f"nil descriptor requires None, got {type(value).__name__}")
        elif kind is Kind.BOOL:
            if not isinstance(value, bool):
                raise EncodeError(f"expected bool, got {type(value).__name__}")
            self.encode_bool(value)
        elif kind in (Kind.INT, Kind.UINT):
            self.encode_int(value, spec)
        elif kind is Kind.FLOAT:
            self.encode_float(value, spec.bits)
        elif kind is Kind.STR:
            if not isinstance(value, str):
                raise EncodeError(f"expected str, got {type(value).__name__}")
            self.encode_str(value)
        elif kind is Kind.BIN:
            if not isinstance(value, (bytes, bytearray, memoryview)):
                raise EncodeError(f"expected bytes, got {type(value).__name__}")
            self.encode_bin(value)
        elif kind is Kind.EXT:
            if not isinstance(value, ExtType):
                raise EncodeError(f"expected ExtType, got {type(value).__name__}")
            self.encode_ext(value.type_id, value.data)
        elif kind is Kind.ARRAY and spec.record is not None:
            self.encode_record(value, spec.record)
        elif kind is Kind.ARRAY:
            if not isinstance(value, (list, tuple)):
                raise EncodeError(f"expected list, got {type(value).__name__}")
            self.encode_list(value, spec.element or ANY)
        elif kind is Kind.MAP:
            if not isinstance(value, (Mapping, list, tuple)):
                raise EncodeError(f"expected dict, got {type(value).__name__}")
            self.encode_map(value, spec.key or ANY, spec.value or ANY)
        else:
            raise SchemaError(f"unsupported descriptor {spec.label}")

    def encode_value(self, value: Value) -> None:
        """Re-encode a dynamic Value.

        Integers use the fixint forms when they fit, else INT64 (INT) or
        UINT64 (UINT); floats are written as float64.
        """
        kind = value.kind
        if kind is ValueKind.NIL:
            self.encode_nil()
        elif kind is ValueKind.BOOL:
            self.encode_bool(value.data)
        elif kind is ValueKind.INT:
            self.encode_int(value.data, INT64)
        elif kind is ValueKind.UINT:
            self.encode_int(value.data, UINT64)
        elif kind is ValueKind.FLOAT:
            self.encode(value.data, FLOAT64)
        elif kind is ValueKind.RAW:
            self.encode_str(value.data)
        elif kind is ValueKind.BIN:
            self.encode_bin(value.data)
        elif kind is ValueKind.EXT:
            self.encode_ext(value.data.type_id, value.data.data)
        elif kind is ValueKind.ARRAY:
            self.encode_array_header(len(value.data))
            for item in value.data:
                self.encode_value(item)
        elif kind is ValueKind.MAP:
            self.encode_map_header(len(value.data))
            for entry_key, entry_value in value.data:
                self.encode_value(entry_key)
                self.encode_value(entry_value)

    # -- helpers -----------------------------------------------------------

    def _container_header(
        self, count: int, family: FixedRange, tag16: FormatTag, tag32: FormatTag
    ) -> None:
        if count < 0:
            raise EncodeError(f"container length must be >= 0, got {count}")
        if count <= family.limit:
            self.sink.write_byte(family.pack(count))
        elif count <= 0xFFFF:
            self._write_header(tag16, count, 2)
        elif count <= _MAX_U32:
            self._write_header(tag32, count, 4)
        else:
            raise EncodeError(f"container of {count} items exceeds the 32-bit length limit")

    def _write_header(self, tag: FormatTag, length: int, width: int) -> None:
        self.sink.write(bytes((tag,)) + length.to_bytes(width, "big"))


def encode(value: Any, spec: Optional[TypeSpec] = None) -> bytes:
    """Encode a value to bytes.

    Pydantic models are encoded as records using their field annotations.

    Args:
        value: Value to encode (model instance, scalar, list, dict, Value, ...)
        spec: Declared wire type, or None to infer it

    Returns:
        Encoded bytes

    Raises:
        SchemaError: If a model schema is invalid
        EncodeError: If a value is invalid or out of bounds

    Examples:
        ```python
        from tagpack import BaseMessage, FixedFloat, FixedInt, encode

        class Character(BaseMessage):
            x: float = FixedFloat(bits=32)
            y: float = FixedFloat(bits=32)
            name: str
            id: int = FixedInt(bits=64, signed=False)

        data = encode(Character(x=3.5, y=6123.25, name="Ziggy", id=2**64 - 1))
        assert data[0] == 0x94  # fixarray of 4 fields
        ```
    """
    if spec is None and isinstance(value, BaseModel):
        spec = record_of(MessageSchema.from_model(type(value)))
    encoder = Encoder()
    encoder.encode(value, spec)
    return encoder.getvalue()
