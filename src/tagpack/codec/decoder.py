"""Decoder: tagged bytes back to values.

This module provides the Decoder class and the decode()/unpack()/iter_unpack()
convenience functions.

Every read starts the same way: read exactly one tag byte, ``classify()`` it,
then dispatch on the resulting kind. Typed reads check the tag against the
requested descriptor and raise TypeMismatch instead of coercing; dynamic reads
turn whatever kind was found into a ``Value``.

String, binary and extension payloads are copied into the decoder's scratch
region. The low-level readers (decode_str, decode_bin, decode_raw, decode_ext,
decode_dynamic) return views into that region, valid until the decoder is
closed. decode() and the module-level helpers copy payloads out into ``str`` /
``bytes`` so their results outlive the decoder.
"""

from __future__ import annotations

import struct
from typing import Any, BinaryIO, Iterator, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError
from structlog import get_logger

from ..config import DecoderConfig
from ..exceptions import (
    DecodeError,
    DuplicateKey,
    LengthMismatch,
    NestingTooDeep,
    SourceExhausted,
    TypeMismatch,
)
from .io import BytesLike, Source, as_source
from .schema import ANY, MessageSchema, TypeSpec, record_of
from .scratch import Allocator, HeapAllocator, ScratchRegion
from .tags import FormatTag, Kind, LengthRule, TagInfo, classify
from .value import ExtType, Value, ValueKind

logger = get_logger()

T = TypeVar("T", bound=BaseModel)

_FLOAT_FORMATS = {4: ">f", 8: ">d"}


class Decoder:
    """Reads tagged values from a source.

    A decoder owns its source and one scratch region for its whole lifetime.
    Use it as a context manager (or call close()) to release the region.

    Args:
        source: Bytes-like object, a Source, or a binary stream
        allocator: Allocator the scratch region grows from (defaults to a
            HeapAllocator limited by config.max_scratch_bytes)
        config: Resource limits

    Example:
        >>> with Decoder(data) as decoder:
        ...     count = decoder.decode_int(UINT8)
        ...     ratio = decoder.decode_float(bits=32)
        ...     greeting = bytes(decoder.decode_str())
    """

    def __init__(
        self,
        source: Union[Source, BytesLike, BinaryIO],
        *,
        allocator: Optional[Allocator] = None,
        config: Optional[DecoderConfig] = None,
    ) -> None:
        self.config = config or DecoderConfig()
        self.source: Source = as_source(source)
        limit = self.config.max_scratch_bytes
        if allocator is None:
            allocator = HeapAllocator(limit)
        chunk_size = self.config.chunk_size
        if limit is not None:
            chunk_size = max(1, min(chunk_size, limit))
        self.scratch = ScratchRegion(allocator, chunk_size)
        self.closed = False
        self.log = logger.new()

    def close(self) -> None:
        """Release the scratch region; views handed out become invalid."""
        if self.closed:
            return
        self.log.debug("decoder closed", scratch_used=self.scratch.used)
        self.scratch.release()
        self.closed = True

    def __enter__(self) -> Decoder:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -- typed reads -------------------------------------------------------

    def decode_nil(self) -> None:
        info = self._read_tag()
        self._expect(info, (Kind.NIL,), "nil")

    def decode_bool(self) -> bool:
        info = self._read_tag()
        self._expect(info, (Kind.BOOL,), "bool")
        return info.byte == FormatTag.TRUE

    def decode_int(self, spec: TypeSpec) -> int:
        """Decode an integer into a destination of the given width.

        Fixints are accepted by any destination that can hold their value.
        Explicit integer tags must match the destination's width and
        signedness exactly.

        Raises:
            TypeMismatch: If the tag is not an integer or does not match spec
        """
        return self._read_int(self._read_tag(), spec)

    def decode_float(self, bits: int = 64) -> float:
        """Decode a float; the tag width must equal ``bits``."""
        info = self._read_tag()
        self._check_float(info, bits)
        return struct.unpack(_FLOAT_FORMATS[info.width], self._read_exact(info.width))[0]

    def decode_float_bits(self, bits: int = 64) -> int:
        """Decode a float as its raw IEEE-754 bit pattern."""
        info = self._read_tag()
        self._check_float(info, bits)
        return int.from_bytes(self._read_exact(info.width), "big")

    def decode_str(self) -> memoryview:
        """Decode a string payload as a read-only view into the scratch region."""
        info = self._read_tag()
        self._expect(info, (Kind.STR,), "str")
        return self._read_payload(self._read_length(info))

    def decode_bin(self) -> memoryview:
        """Decode a binary payload as a read-only view into the scratch region."""
        info = self._read_tag()
        self._expect(info, (Kind.BIN,), "bin")
        return self._read_payload(self._read_length(info))

    def decode_raw(self) -> memoryview:
        """Decode either a string or a binary payload."""
        info = self._read_tag()
        self._expect(info, (Kind.STR, Kind.BIN), "str or bin")
        return self._read_payload(self._read_length(info))

    def decode_ext(self) -> ExtType:
        info = self._read_tag()
        self._expect(info, (Kind.EXT,), "ext")
        return self._read_ext(info)

    def decode_array_header(self) -> int:
        """Decode an array tag and return its element count."""
        info = self._read_tag()
        self._expect(info, (Kind.ARRAY,), "array")
        return self._read_length(info)

    def decode_map_header(self) -> int:
        """Decode a map tag and return its entry count."""
        info = self._read_tag()
        self._expect(info, (Kind.MAP,), "map")
        return self._read_length(info)

    def decode_record(self, schema: MessageSchema) -> Any:
        """Decode a record encoded as an array of its fields.

        Returns:
            An instance of schema.model_class, or a dict when the schema has
            no model

        Raises:
            LengthMismatch: If the element count differs from the field count
        """
        return self._read_record(self._read_tag(), schema, 1)

    def decode_list(self, element: TypeSpec = ANY) -> list[Any]:
        return self.decode(TypeSpec(Kind.ARRAY, element=element))

    def decode_map(self, key: TypeSpec = ANY, value: TypeSpec = ANY) -> dict[Any, Any]:
        return self.decode(TypeSpec(Kind.MAP, key=key, value=value))

    def decode(self, spec: TypeSpec = ANY) -> Any:
        """Decode one value of the given descriptor into Python objects.

        Strings become ``str`` and binary payloads ``bytes``; ANY decodes
        dynamically and converts with Value.to_python().
        """
        return self._read(self._read_tag(), spec, 1)

    # -- dynamic reads -----------------------------------------------------

    def decode_dynamic(self) -> Value:
        """Decode one value of any kind without a declared type."""
        return self._read_dynamic(self._read_tag(), 1)

    def iter_dynamic(self) -> Iterator[Value]:
        """Yield dynamic values until the source ends on a value boundary."""
        while True:
            info = self._read_tag_or_end()
            if info is None:
                return
            yield self._read_dynamic(info, 1)

    # -- internals ---------------------------------------------------------

    def _check_open(self) -> None:
        if self.closed:
            raise ValueError("I/O operation on closed decoder")

    def _read_tag(self) -> TagInfo:
        self._check_open()
        return classify(self.source.read_byte())

    def _read_tag_or_end(self) -> Optional[TagInfo]:
        self._check_open()
        try:
            byte = self.source.read_byte()
        except SourceExhausted:
            return None
        return classify(byte)

    @staticmethod
    def _expect(info: TagInfo, kinds: tuple[Kind, ...], what: str) -> None:
        if info.kind not in kinds:
            raise TypeMismatch(f"expected {what}, found {info.name} tag")

    @staticmethod
    def _check_float(info: TagInfo, bits: int) -> None:
        if info.kind is not Kind.FLOAT:
            raise TypeMismatch(f"expected float{bits}, found {info.name} tag")
        if info.bits != bits:
            raise TypeMismatch(f"expected float{bits}, found float{info.bits} tag")

    def _read_exact(self, size: int) -> bytes:
        buffer = bytearray(size)
        self.source.read_into(memoryview(buffer))
        return bytes(buffer)

    def _read_length(self, info: TagInfo) -> int:
        if info.rule is LengthRule.EMBEDDED:
            return info.embedded
        if info.rule is LengthRule.PREFIXED:
            return int.from_bytes(self._read_exact(info.width), "big")
        return info.width

    def _read_payload(self, size: int) -> memoryview:
        # Refuse lengths the source cannot satisfy before allocating for them
        available = self.source.remaining()
        if available is not None and size > available:
            raise SourceExhausted(size, available)
        view = self.scratch.allocate(size)
        self.source.read_into(view)
        return self.scratch.freeze(view)

    def _read_int(self, info: TagInfo, spec: TypeSpec) -> int:
        if spec.kind not in (Kind.INT, Kind.UINT):
            raise TypeMismatch(f"expected {spec.label}, found {info.name} tag")
        if info.kind not in (Kind.INT, Kind.UINT):
            raise TypeMismatch(f"expected {spec.label}, found {info.name} tag")
        if info.rule is LengthRule.EMBEDDED:
            if not spec.min_value <= info.embedded <= spec.max_value:
                raise TypeMismatch(f"fixint {info.embedded} does not fit {spec.label}")
            return info.embedded
        if info.kind is not spec.kind or info.bits != spec.bits:
            raise TypeMismatch(f"expected {spec.label}, found {info.name} tag")
        return int.from_bytes(self._read_exact(info.width), "big", signed=info.signed)

    def _read_ext(self, info: TagInfo) -> ExtType:
        size = self._read_length(info)
        type_id = int.from_bytes(self._read_exact(1), "big", signed=True)
        return ExtType(type_id, self._read_payload(size))

    def _read_record(self, info: TagInfo, schema: MessageSchema, depth: int) -> Any:
        self._expect(info, (Kind.ARRAY,), f"record {schema.name}")
        count = self._read_length(info)
        if count != len(schema):
            raise LengthMismatch(len(schema), count, schema.name)

        values = {}
        for field in schema.fields:
            values[field.name] = self._read(self._read_tag(), field.spec, depth + 1)

        if schema.model_class is None:
            return values
        try:
            return schema.model_class(**values)
        except ValidationError as e:
            raise DecodeError(f"Failed to construct {schema.name}: {e}") from e

    def _read(self, info: TagInfo, spec: TypeSpec, depth: int) -> Any:
        if depth > self.config.max_depth:
            raise NestingTooDeep(f"nesting deeper than {self.config.max_depth} levels")
        if info.kind is Kind.NIL and (spec.nullable or spec.kind in (Kind.NIL, None)):
            return None

        kind = spec.kind
        if kind is None:
            return self._read_dynamic(info, depth).to_python()
        if kind is Kind.NIL:
            raise TypeMismatch(f"expected nil, found {info.name} tag")
        if kind is Kind.BOOL:
            self._expect(info, (Kind.BOOL,), "bool")
            return info.byte == FormatTag.TRUE
        if kind in (Kind.INT, Kind.UINT):
            return self._read_int(info, spec)
        if kind is Kind.FLOAT:
            self._check_float(info, spec.bits)
            return struct.unpack(_FLOAT_FORMATS[info.width], self._read_exact(info.width))[0]
        if kind is Kind.STR:
            self._expect(info, (Kind.STR,), "str")
            payload = self._read_payload(self._read_length(info))
            try:
                return str(payload, "utf-8")
            except UnicodeDecodeError as e:
                raise DecodeError(f"invalid UTF-8 encoding: {e}") from e
        if kind is Kind.BIN:
            self._expect(info, (Kind.BIN,), "bin")
            return bytes(self._read_payload(self._read_length(info)))
        if kind is Kind.EXT:
            self._expect(info, (Kind.EXT,), "ext")
            ext = self._read_ext(info)
            return ExtType(ext.type_id, bytes(ext.data))
        if kind is Kind.ARRAY and spec.record is not None:
            return self._read_record(info, spec.record, depth)
        if kind is Kind.ARRAY:
            self._expect(info, (Kind.ARRAY,), spec.label)
            count = self._read_length(info)
            element = spec.element or ANY
            return [self._read(self._read_tag(), element, depth + 1) for _ in range(count)]
        if kind is Kind.MAP:
            self._expect(info, (Kind.MAP,), spec.label)
            return self._read_map_entries(self._read_length(info), spec, depth)
        raise TypeMismatch(f"unsupported descriptor {spec.label}")

    def _read_map_entries(self, count: int, spec: TypeSpec, depth: int) -> dict[Any, Any]:
        key_spec = spec.key or ANY
        value_spec = spec.value or ANY
        result: dict[Any, Any] = {}
        for _ in range(count):
            key = self._read(self._read_tag(), key_spec, depth + 1)
            try:
                duplicate = key in result
            except TypeError as e:
                raise DecodeError(f"map key {key!r} is not hashable") from e
            if duplicate:
                raise DuplicateKey(f"duplicate map key {key!r}")
            result[key] = self._read(self._read_tag(), value_spec, depth + 1)
        return result

    def _read_dynamic(self, info: TagInfo, depth: int) -> Value:
        if depth > self.config.max_depth:
            raise NestingTooDeep(f"nesting deeper than {self.config.max_depth} levels")

        kind = info.kind
        if kind is Kind.NIL:
            return Value(ValueKind.NIL)
        if kind is Kind.BOOL:
            return Value(ValueKind.BOOL, info.byte == FormatTag.TRUE)
        if kind in (Kind.INT, Kind.UINT):
            if info.rule is LengthRule.EMBEDDED:
                return Value(ValueKind.INT, info.embedded)
            number = int.from_bytes(self._read_exact(info.width), "big", signed=info.signed)
            return Value(ValueKind.INT if info.signed else ValueKind.UINT, number)
        if kind is Kind.FLOAT:
            return Value(
                ValueKind.FLOAT,
                struct.unpack(_FLOAT_FORMATS[info.width], self._read_exact(info.width))[0],
            )
        if kind is Kind.STR:
            return Value(ValueKind.RAW, self._read_payload(self._read_length(info)))
        if kind is Kind.BIN:
            return Value(ValueKind.BIN, self._read_payload(self._read_length(info)))
        if kind is Kind.EXT:
            return Value(ValueKind.EXT, self._read_ext(info))
        if kind is Kind.ARRAY:
            count = self._read_length(info)
            return Value(
                ValueKind.ARRAY,
                tuple(self._read_dynamic(self._read_tag(), depth + 1) for _ in range(count)),
            )
        # Kind.MAP
        count = self._read_length(info)
        pairs = []
        for _ in range(count):
            key = self._read_dynamic(self._read_tag(), depth + 1)
            pairs.append((key, self._read_dynamic(self._read_tag(), depth + 1)))
        return Value(ValueKind.MAP, tuple(pairs))


def _as_spec(target: Union[TypeSpec, MessageSchema, Type[BaseModel]]) -> TypeSpec:
    if isinstance(target, TypeSpec):
        return target
    if isinstance(target, MessageSchema):
        return record_of(target)
    return record_of(MessageSchema.from_model(target))


def decode(
    target: Union[Type[T], MessageSchema, TypeSpec],
    data: BytesLike,
    *,
    config: Optional[DecoderConfig] = None,
) -> Any:
    """Decode exactly one value from bytes.

    Args:
        target: Pydantic model class, MessageSchema, or TypeSpec to decode into
        data: Encoded bytes
        config: Decoder resource limits

    Returns:
        Decoded model instance (for model classes), dict (for bare schemas),
        or Python value (for descriptors)

    Raises:
        SchemaError: If the model schema is invalid
        DecodeError: If data is truncated, corrupted, has trailing bytes, or
            does not match the target

    Examples:
        ```python
        from tagpack import decode, encode

        data = encode(Character(x=3.5, y=6123.25, name="Ziggy", id=2**64 - 1))
        decoded = decode(Character, data)
        ```
    """
    spec = _as_spec(target)
    with Decoder(data, config=config) as decoder:
        result = decoder.decode(spec)
        leftover = decoder.source.remaining()
    if leftover:
        raise DecodeError(f"{leftover} trailing bytes after value")
    return result


def unpack(data: BytesLike, *, config: Optional[DecoderConfig] = None) -> Any:
    """Decode exactly one value of any kind into plain Python objects."""
    return decode(ANY, data, config=config)


def iter_unpack(
    data: Union[BytesLike, BinaryIO, Source], *, config: Optional[DecoderConfig] = None
) -> Iterator[Any]:
    """Yield every value in a concatenation of messages as Python objects."""
    with Decoder(data, config=config) as decoder:
        for value in decoder.iter_dynamic():
            yield value.to_python()
