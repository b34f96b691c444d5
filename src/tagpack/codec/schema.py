"""Type descriptors and message schemas.

A ``TypeSpec`` tells the encoder which tag family and width to write and the
decoder which tag family and width to accept. A ``MessageSchema`` is an ordered
list of (name, TypeSpec) pairs describing a record, which travels on the wire as
an array with one element per field.

Schemas can be written out explicitly or derived from a Pydantic model's field
annotations; either way the encoder and decoder only ever see the ordered list.
"""

from __future__ import annotations

import types
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple, Type, Union, get_args, get_origin

from pydantic import BaseModel
from pydantic.fields import FieldInfo

from ..exceptions import EncodeError, SchemaError
from .tags import Kind, float_tag, int_tag
from .value import ExtType, Value


@dataclass(frozen=True)
class TypeSpec:
    """Descriptor of one wire type.

    ``kind`` None means "any": the encoder infers a descriptor from the Python
    value and the decoder performs a dynamic decode.

    Attributes:
        kind: Semantic kind, or None for any
        bits: Declared width for INT/UINT (8/16/32/64) and FLOAT (32/64)
        element: Element descriptor of a homogeneous array
        key: Key descriptor of a map
        value: Value descriptor of a map
        record: Field schema of a record array
        nullable: Whether nil is accepted in place of the value
    """

    kind: Optional[Kind]
    bits: int = 0
    element: Optional[TypeSpec] = None
    key: Optional[TypeSpec] = None
    value: Optional[TypeSpec] = None
    record: Optional[MessageSchema] = None
    nullable: bool = False

    def __post_init__(self) -> None:
        if self.kind in (Kind.INT, Kind.UINT):
            int_tag(self.bits, self.kind is Kind.INT)
        elif self.kind is Kind.FLOAT:
            float_tag(self.bits)

    @property
    def signed(self) -> bool:
        return self.kind is Kind.INT

    @property
    def min_value(self) -> int:
        """Smallest integer representable at the declared width."""
        return -(1 << (self.bits - 1)) if self.signed else 0

    @property
    def max_value(self) -> int:
        """Largest integer representable at the declared width."""
        return (1 << (self.bits - 1)) - 1 if self.signed else (1 << self.bits) - 1

    @property
    def label(self) -> str:
        """Short human-readable name, e.g. ``uint8`` or ``array<str>``."""
        if self.kind is None:
            text = "any"
        elif self.kind in (Kind.INT, Kind.UINT, Kind.FLOAT):
            text = f"{self.kind.value}{self.bits}"
        elif self.record is not None:
            text = f"record<{self.record.name}>"
        elif self.kind is Kind.ARRAY:
            text = f"array<{self.element.label if self.element else 'any'}>"
        elif self.kind is Kind.MAP:
            key = self.key.label if self.key else "any"
            value = self.value.label if self.value else "any"
            text = f"map<{key}, {value}>"
        else:
            text = self.kind.value
        return f"{text}?" if self.nullable else text

    def optional(self) -> TypeSpec:
        """Return a copy of this descriptor that also accepts nil."""
        return TypeSpec(self.kind, self.bits, self.element, self.key, self.value, self.record, True)


ANY = TypeSpec(None)
NIL = TypeSpec(Kind.NIL)
BOOL = TypeSpec(Kind.BOOL)
UINT8 = TypeSpec(Kind.UINT, 8)
UINT16 = TypeSpec(Kind.UINT, 16)
UINT32 = TypeSpec(Kind.UINT, 32)
UINT64 = TypeSpec(Kind.UINT, 64)
INT8 = TypeSpec(Kind.INT, 8)
INT16 = TypeSpec(Kind.INT, 16)
INT32 = TypeSpec(Kind.INT, 32)
INT64 = TypeSpec(Kind.INT, 64)
FLOAT32 = TypeSpec(Kind.FLOAT, 32)
FLOAT64 = TypeSpec(Kind.FLOAT, 64)
STR = TypeSpec(Kind.STR)
BIN = TypeSpec(Kind.BIN)
EXT = TypeSpec(Kind.EXT)


def int_spec(bits: int, signed: bool = True) -> TypeSpec:
    """Integer descriptor for a declared width and signedness."""
    return TypeSpec(Kind.INT if signed else Kind.UINT, bits)


def float_spec(bits: int = 64) -> TypeSpec:
    """Float descriptor for a declared width."""
    return TypeSpec(Kind.FLOAT, bits)


def array_of(element: TypeSpec = ANY) -> TypeSpec:
    """Descriptor of a variable-length array whose elements share one type."""
    return TypeSpec(Kind.ARRAY, element=element)


def map_of(key: TypeSpec = ANY, value: TypeSpec = ANY) -> TypeSpec:
    """Descriptor of a map of ordered key/value pairs."""
    return TypeSpec(Kind.MAP, key=key, value=value)


def record_of(schema: MessageSchema) -> TypeSpec:
    """Descriptor of a record encoded as a fixed-length array."""
    return TypeSpec(Kind.ARRAY, record=schema)


@dataclass(frozen=True)
class FieldSchema:
    """Schema information for a single record field.

    Attributes:
        name: Field name
        spec: Wire type of the field
    """

    name: str
    spec: TypeSpec


class MessageSchema:
    """Ordered (name, TypeSpec) pairs describing a record.

    Example:
        >>> schema = MessageSchema([("x", FLOAT32), ("y", FLOAT32), ("name", STR), ("id", UINT64)])
        >>> [field.name for field in schema.fields]
        ['x', 'y', 'name', 'id']
        >>> schema = MessageSchema.from_model(Character)  # same fields, from annotations
    """

    def __init__(
        self,
        fields: Iterable[Union[FieldSchema, Tuple[str, TypeSpec]]],
        model_class: Optional[Type[BaseModel]] = None,
        name: Optional[str] = None,
    ) -> None:
        """Initialize a schema from ordered fields.

        Args:
            fields: FieldSchema objects or (name, TypeSpec) tuples, in wire order
            model_class: Pydantic model to build when decoding, or None for dicts
            name: Display name (defaults to the model class name)
        """
        self.model_class = model_class
        self.name = name or (model_class.__name__ if model_class is not None else "record")
        self.fields: List[FieldSchema] = []
        seen: set[str] = set()
        for item in fields:
            field = item if isinstance(item, FieldSchema) else FieldSchema(*item)
            if field.name in seen:
                raise SchemaError(f"{self.name}: duplicate field name {field.name!r}")
            if not isinstance(field.spec, TypeSpec):
                raise SchemaError(f"{self.name}.{field.name}: expected TypeSpec, got {field.spec!r}")
            seen.add(field.name)
            self.fields.append(field)

    def __len__(self) -> int:
        return len(self.fields)

    def __repr__(self) -> str:
        inner = ", ".join(f"{f.name}: {f.spec.label}" for f in self.fields)
        return f"MessageSchema({self.name} {{{inner}}})"

    @classmethod
    def from_model(cls, model_class: Type[BaseModel]) -> MessageSchema:
        """Create a schema from a Pydantic model.

        Fields are taken in declaration order. Integer and float widths come
        from ``FixedInt`` / ``FixedFloat`` metadata and default to 64 bits.

        Args:
            model_class: Pydantic model class

        Returns:
            MessageSchema instance

        Raises:
            SchemaError: If a field annotation has no wire representation
        """
        if not (isinstance(model_class, type) and issubclass(model_class, BaseModel)):
            raise SchemaError(f"{model_class!r} is not a Pydantic model class")

        fields = []
        for field_name, field_info in model_class.model_fields.items():
            annotation = field_info.annotation
            if annotation is None:
                raise SchemaError(f"Field {field_name} has no type annotation")
            spec = _spec_for_annotation(annotation, _wire_metadata(field_info), field_name)
            fields.append(FieldSchema(field_name, spec))
        return cls(fields, model_class=model_class)


def _wire_metadata(field_info: FieldInfo) -> dict[str, Any]:
    extra = field_info.json_schema_extra
    if isinstance(extra, dict):
        return {k: extra[k] for k in ("bits", "signed") if k in extra}
    return {}


def _spec_for_annotation(annotation: Any, meta: dict[str, Any], name: str) -> TypeSpec:
    origin = get_origin(annotation)
    args = get_args(annotation)

    # Optional[T] / T | None
    if origin is Union or (hasattr(types, "UnionType") and origin is types.UnionType):
        non_none = [arg for arg in args if arg is not type(None)]
        if len(non_none) == 1 and len(args) == 2:
            return _spec_for_annotation(non_none[0], meta, name).optional()
        raise SchemaError(f"Field {name}: complex Union types not supported")

    if origin in (list, List):
        element = _spec_for_annotation(args[0], {}, name) if args else ANY
        return array_of(element)

    if origin is dict:
        key = _spec_for_annotation(args[0], {}, name) if args else ANY
        value = _spec_for_annotation(args[1], {}, name) if len(args) > 1 else ANY
        return map_of(key, value)

    if annotation is Any:
        return ANY
    if annotation is bool:
        return BOOL
    if annotation is int:
        return int_spec(meta.get("bits", 64), meta.get("signed", True))
    if annotation is float:
        return float_spec(meta.get("bits", 64))
    if annotation is str:
        return STR
    if annotation is bytes:
        return BIN
    if annotation is ExtType:
        return EXT
    if origin is None and isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return record_of(MessageSchema.from_model(annotation))

    raise SchemaError(
        f"Field {name}: unsupported type {annotation!r}. "
        f"Supported: bool, int, float, str, bytes, ExtType, models, list, dict, Optional."
    )


def spec_for_value(value: Any) -> TypeSpec:
    """Infer a descriptor for a Python value with no declared type.

    Integers get a 64-bit declared width: INT64 when negative, UINT64 otherwise.
    Floats are FLOAT64. Lists, tuples and dicts get ANY element descriptors so
    each item is inferred in turn.

    Raises:
        EncodeError: If the value has no wire representation
    """
    if value is None:
        return NIL
    if isinstance(value, bool):
        return BOOL
    if isinstance(value, int):
        return INT64 if value < 0 else UINT64
    if isinstance(value, float):
        return FLOAT64
    if isinstance(value, str):
        return STR
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BIN
    if isinstance(value, ExtType):
        return EXT
    if isinstance(value, Value):
        return ANY
    if isinstance(value, BaseModel):
        return record_of(MessageSchema.from_model(type(value)))
    if isinstance(value, (list, tuple)):
        return array_of(ANY)
    if isinstance(value, dict):
        return map_of(ANY, ANY)
    raise EncodeError(f"Cannot encode value of type {type(value).__name__}")
