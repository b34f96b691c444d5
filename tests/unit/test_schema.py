"""Tests for type descriptors, model schemas and size helpers."""

from __future__ import annotations

from typing import Any, Optional

import pytest
from pydantic import ValidationError

from tagpack import (
    ANY,
    BIN,
    BOOL,
    FLOAT32,
    INT16,
    INT64,
    STR,
    UINT8,
    UINT16,
    UINT64,
    BaseMessage,
    DecodeError,
    ExtType,
    FixedFloat,
    FixedInt,
    MessageSchema,
    SchemaError,
    TypeSpec,
    Value,
    ValueKind,
    array_of,
    encoded_size,
    field_sizes,
    int_spec,
    map_of,
)
from tagpack.codec.tags import Kind


class Character(BaseMessage):
    """Game character record."""

    x: float = FixedFloat(bits=32)
    y: float = FixedFloat(bits=32)
    name: str
    id: int = FixedInt(bits=64, signed=False)


class Everything(BaseMessage):
    """Record using every supported annotation."""

    flag: bool
    small: int = FixedInt(bits=16)
    big: int
    ratio: float
    label: str
    blob: bytes
    items: list[str]
    table: dict[str, float]
    maybe: Optional[int] = FixedInt(bits=8, signed=False, default=None)
    child: Optional[Character] = None
    anything: Any = None


class TestTypeSpec:
    """Test type descriptors."""

    def test_bounds(self) -> None:
        """Test integer ranges derived from width and signedness."""
        assert (UINT8.min_value, UINT8.max_value) == (0, 255)
        assert (INT16.min_value, INT16.max_value) == (-32768, 32767)
        assert UINT64.max_value == 2**64 - 1
        assert INT64.min_value == -(2**63)

    def test_invalid_width(self) -> None:
        """Test unsupported widths raise SchemaError."""
        with pytest.raises(SchemaError):
            int_spec(24)
        with pytest.raises(SchemaError):
            TypeSpec(Kind.FLOAT, 16)

    def test_labels(self) -> None:
        """Test human-readable descriptor names."""
        assert UINT16.label == "uint16"
        assert FLOAT32.label == "float32"
        assert array_of(STR).label == "array<str>"
        assert map_of(STR, INT64).label == "map<str, int64>"
        assert UINT8.optional().label == "uint8?"
        assert ANY.label == "any"

    def test_optional_copy(self) -> None:
        """Test optional() leaves the original untouched."""
        nullable = UINT8.optional()
        assert nullable.nullable
        assert not UINT8.nullable
        assert nullable.bits == 8


class TestMessageSchema:
    """Test record schemas."""

    def test_from_model(self) -> None:
        """Test every supported annotation maps to a descriptor."""
        schema = Everything.tagpack_schema()
        specs = {f.name: f.spec for f in schema.fields}
        assert specs["flag"] == BOOL
        assert specs["small"] == INT16
        assert specs["big"] == INT64
        assert specs["ratio"].label == "float64"
        assert specs["label"] == STR
        assert specs["blob"] == BIN
        assert specs["items"] == array_of(STR)
        assert specs["table"].label == "map<str, float64>"
        assert specs["maybe"].label == "uint8?"
        assert specs["child"].label == "record<Character>?"
        assert specs["anything"] is ANY

    def test_field_order(self) -> None:
        """Test fields keep declaration order."""
        assert [f.name for f in Everything.tagpack_schema().fields][:3] == ["flag", "small", "big"]

    def test_repr(self) -> None:
        """Test schema repr lists fields with their types."""
        assert repr(Character.tagpack_schema()) == (
            "MessageSchema(Character {x: float32, y: float32, name: str, id: uint64})"
        )

    def test_duplicate_field(self) -> None:
        """Test duplicate field names are refused."""
        with pytest.raises(SchemaError, match="duplicate field"):
            MessageSchema([("a", UINT8), ("a", STR)])

    def test_non_spec_field(self) -> None:
        """Test fields must carry a TypeSpec."""
        with pytest.raises(SchemaError):
            MessageSchema([("a", int)])  # type: ignore[list-item]

    def test_unsupported_annotation(self) -> None:
        """Test annotations with no wire form raise SchemaError."""

        class Bad(BaseMessage):
            when: set[int]

        with pytest.raises(SchemaError, match="unsupported type"):
            Bad.tagpack_schema()

    def test_complex_union(self) -> None:
        """Test unions other than Optional are refused."""

        class Bad(BaseMessage):
            either: int | str

        with pytest.raises(SchemaError, match="Union"):
            Bad.tagpack_schema()

    def test_not_a_model(self) -> None:
        """Test from_model rejects non-model classes."""
        with pytest.raises(SchemaError):
            MessageSchema.from_model(dict)  # type: ignore[arg-type]


class TestFieldHelpers:
    """Test FixedInt/FixedFloat field helpers."""

    def test_fixed_int_bounds(self) -> None:
        """Test Pydantic enforces the declared width."""
        with pytest.raises(ValidationError):
            Character(x=0.0, y=0.0, name="", id=-1)
        with pytest.raises(ValidationError):
            Character(x=0.0, y=0.0, name="", id=2**64)

    def test_invalid_helper_width(self) -> None:
        """Test helpers validate their width."""
        with pytest.raises(SchemaError):
            FixedInt(bits=7)
        with pytest.raises(SchemaError):
            FixedFloat(bits=16)

    def test_extra_fields_forbidden(self) -> None:
        """Test messages reject unknown fields."""
        with pytest.raises(ValidationError):
            Character(x=0.0, y=0.0, name="", id=1, hp=5)


class TestValue:
    """Test dynamic values."""

    def test_to_python(self) -> None:
        """Test conversion of nested values."""
        value = Value(
            ValueKind.MAP,
            (
                (Value(ValueKind.RAW, b"k"), Value(ValueKind.ARRAY, (Value(ValueKind.INT, -1),))),
                (Value(ValueKind.RAW, b"b"), Value(ValueKind.BIN, b"\x00")),
            ),
        )
        assert value.to_python() == {"k": [-1], "b": b"\x00"}

    def test_unhashable_key(self) -> None:
        """Test maps keyed by arrays cannot become dicts."""
        key = Value(ValueKind.ARRAY, ())
        value = Value(ValueKind.MAP, ((key, Value(ValueKind.NIL)),))
        with pytest.raises(DecodeError, match="not hashable"):
            value.to_python()

    def test_is_nil(self) -> None:
        """Test the nil check."""
        assert Value(ValueKind.NIL).is_nil
        assert not Value(ValueKind.BOOL, False).is_nil

    def test_ext_equality(self) -> None:
        """Test extension values compare by content."""
        assert ExtType(1, b"ab") == ExtType(1, memoryview(b"ab"))
        assert ExtType(1, b"ab") != ExtType(2, b"ab")
        assert hash(ExtType(1, b"ab")) == hash(ExtType(1, bytearray(b"ab")))


class TestSizing:
    """Test size helpers."""

    def test_encoded_size(self) -> None:
        """Test sizes of simple values."""
        assert encoded_size("x" * 10) == 11
        assert encoded_size(300, UINT16) == 3
        assert encoded_size(5, UINT64) == 1
        assert encoded_size(None) == 1

    def test_record_size(self) -> None:
        """Test the size of a record matches its encoding."""
        msg = Character(x=3.5, y=6123.25, name="Ziggy", id=7)
        assert encoded_size(msg) == 1 + 5 + 5 + 6 + 1

    def test_field_sizes(self) -> None:
        """Test per-field sizes."""
        msg = Character(x=3.5, y=6123.25, name="Ziggy", id=2**64 - 1)
        assert field_sizes(msg) == {"x": 5, "y": 5, "name": 6, "id": 9}
