"""Dynamic values produced by schema-less decode."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import Any, Union

from ..exceptions import DecodeError, DuplicateKey, EncodeError


@dataclass(frozen=True)
class ExtType:
    """Extension value: an application-defined type id plus opaque bytes.

    Attributes:
        type_id: Signed type identifier (-128..127); negative ids are reserved
            for predefined extensions
        data: Payload bytes (a scratch-region view when produced by a decoder)
    """

    type_id: int
    data: Union[bytes, bytearray, memoryview]

    def __post_init__(self) -> None:
        if not isinstance(self.type_id, int) or not -128 <= self.type_id <= 127:
            raise EncodeError(f"Extension type id must be -128..127, got {self.type_id!r}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExtType):
            return NotImplemented
        return self.type_id == other.type_id and bytes(self.data) == bytes(other.data)

    def __hash__(self) -> int:
        return hash((self.type_id, bytes(self.data)))


class ValueKind(enum.Enum):
    """Variant tag of a dynamic Value."""

    NIL = "nil"
    BOOL = "bool"
    INT = "int"  # signed 64-bit
    UINT = "uint"  # unsigned 64-bit
    FLOAT = "float"  # 64-bit
    RAW = "raw"  # string payload bytes
    BIN = "bin"
    ARRAY = "array"
    MAP = "map"
    EXT = "ext"


@dataclass(frozen=True, eq=False)
class Value:
    """Tagged union returned by ``Decoder.decode_dynamic()``.

    ``RAW``, ``BIN`` and ``EXT`` payloads are views into the decoder's scratch
    region and become invalid when the decoder is closed; ``to_python()``
    copies everything out.

    Attributes:
        kind: Which variant this is
        data: None, bool, int, float, memoryview, ExtType, a tuple of Values
            (ARRAY) or a tuple of (key, value) Value pairs (MAP)
    """

    kind: ValueKind
    data: Any = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        if self.kind is not other.kind:
            return False
        if self.kind is ValueKind.FLOAT:
            # Bit pattern, so NaN == NaN and 0.0 != -0.0
            return _float_key(self.data) == _float_key(other.data)
        return self.data == other.data

    __hash__ = None  # type: ignore[assignment]

    @property
    def is_nil(self) -> bool:
        return self.kind is ValueKind.NIL

    def to_python(self) -> Any:
        """Copy this value out into plain Python objects.

        Strings become ``str``, binary payloads ``bytes``, arrays ``list`` and
        maps ``dict`` (in wire order).

        Raises:
            DecodeError: If a string is not valid UTF-8 or a map key is unhashable
            DuplicateKey: If a map repeats a key
        """
        kind = self.kind
        if kind is ValueKind.RAW:
            try:
                return str(self.data, "utf-8")
            except UnicodeDecodeError as e:
                raise DecodeError(f"Invalid UTF-8 string payload: {e}") from e
        if kind is ValueKind.BIN:
            return bytes(self.data)
        if kind is ValueKind.EXT:
            return ExtType(self.data.type_id, bytes(self.data.data))
        if kind is ValueKind.ARRAY:
            return [item.to_python() for item in self.data]
        if kind is ValueKind.MAP:
            result: dict[Any, Any] = {}
            for key, item in self.data:
                py_key = key.to_python()
                try:
                    duplicate = py_key in result
                except TypeError as e:
                    raise DecodeError(f"Map key {py_key!r} is not hashable") from e
                if duplicate:
                    raise DuplicateKey(f"duplicate map key {py_key!r}")
                result[py_key] = item.to_python()
            return result
        return self.data


NIL = Value(ValueKind.NIL)


def _float_key(value: float) -> bytes:
    return struct.pack(">d", value)
