"""Format tag catalog.

Every encoded value starts with one tag byte that says what the value is and
how long it is. Two tag styles share the byte space without overlapping:

- fixed-range tags pack the type and a small value/length into the byte
  (positive fixint, fixmap, fixarray, fixstr, negative fixint)
- explicit tags are single byte values followed by a fixed-width payload or
  a big-endian length prefix

``classify()`` is the only place that turns a byte into a ``TagInfo``. Both the
typed and the dynamic decode paths go through it.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from ..exceptions import MalformedTag, SchemaError


class FormatTag(enum.IntEnum):
    """Explicit (single byte) format tags."""

    NIL = 0xC0
    NEVER_USED = 0xC1
    FALSE = 0xC2
    TRUE = 0xC3
    BIN8 = 0xC4
    BIN16 = 0xC5
    BIN32 = 0xC6
    EXT8 = 0xC7
    EXT16 = 0xC8
    EXT32 = 0xC9
    FLOAT32 = 0xCA
    FLOAT64 = 0xCB
    UINT8 = 0xCC
    UINT16 = 0xCD
    UINT32 = 0xCE
    UINT64 = 0xCF
    INT8 = 0xD0
    INT16 = 0xD1
    INT32 = 0xD2
    INT64 = 0xD3
    FIXEXT1 = 0xD4
    FIXEXT2 = 0xD5
    FIXEXT4 = 0xD6
    FIXEXT8 = 0xD7
    FIXEXT16 = 0xD8
    STR8 = 0xD9
    STR16 = 0xDA
    STR32 = 0xDB
    ARRAY16 = 0xDC
    ARRAY32 = 0xDD
    MAP16 = 0xDE
    MAP32 = 0xDF


class FixedRange(enum.Enum):
    """Fixed-range tag families as (prefix, mask) pairs.

    A byte belongs to a family when ``byte & mask == prefix``; the bits outside
    the mask carry the embedded value.
    """

    POS_FIXINT = (0x00, 0x80)
    FIXMAP = (0x80, 0xF0)
    FIXARRAY = (0x90, 0xF0)
    FIXSTR = (0xA0, 0xE0)
    NEG_FIXINT = (0xE0, 0xE0)

    @property
    def prefix(self) -> int:
        return self.value[0]

    @property
    def mask(self) -> int:
        return self.value[1]

    @property
    def limit(self) -> int:
        """Largest value that fits in the low bits."""
        return ~self.mask & 0xFF

    def matches(self, byte: int) -> bool:
        return byte & self.mask == self.prefix

    def pack(self, low: int) -> int:
        """Build a tag byte from the family prefix and an embedded value."""
        return self.prefix | (low & self.limit)


class Kind(enum.Enum):
    """Semantic kind of an encoded value."""

    NIL = "nil"
    BOOL = "bool"
    UINT = "uint"
    INT = "int"
    FLOAT = "float"
    STR = "str"
    BIN = "bin"
    ARRAY = "array"
    MAP = "map"
    EXT = "ext"


class LengthRule(enum.Enum):
    """How the size of a value's payload is resolved from its tag."""

    EMBEDDED = "embedded"  # value, length or count in the tag's low bits
    PREFIXED = "prefixed"  # read ``width`` bytes as a big-endian length
    FIXED = "fixed"  # payload is exactly ``width`` bytes (0 for nil/bool)


@dataclass(frozen=True)
class TagInfo:
    """Classification of one tag byte.

    Attributes:
        byte: The tag byte itself
        kind: Semantic kind
        rule: Length resolution rule
        width: Bytes consumed by the rule (length prefix or fixed payload)
        embedded: Value, length or count carried in the tag (EMBEDDED only)
        signed: Whether an integer payload is two's complement
    """

    byte: int
    kind: Kind
    rule: LengthRule
    width: int = 0
    embedded: int = 0
    signed: bool = False

    @property
    def name(self) -> str:
        try:
            return FormatTag(self.byte).name.lower()
        except ValueError:
            for family in FixedRange:
                if family.matches(self.byte):
                    return family.name.lower()
            return hex(self.byte)

    @property
    def bits(self) -> int:
        """Payload width in bits for fixed-width numeric tags."""
        return self.width * 8


_EXPLICIT: dict[int, TagInfo] = {
    tag: TagInfo(tag, kind, rule, width, signed=signed)
    for tag, kind, rule, width, signed in (
        (FormatTag.NIL, Kind.NIL, LengthRule.FIXED, 0, False),
        (FormatTag.FALSE, Kind.BOOL, LengthRule.FIXED, 0, False),
        (FormatTag.TRUE, Kind.BOOL, LengthRule.FIXED, 0, False),
        (FormatTag.BIN8, Kind.BIN, LengthRule.PREFIXED, 1, False),
        (FormatTag.BIN16, Kind.BIN, LengthRule.PREFIXED, 2, False),
        (FormatTag.BIN32, Kind.BIN, LengthRule.PREFIXED, 4, False),
        (FormatTag.EXT8, Kind.EXT, LengthRule.PREFIXED, 1, False),
        (FormatTag.EXT16, Kind.EXT, LengthRule.PREFIXED, 2, False),
        (FormatTag.EXT32, Kind.EXT, LengthRule.PREFIXED, 4, False),
        (FormatTag.FLOAT32, Kind.FLOAT, LengthRule.FIXED, 4, False),
        (FormatTag.FLOAT64, Kind.FLOAT, LengthRule.FIXED, 8, False),
        (FormatTag.UINT8, Kind.UINT, LengthRule.FIXED, 1, False),
        (FormatTag.UINT16, Kind.UINT, LengthRule.FIXED, 2, False),
        (FormatTag.UINT32, Kind.UINT, LengthRule.FIXED, 4, False),
        (FormatTag.UINT64, Kind.UINT, LengthRule.FIXED, 8, False),
        (FormatTag.INT8, Kind.INT, LengthRule.FIXED, 1, True),
        (FormatTag.INT16, Kind.INT, LengthRule.FIXED, 2, True),
        (FormatTag.INT32, Kind.INT, LengthRule.FIXED, 4, True),
        (FormatTag.INT64, Kind.INT, LengthRule.FIXED, 8, True),
        (FormatTag.FIXEXT1, Kind.EXT, LengthRule.FIXED, 1, False),
        (FormatTag.FIXEXT2, Kind.EXT, LengthRule.FIXED, 2, False),
        (FormatTag.FIXEXT4, Kind.EXT, LengthRule.FIXED, 4, False),
        (FormatTag.FIXEXT8, Kind.EXT, LengthRule.FIXED, 8, False),
        (FormatTag.FIXEXT16, Kind.EXT, LengthRule.FIXED, 16, False),
        (FormatTag.STR8, Kind.STR, LengthRule.PREFIXED, 1, False),
        (FormatTag.STR16, Kind.STR, LengthRule.PREFIXED, 2, False),
        (FormatTag.STR32, Kind.STR, LengthRule.PREFIXED, 4, False),
        (FormatTag.ARRAY16, Kind.ARRAY, LengthRule.PREFIXED, 2, False),
        (FormatTag.ARRAY32, Kind.ARRAY, LengthRule.PREFIXED, 4, False),
        (FormatTag.MAP16, Kind.MAP, LengthRule.PREFIXED, 2, False),
        (FormatTag.MAP32, Kind.MAP, LengthRule.PREFIXED, 4, False),
    )
}

_RANGE_KINDS: dict[FixedRange, Kind] = {
    FixedRange.POS_FIXINT: Kind.INT,
    FixedRange.FIXMAP: Kind.MAP,
    FixedRange.FIXARRAY: Kind.ARRAY,
    FixedRange.FIXSTR: Kind.STR,
    FixedRange.NEG_FIXINT: Kind.INT,
}


def _classify_uncached(byte: int) -> TagInfo | None:
    explicit = _EXPLICIT.get(byte)
    if explicit is not None:
        return explicit

    for family, kind in _RANGE_KINDS.items():
        if family.matches(byte):
            low = byte & family.limit
            if family is FixedRange.NEG_FIXINT:
                # Sign-extend the low five bits: 0xE0 -> -32, 0xFF -> -1
                return TagInfo(byte, kind, LengthRule.EMBEDDED, embedded=byte - 0x100, signed=True)
            return TagInfo(byte, kind, LengthRule.EMBEDDED, embedded=low)

    return None


_TABLE: tuple[TagInfo | None, ...] = tuple(_classify_uncached(b) for b in range(0x100))


def classify(byte: int) -> TagInfo:
    """Classify a leading byte.

    Explicit tags take priority over the fixed-range masks, so every byte has
    exactly one classification.

    Args:
        byte: Leading byte (0-255)

    Returns:
        TagInfo describing kind and length rule

    Raises:
        MalformedTag: If the byte is reserved (0xC1) or not a byte at all

    Example:
        >>> classify(0xA5).kind, classify(0xA5).embedded
        (<Kind.STR: 'str'>, 5)
        >>> classify(0xCD).width
        2
    """
    if not 0 <= byte <= 0xFF:
        raise MalformedTag(byte)
    info = _TABLE[byte]
    if info is None:
        raise MalformedTag(byte)
    return info


_INT_TAGS: dict[tuple[int, bool], FormatTag] = {
    (8, False): FormatTag.UINT8,
    (16, False): FormatTag.UINT16,
    (32, False): FormatTag.UINT32,
    (64, False): FormatTag.UINT64,
    (8, True): FormatTag.INT8,
    (16, True): FormatTag.INT16,
    (32, True): FormatTag.INT32,
    (64, True): FormatTag.INT64,
}

_FLOAT_TAGS: dict[int, FormatTag] = {
    32: FormatTag.FLOAT32,
    64: FormatTag.FLOAT64,
}


def int_tag(bits: int, signed: bool) -> FormatTag:
    """Return the explicit integer tag for a declared width and signedness."""
    try:
        return _INT_TAGS[(bits, signed)]
    except KeyError:
        raise SchemaError(f"Unsupported integer width: {bits} bits") from None


def float_tag(bits: int) -> FormatTag:
    """Return the explicit float tag for a declared width."""
    try:
        return _FLOAT_TAGS[bits]
    except KeyError:
        raise SchemaError(f"Unsupported float width: {bits} bits (expected 32 or 64)") from None
