"""Exception hierarchy for tagpack.

This module defines all custom exceptions used throughout the package.
All exceptions inherit from TagpackError for easy catching of any tagpack-specific error.

Decoders treat every input as untrusted: each failure below is raised as a
regular exception and leaves the process free to continue with the next message.
"""

from __future__ import annotations


class TagpackError(Exception):
    """Base exception for all tagpack errors."""

    pass


class SchemaError(TagpackError):
    """Raised when a type descriptor or message schema is invalid.

    Examples:
        - Unsupported field annotation on a model
        - Integer width other than 8/16/32/64
        - Float width other than 32/64
    """

    pass


class EncodeError(TagpackError):
    """Raised when a value cannot be encoded.

    Examples:
        - Integer out of range for its declared width
        - String, binary or container longer than 2**32 - 1
        - Extension type id outside -128..127
        - Duplicate key in a map given as key/value pairs
    """

    pass


class SinkFailure(EncodeError):
    """Raised when the underlying sink reports a write failure."""

    pass


class DecodeError(TagpackError):
    """Raised when decoding binary data fails.

    Examples:
        - Truncated data (insufficient bytes)
        - Unknown tag byte
        - Tag does not match the requested destination type
        - Record field count mismatch
    """

    pass


class SourceFailure(DecodeError):
    """Raised when the underlying source reports a read failure."""

    pass


class SourceExhausted(SourceFailure):
    """Raised when fewer bytes remain than a declared length requires.

    Attributes:
        needed: Number of bytes the decoder asked for
        available: Number of bytes the source could supply
    """

    def __init__(self, needed: int, available: int) -> None:
        super().__init__(f"Truncated data: need {needed} bytes, have {available}")
        self.needed = needed
        self.available = available


class MalformedTag(DecodeError):
    """Raised when a leading byte matches no explicit tag and no fixed range."""

    def __init__(self, byte: int) -> None:
        super().__init__(f"Malformed tag byte {byte:#04x}")
        self.byte = byte


class TypeMismatch(DecodeError):
    """Raised when a decoded tag does not match the requested destination.

    A mismatch is never coerced: a uint32 tag read into a uint8 destination
    raises instead of truncating.
    """

    pass


class LengthMismatch(DecodeError):
    """Raised when a record's element count differs from its field count."""

    def __init__(self, expected: int, actual: int, name: str = "record") -> None:
        super().__init__(f"{name}: expected {expected} elements, decoded count is {actual}")
        self.expected = expected
        self.actual = actual


class DuplicateKey(DecodeError):
    """Raised when a typed map decode encounters the same key twice."""

    pass


class NestingTooDeep(DecodeError):
    """Raised when dynamic decode exceeds the configured nesting depth."""

    pass


class AllocationFailure(DecodeError):
    """Raised when the scratch region cannot grow to hold a payload."""

    pass
