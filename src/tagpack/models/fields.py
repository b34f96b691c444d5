"""Field type helpers.

This module provides convenience functions for declaring the wire width of
numeric message fields. The width travels as ``json_schema_extra`` metadata
and is read back by ``MessageSchema.from_model``.
"""

from __future__ import annotations

from typing import Any, cast

from pydantic import Field
from pydantic.fields import FieldInfo

from ..codec.tags import float_tag, int_tag


def FixedInt(*, bits: int, signed: bool = True, **kwargs: Any) -> FieldInfo:
    """Create a fixed-width integer field.

    Pydantic enforces the width's range (ge=/le=) at construction time, and the
    encoder writes values outside the fixint ranges with the explicit tag of
    exactly this width and signedness.

    Args:
        bits: Number of bits (8, 16, 32 or 64)
        signed: Whether the integer is signed (default True)
        **kwargs: Additional Field() arguments (description, default, etc.)

    Returns:
        Pydantic FieldInfo suitable for use as a field default/metadata.

    Example:
        >>> class Message(BaseMessage):
        ...     temperature: int = FixedInt(bits=16)
        ...     hp: Annotated[int, FixedInt(bits=64, signed=False)]
    """
    int_tag(bits, signed)  # validates the width
    if signed:
        ge, le = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    else:
        ge, le = 0, (1 << bits) - 1
    return cast(
        FieldInfo,
        Field(ge=ge, le=le, json_schema_extra={"bits": bits, "signed": signed}, **kwargs),
    )


def FixedFloat(*, bits: int = 64, **kwargs: Any) -> FieldInfo:
    """Create an IEEE-754 float field of the given width.

    Args:
        bits: 32 or 64 (default 64)
        **kwargs: Additional Field() arguments

    Returns:
        Pydantic FieldInfo suitable for use as a field default/metadata.

    Note:
        float32 fields hold Python floats; values are rounded to the nearest
        float32 on encode, so only float32-representable values round-trip
        exactly.
    """
    float_tag(bits)
    return cast(FieldInfo, Field(json_schema_extra={"bits": bits}, **kwargs))
