"""Message size calculation utilities.

This module provides functions to calculate the encoded size of values
without materializing the encoded bytes.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel

from ..codec.encoder import Encoder
from ..codec.io import CountingSink
from ..codec.schema import MessageSchema, TypeSpec, record_of


def encoded_size(value: Any, spec: Optional[TypeSpec] = None) -> int:
    """Calculate the encoded size of a value in bytes.

    Sizes depend on field values: integers outside the fixint ranges, strings
    and containers grow with their contents.

    Args:
        value: Value to measure (model instance, scalar, list, dict, ...)
        spec: Declared wire type, or None to infer it

    Returns:
        Size in bytes

    Raises:
        SchemaError: If a model schema is invalid
        EncodeError: If the value cannot be encoded

    Example:
        >>> encoded_size("x" * 10)
        11
        >>> encoded_size(300, UINT16)
        3
    """
    if spec is None and isinstance(value, BaseModel):
        spec = record_of(MessageSchema.from_model(type(value)))
    sink = CountingSink()
    Encoder(sink).encode(value, spec)
    return sink.count


def field_sizes(message: BaseModel) -> dict[str, int]:
    """Get the encoded size in bytes of each field of a message instance.

    The record's array header is not included.

    Args:
        message: Message instance to analyze

    Returns:
        Dictionary mapping field names to their size in bytes

    Example:
        >>> field_sizes(Character(x=3.5, y=6123.25, name="Ziggy", id=7))
        {'x': 5, 'y': 5, 'name': 6, 'id': 1}
    """
    schema = MessageSchema.from_model(type(message))
    return {
        field.name: encoded_size(getattr(message, field.name), field.spec)
        for field in schema.fields
    }
