"""Base message class and tagpack-specific Pydantic configuration.

This module provides the BaseMessage class that record messages should inherit from.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from ..codec.schema import MessageSchema


class BaseMessage(BaseModel):
    """Base class for tagpack record messages.

    A message is encoded as an array holding its fields in declaration order.
    Field annotations select the wire type; ``FixedInt`` and ``FixedFloat``
    declare numeric widths (integers default to int64, floats to float64).

    Example:
        >>> class Character(BaseMessage):
        ...     x: float = FixedFloat(bits=32)
        ...     y: float = FixedFloat(bits=32)
        ...     name: str
        ...     id: int = FixedInt(bits=64, signed=False)
        >>> Character.tagpack_schema()
        MessageSchema(Character {x: float32, y: float32, name: str, id: uint64})
    """

    model_config = ConfigDict(
        # Lax validation: ints are accepted for float fields
        strict=False,
        # Allow ExtType fields
        arbitrary_types_allowed=True,
        # Validate on assignment
        validate_assignment=True,
        # Forbid extra fields not defined in schema
        extra="forbid",
    )

    @classmethod
    def tagpack_schema(cls) -> MessageSchema:
        """Return the wire schema derived from this model's fields."""
        return MessageSchema.from_model(cls)
