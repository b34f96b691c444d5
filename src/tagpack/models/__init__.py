"""Pydantic message modeling for tagpack.

This module provides the BaseMessage class and field helpers for declaring
the wire width of numeric fields.
"""

from __future__ import annotations

from .base import BaseMessage
from .fields import FixedFloat, FixedInt

__all__ = [
    "BaseMessage",
    "FixedInt",
    "FixedFloat",
]
