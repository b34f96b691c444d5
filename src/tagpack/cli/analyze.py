"""Message analysis CLI command."""

from __future__ import annotations

import importlib.util
import sys
from pathlib import Path
from typing import Optional

from ..codec.schema import MessageSchema, TypeSpec
from ..codec.tags import Kind
from ..models.base import BaseMessage

_MODULE_NAME = "tagpack_analyzed"


def load_message_classes(file_path: Path) -> list[type[BaseMessage]]:
    """Import a Python file and return the BaseMessage classes it defines.

    Classes imported into the file from elsewhere are skipped. The result
    follows declaration order.
    """
    spec = importlib.util.spec_from_file_location(_MODULE_NAME, file_path)
    if spec is None or spec.loader is None:
        raise ValueError(f"Could not load module from {file_path}")

    module = importlib.util.module_from_spec(spec)
    # Pydantic resolves postponed annotations through sys.modules
    sys.modules[_MODULE_NAME] = module
    spec.loader.exec_module(module)

    return [
        obj
        for obj in vars(module).values()
        if isinstance(obj, type)
        and issubclass(obj, BaseMessage)
        and obj is not BaseMessage
        and obj.__module__ == _MODULE_NAME
    ]


def analyze_file(file_path: Path) -> None:
    """Print the wire layout of every message class in a Python file.

    Args:
        file_path: Path to Python file containing message definitions
    """
    message_classes = load_message_classes(file_path)
    if not message_classes:
        print(f"No BaseMessage classes found in {file_path}")
        return

    count = len(message_classes)
    print("|" * 7, "tagpack: self-describing binary codec", "|" * 7)
    print(f"{count} message{'s' if count != 1 else ''} loaded.")
    print("Field sizes are in bytes, tag included.")
    print()

    for msg_class in message_classes:
        analyze_message_class(msg_class)


def field_size_range(spec: TypeSpec) -> tuple[int, Optional[int]]:
    """Return (minimum, maximum) encoded size of a field; maximum None if unbounded.

    Example:
        >>> field_size_range(UINT16)
        (1, 3)
    """
    minimum = 1
    if spec.kind in (Kind.NIL, Kind.BOOL):
        maximum: Optional[int] = 1
    elif spec.kind in (Kind.INT, Kind.UINT):
        maximum = 1 + spec.bits // 8
    elif spec.kind is Kind.FLOAT:
        minimum = maximum = 1 + spec.bits // 8
    elif spec.kind is Kind.BIN:
        minimum, maximum = 2, None
    elif spec.kind is Kind.EXT:
        # fixext1: tag, type id, one data byte
        minimum, maximum = 3, None
    elif spec.kind is Kind.ARRAY and spec.record is not None:
        minimum = maximum = _record_header_size(spec.record)
        for field in spec.record.fields:
            low, high = field_size_range(field.spec)
            minimum += low
            maximum = None if maximum is None or high is None else maximum + high
    else:
        maximum = None

    if spec.nullable:
        minimum = 1
    return minimum, maximum


def _record_header_size(schema: MessageSchema) -> int:
    count = len(schema)
    if count <= 15:
        return 1
    return 3 if count <= 0xFFFF else 5


def analyze_message_class(msg_class: type[BaseMessage]) -> None:
    """Analyze a single message class and print its wire layout.

    Args:
        msg_class: Message class to analyze
    """
    schema = msg_class.tagpack_schema()
    header = _record_header_size(schema)

    print(f"{'=' * 19} {msg_class.__name__} {'=' * 19}")

    minimum, maximum = header, header
    rows = []
    for i, field in enumerate(schema.fields, 1):
        low, high = field_size_range(field.spec)
        minimum += low
        maximum = None if maximum is None or high is None else maximum + high
        size = f"{low}" if low == high else f"{low}-{high if high is not None else '*'}"
        rows.append((f"{i}. {field.name}", field.spec.label, size))

    shown_max = maximum if maximum is not None else "unbounded"
    print(f"Encoded size: {minimum} to {shown_max} bytes")
    print(f"        array header{'.' * 26}{header}")
    print()

    print(f"{'-' * 28} Body {'-' * 28}")
    for desc, label, size in rows:
        text = f"{desc} ({label})"
        dots = "." * max(1, 54 - len(text) - len(size))
        print(f"        {text}{dots}{size}")

    print()
