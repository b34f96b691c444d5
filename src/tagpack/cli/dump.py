"""Dump CLI command: decode a file of concatenated messages."""

from __future__ import annotations

from pathlib import Path

from ..codec.decoder import Decoder
from ..codec.value import Value, ValueKind


def dump_file(file_path: Path) -> int:
    """Print every value found in a file of encoded messages.

    Args:
        file_path: Path to a file holding one or more encoded messages

    Returns:
        Number of top-level values printed

    Raises:
        DecodeError: If the file is truncated or malformed
    """
    count = 0
    with open(file_path, "rb") as stream, Decoder(stream) as decoder:
        for value in decoder.iter_dynamic():
            print(format_value(value))
            count += 1
    return count


def format_value(value: Value, indent: int = 0) -> str:
    """Render a dynamic value as indented text."""
    pad = "  " * indent
    kind = value.kind
    if kind is ValueKind.ARRAY:
        lines = [f"{pad}array[{len(value.data)}]"]
        lines.extend(format_value(item, indent + 1) for item in value.data)
        return "\n".join(lines)
    if kind is ValueKind.MAP:
        lines = [f"{pad}map[{len(value.data)}]"]
        for key, item in value.data:
            lines.append(format_value(key, indent + 1))
            lines.append(format_value(item, indent + 2))
        return "\n".join(lines)
    if kind is ValueKind.RAW:
        return f"{pad}str {bytes(value.data).decode('utf-8', errors='replace')!r}"
    if kind is ValueKind.BIN:
        return f"{pad}bin {bytes(value.data).hex()}"
    if kind is ValueKind.EXT:
        return f"{pad}ext({value.data.type_id}) {bytes(value.data.data).hex()}"
    if kind is ValueKind.NIL:
        return f"{pad}nil"
    return f"{pad}{kind.value} {value.data!r}"
