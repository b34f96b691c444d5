#!/usr/bin/env python3
"""Basic usage example for tagpack.

This example demonstrates:
1. Defining record messages with Pydantic
2. Encoding to self-describing binary
3. Decoding back to a Pydantic model
4. Reading the same bytes without a schema
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from tagpack import BaseMessage, Decoder, FixedFloat, FixedInt, decode, encode, field_sizes, unpack


class Character(BaseMessage):
    """Game character position and identity."""

    x: float = FixedFloat(bits=32, description="Horizontal position")
    y: float = FixedFloat(bits=32, description="Vertical position")
    name: str = Field(description="Display name")
    id: int = FixedInt(bits=64, signed=False, description="Unique character id")


class Party(BaseMessage):
    """A group of characters with a shared inventory."""

    leader: Character
    members: list[str]
    gold: int = FixedInt(bits=32, signed=False)
    inventory: dict[str, int]
    motto: Optional[str] = None


def main() -> None:
    """Run the basic usage example."""
    print("=" * 60)
    print("tagpack Basic Usage Example")
    print("=" * 60)
    print()

    # Create a message instance
    print("1. Creating a character record...")
    msg = Character(x=3.5, y=6123.25, name="Ziggy", id=2**64 - 1)

    print(f"   Position: ({msg.x}, {msg.y})")
    print(f"   Name: {msg.name}")
    print(f"   Id: {msg.id}")
    print()

    # Analyze field sizes
    print("2. Analyzing field sizes...")
    sizes = field_sizes(msg)
    for field_name, size in sizes.items():
        print(f"   {field_name}: {size} bytes")
    print(f"   Total (with array header): {sum(sizes.values()) + 1} bytes")
    print()

    # Encode the message
    print("3. Encoding...")
    encoded_data = encode(msg)

    print(f"   Encoded size: {len(encoded_data)} bytes")
    print(f"   Hex: {encoded_data.hex()}")
    print()

    # Decode the message
    print("4. Decoding with the model...")
    decoded_msg = decode(Character, encoded_data)
    print(f"   {decoded_msg!r}")
    if decoded_msg == msg:
        print("   ✓ Round-trip successful! Messages match.")
    else:
        print("   ✗ Round-trip failed! Messages don't match.")
    print()

    # Decode without a schema
    print("5. Decoding without a schema...")
    print(f"   {unpack(encoded_data)}")
    with Decoder(encoded_data) as decoder:
        value = decoder.decode_dynamic()
        print(f"   {value.kind.value} of {len(value.data)} elements")
    print()

    # Nested records
    print("6. Nested records...")
    party = Party(leader=msg, members=["Ziggy", "Stardust"], gold=70000, inventory={"rope": 2})
    party_data = encode(party)
    print(f"   Encoded size: {len(party_data)} bytes")
    print(f"   Round-trip: {decode(Party, party_data) == party}")
    print()

    # Compare to JSON
    print("7. Comparing to JSON encoding...")
    json_bytes = msg.model_dump_json().encode("utf-8")
    print(f"   tagpack size: {len(encoded_data)} bytes")
    print(f"   JSON size: {len(json_bytes)} bytes")
    print()

    print("=" * 60)
    print("Example complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
