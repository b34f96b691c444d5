"""Property-based tests using hypothesis."""

from __future__ import annotations

import math
import struct

from hypothesis import given
from hypothesis import strategies as st

from tagpack import (
    FLOAT32,
    FLOAT64,
    INT8,
    INT16,
    INT32,
    INT64,
    UINT8,
    UINT16,
    UINT32,
    UINT64,
    BaseMessage,
    Decoder,
    FixedFloat,
    FixedInt,
    SourceExhausted,
    TagpackError,
    decode,
    encode,
    encoded_size,
    iter_unpack,
    unpack,
)
from tagpack.codec.tags import classify

INT_SPECS = [UINT8, UINT16, UINT32, UINT64, INT8, INT16, INT32, INT64]


class Character(BaseMessage):
    """Record for property testing."""

    x: float = FixedFloat(bits=32)
    y: float = FixedFloat(bits=32)
    name: str
    id: int = FixedInt(bits=64, signed=False)


float32_values = st.floats(width=32, allow_nan=False)

json_like = st.recursive(
    st.none()
    | st.booleans()
    | st.integers(min_value=-(2**63), max_value=2**64 - 1)
    | st.floats(allow_nan=False)
    | st.text()
    | st.binary(),
    lambda children: st.lists(children, max_size=20)
    | st.dictionaries(st.text(max_size=8), children, max_size=20),
    max_leaves=30,
)


@st.composite
def int_with_spec(draw):
    spec = draw(st.sampled_from(INT_SPECS))
    value = draw(st.integers(min_value=spec.min_value, max_value=spec.max_value))
    return value, spec


class TestCodecProperties:
    """Property-based tests for codec."""

    @given(pair=int_with_spec())
    def test_int_roundtrip(self, pair) -> None:
        """Test every in-range integer round-trips at its declared width."""
        value, spec = pair
        assert decode(spec, encode(value, spec)) == value

    @given(pair=int_with_spec())
    def test_int_size(self, pair) -> None:
        """Test integers take one byte as fixints, else tag plus declared width."""
        value, spec = pair
        data = encode(value, spec)
        if -31 <= value <= 127:
            assert len(data) == 1
        else:
            assert len(data) == 1 + spec.bits // 8

    @given(value=st.floats(allow_nan=True, allow_infinity=True))
    def test_float64_bits(self, value: float) -> None:
        """Test float64 round-trips bit for bit."""
        decoded = decode(FLOAT64, encode(value, FLOAT64))
        assert struct.pack(">d", decoded) == struct.pack(">d", value)

    @given(value=float32_values)
    def test_float32_roundtrip(self, value: float) -> None:
        """Test float32-representable values round-trip exactly."""
        decoded = decode(FLOAT32, encode(value, FLOAT32))
        assert decoded == value
        assert math.copysign(1.0, decoded) == math.copysign(1.0, value)

    @given(text=st.text())
    def test_str_roundtrip_and_size(self, text: str) -> None:
        """Test strings round-trip and use the smallest length tier."""
        data = encode(text)
        size = len(text.encode("utf-8"))
        header = 1 if size <= 31 else 2 if size <= 255 else 3 if size <= 65535 else 5
        assert len(data) == header + size
        assert unpack(data) == text

    @given(blob=st.binary(max_size=1000))
    def test_bin_roundtrip(self, blob: bytes) -> None:
        """Test binary payloads round-trip."""
        assert unpack(encode(blob)) == blob

    @given(value=json_like)
    def test_dynamic_roundtrip(self, value) -> None:
        """Test nested values round-trip through schema-less decode."""
        assert unpack(encode(value)) == value

    @given(value=json_like)
    def test_encoded_size_matches(self, value) -> None:
        """Test encoded_size agrees with the encoder."""
        assert encoded_size(value) == len(encode(value))

    @given(value=json_like)
    def test_value_reencode(self, value) -> None:
        """Test a dynamic Value re-encodes to identical bytes."""
        data = encode(value)
        with Decoder(data) as decoder:
            assert encode(decoder.decode_dynamic()) == data

    @given(
        x=float32_values,
        y=float32_values,
        name=st.text(max_size=64),
        id=st.integers(min_value=0, max_value=2**64 - 1),
    )
    def test_record_roundtrip(self, x: float, y: float, name: str, id: int) -> None:
        """Test records round-trip and start with fixarray(4)."""
        msg = Character(x=x, y=y, name=name, id=id)
        data = encode(msg)
        assert data[0] == 0x94
        assert decode(Character, data) == msg

    @given(values=st.lists(json_like, max_size=10))
    def test_concatenated_messages(self, values) -> None:
        """Test concatenated messages decode one after another."""
        data = b"".join(encode(value) for value in values)
        assert list(iter_unpack(data)) == values


class TestDecoderRobustness:
    """Property-based tests for decoding untrusted bytes."""

    @given(data=st.binary(max_size=64))
    def test_arbitrary_bytes(self, data: bytes) -> None:
        """Test arbitrary input either decodes or raises a tagpack error."""
        try:
            with Decoder(data) as decoder:
                list(decoder.iter_dynamic())
        except TagpackError:
            pass

    @given(byte=st.integers(min_value=0, max_value=255))
    def test_classify_total(self, byte: int) -> None:
        """Test every byte except 0xC1 classifies."""
        if byte == 0xC1:
            return
        assert classify(byte).byte == byte

    @given(value=json_like, cut=st.integers(min_value=1, max_value=8))
    def test_truncation_detected(self, value, cut: int) -> None:
        """Test removing trailing bytes never yields a different value silently."""
        data = encode(value)
        if cut >= len(data):
            return
        try:
            result = unpack(data[:-cut])
        except SourceExhausted:
            return
        raise AssertionError(f"truncated input decoded to {result!r}")
