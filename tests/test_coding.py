import pytest

from pmkvsim.coding import (
    decode_fixed32,
    decode_fixed64,
    encode_fixed32,
    encode_fixed64,
    take_fixed32,
    take_fixed64,
)


def test_fixed32_is_little_endian():
    assert encode_fixed32(1) == b"\x01\x00\x00\x00"


def test_fixed64_is_little_endian():
    assert encode_fixed64(1) == b"\x01" + b"\x00" * 7


def test_lengths():
    assert len(encode_fixed32(0xFFFFFFFF)) == 4
    assert len(encode_fixed64(2**64 - 1)) == 8


@pytest.mark.parametrize("value", [0, 1, 255, 256, 65535, 2**31, 2**32 - 1])
def test_fixed32_round_trip(value):
    assert decode_fixed32(encode_fixed32(value)) == value


@pytest.mark.parametrize("value", [0, 1, 2**32, 2**63, 2**64 - 1])
def test_fixed64_round_trip(value):
    assert decode_fixed64(encode_fixed64(value)) == value


def test_out_of_range_rejected():
    with pytest.raises(ValueError):
        encode_fixed32(2**32)
    with pytest.raises(ValueError):
        encode_fixed64(-1)


def test_take_returns_rest():
    data = encode_fixed32(7) + encode_fixed64(9) + b"tail"
    first, rest = take_fixed32(data)
    assert first == 7
    second, rest = take_fixed64(rest)
    assert second == 9
    assert rest == b"tail"


def test_take_too_short_raises():
    with pytest.raises(ValueError):
        take_fixed32(b"abc")
    with pytest.raises(ValueError):
        take_fixed64(b"abcdefg")


def test_decode_uses_only_prefix():
    assert decode_fixed32(encode_fixed32(42) + b"zz") == 42