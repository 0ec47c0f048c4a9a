"""Fixed-width little-endian integer encoding used by the graph storage format."""

from __future__ import annotations

_FIXED32 = 4
_FIXED64 = 8


def _encode(value: int, width: int) -> bytes:
    if value < 0 or value >= 1 << (8 * width):
        raise ValueError(f"{value} does not fit in {width * 8} unsigned bits")
    return value.to_bytes(width, "little")


def _decode(data: bytes, width: int) -> int:
    if len(data) < width:
        raise ValueError(f"need {width} bytes, got {len(data)}")
    return int.from_bytes(data[:width], "little")


def encode_fixed32(value: int) -> bytes:
    """Encode an unsigned 32-bit integer as 4 little-endian bytes."""
    return _encode(value, _FIXED32)


def encode_fixed64(value: int) -> bytes:
    """Encode an unsigned 64-bit integer as 8 little-endian bytes."""
    return _encode(value, _FIXED64)


def decode_fixed32(data: bytes) -> int:
    """Decode the first 4 bytes of ``data`` as a little-endian integer."""
    return _decode(data, _FIXED32)


def decode_fixed64(data: bytes) -> int:
    """Decode the first 8 bytes of ``data`` as a little-endian integer."""
    return _decode(data, _FIXED64)


def take_fixed32(data: bytes) -> tuple[int, bytes]:
    """Decode a leading 32-bit integer and return it with the remaining bytes."""
    return decode_fixed32(data), bytes(data[_FIXED32:])


def take_fixed64(data: bytes) -> tuple[int, bytes]:
    """Decode a leading 64-bit integer and return it with the remaining bytes."""
    return decode_fixed64(data), bytes(data[_FIXED64:])