"""Big-endian conversions between bytes and 16-bit register values."""

from __future__ import annotations

import struct
from collections.abc import Iterable


def bytes_to_uint16(data: bytes) -> list[int]:
    """Decode big-endian 16-bit values; a trailing odd byte is ignored."""
    count = len(data) // 2
    return list(struct.unpack(f">{count}H", bytes(data[: count * 2])))


def uint16_to_bytes(values: Iterable[int]) -> bytes:
    """Encode 16-bit values big-endian; values outside 0..65535 raise OverflowError."""
    return b"".join(value.to_bytes(2, "big") for value in values)