"""Modbus RTU helpers: CRC-16 checksums and byte/number conversions."""

from __future__ import annotations

import logging
import re
import struct

logger = logging.getLogger(__name__)

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1

_HEX_RE = re.compile(r"[+-]?[0-9a-fA-F]+")
_DEC_RE = re.compile(r"[+-]?[0-9]+")


def _build_table() -> tuple[int, ...]:
    table = []
    for byte in range(256):
        crc = byte
        for _ in range(8):
            crc = (crc >> 1) ^ 0xA001 if crc & 1 else crc >> 1
        table.append(crc)
    return tuple(table)


_MB_TABLE = _build_table()


def check_sum_value(data: bytes) -> int:
    """Return the Modbus CRC-16 of ``data`` as an integer."""
    crc = 0xFFFF
    for value in data:
        crc = (crc >> 8) ^ _MB_TABLE[(value ^ crc) & 0xFF]
    return crc


def check_sum(data: bytes) -> bytes:
    """Return the Modbus CRC-16 of ``data`` as two little-endian bytes."""
    return uint16_to_bytes(check_sum_value(data))


def check_crc(data: bytes, datalen: int) -> bool:
    """Check the two CRC bytes that follow the first ``datalen`` bytes of ``data``."""
    if len(data) < datalen - 2:
        return False
    if len(data) < datalen + 2:
        raise IndexError(f"frame of {len(data)} bytes has no CRC after {datalen} bytes")
    return check_sum(data[:datalen]) == bytes(data[datalen:datalen + 2])


def _parse_hex(token: str) -> int:
    if not _HEX_RE.fullmatch(token):
        return 0
    return int(token, 16)


def _parse_int(text: str) -> int:
    if not _DEC_RE.fullmatch(text):
        return 0
    return max(_INT64_MIN, min(_INT64_MAX, int(text)))


def string_to_bytes(data: str) -> bytes:
    """Convert a hex string, with or without separating spaces, to bytes.

    Tokens that are not valid hex become zero bytes.
    """
    if " " in data:
        tokens = data.split(" ")
    else:
        tokens = [data[i:i + 2] for i in range(0, len(data) - 1, 2)]
    return bytes(_parse_hex(token) & 0xFF for token in tokens)


def int16_to_bytes(n: int) -> bytes:
    """Truncate ``n`` to 16 bits and return it little-endian."""
    return (n & 0xFFFF).to_bytes(2, "little")


def int32_to_bytes(n: int) -> bytes:
    """Truncate ``n`` to 32 bits and return it little-endian."""
    return (n & 0xFFFFFFFF).to_bytes(4, "little")


def uint16_to_bytes(n: int) -> bytes:
    """Return an unsigned 16-bit value little-endian."""
    return (n & 0xFFFF).to_bytes(2, "little")


def int32_string_to_bytes(n: str) -> bytes:
    """Parse a decimal string and return it as a big-endian 32-bit integer."""
    value = _parse_int(n)
    result = (value & 0xFFFFFFFF).to_bytes(4, "big")
    logger.debug("%s %d %s", n, value, list(result))
    return result


def int16_string_to_bytes(n: str) -> bytes:
    """Parse a decimal string and return it as a big-endian 16-bit integer."""
    value = _parse_int(n)
    result = (value & 0xFFFF).to_bytes(2, "big")
    logger.debug("%s %d %s", n, value, list(result))
    return result


def _decode_signed(b: bytes, order: str) -> int:
    if len(b) == 2:
        return int.from_bytes(b, order, signed=True)
    if len(b) < 4:
        return 0
    return int.from_bytes(b[:4], order, signed=True)


def bytes_to_int(b: bytes) -> int:
    """Decode a little-endian int16 (two bytes) or int32 (otherwise)."""
    return _decode_signed(bytes(b), "little")


def bytes_to_string(b: bytes) -> str:
    """Decode a big-endian int16 or int32 and return it as a decimal string."""
    return str(_decode_signed(bytes(b), "big"))


def bytes_to_string_le(b: bytes) -> str:
    """Decode a little-endian int16 or int32 and return it as a decimal string."""
    return str(_decode_signed(bytes(b), "little"))


def bytes_to_float32(b: bytes) -> float:
    """Decode the first four bytes as a little-endian IEEE-754 float."""
    if len(b) < 4:
        raise ValueError(f"need 4 bytes for a float32, got {len(b)}")
    return struct.unpack_from("<f", bytes(b))[0]


def _fmt(b: bytes) -> str:
    return "[" + " ".join(str(x) for x in b) + "]"


def demo() -> None:
    """Print a walk through the conversion helpers."""
    print("string2byte  ", _fmt(string_to_bytes("40 00")))
    print("int16tobytes  ", _fmt(int16_to_bytes(1024)))
    int32_bytes = int32_to_bytes(1024)
    print("int32tobytes  ", _fmt(int32_bytes))
    uint16_bytes = uint16_to_bytes(1024)
    print("UInt16ToBytes  ", _fmt(uint16_bytes))
    int32_be = int32_string_to_bytes("1024")
    int16_string_to_bytes("1024")
    print("bytetoint", bytes_to_int(uint16_bytes))
    print("bytetostring  ", bytes_to_string(int32_be))
    print("bytetostring_L ", bytes_to_string_le(int32_bytes))