"""CRC-16/MODBUS checksum used by RTU frames."""

from __future__ import annotations

from envbase.modbus_util import check_sum_value


def crc_modbus(data: bytes) -> int:
    """Return the Modbus CRC-16 (poly 0xA001, init 0xFFFF) of ``data``."""
    return check_sum_value(bytes(data))