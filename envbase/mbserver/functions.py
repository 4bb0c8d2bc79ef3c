"""Default Modbus function handlers working on a server's memory maps.

Every handler takes the server and the request frame and returns the
response data together with an exception code; the code is
``ExceptionCode.SUCCESS`` when the request was carried out.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from envbase.mbserver.convert import bytes_to_uint16, uint16_to_bytes
from envbase.mbserver.exceptions import ExceptionCode
from envbase.mbserver.frames import (
    Framer,
    register_address_and_number,
    register_address_and_value,
)

if TYPE_CHECKING:
    from envbase.mbserver.server import Server

# Reads of bit tables stop one short of the full map; register tables do not.
_BIT_READ_LIMIT = 65535
_TABLE_LIMIT = 65536


def _pack_bits(bits: Sequence[int]) -> bytes:
    size = (len(bits) + 7) // 8
    packed = bytearray(size + 1)
    packed[0] = size & 0xFF
    for index, value in enumerate(bits):
        if value:
            packed[1 + index // 8] |= 1 << (index % 8)
    return bytes(packed)


def _read_bits(memory: Sequence[int], frame: Framer) -> tuple[bytes, ExceptionCode]:
    register, _, end = register_address_and_number(frame)
    if end > _BIT_READ_LIMIT:
        return b"", ExceptionCode.ILLEGAL_DATA_ADDRESS
    return _pack_bits(memory[register:end]), ExceptionCode.SUCCESS


def _read_registers(memory: Sequence[int], frame: Framer) -> tuple[bytes, ExceptionCode]:
    register, count, end = register_address_and_number(frame)
    if end > _TABLE_LIMIT:
        return b"", ExceptionCode.ILLEGAL_DATA_ADDRESS
    payload = uint16_to_bytes(memory[register:end])
    return bytes([(count * 2) & 0xFF]) + payload, ExceptionCode.SUCCESS


def read_coils(server: Server, frame: Framer) -> tuple[bytes, ExceptionCode]:
    """Function 1: read coils, packed eight to a byte."""
    return _read_bits(server.coils, frame)


def read_discrete_inputs(server: Server, frame: Framer) -> tuple[bytes, ExceptionCode]:
    """Function 2: read discrete inputs, packed eight to a byte."""
    return _read_bits(server.discrete_inputs, frame)


def read_holding_registers(server: Server, frame: Framer) -> tuple[bytes, ExceptionCode]:
    """Function 3: read holding registers."""
    return _read_registers(server.holding_registers, frame)


def read_input_registers(server: Server, frame: Framer) -> tuple[bytes, ExceptionCode]:
    """Function 4: read input registers."""
    return _read_registers(server.input_registers, frame)


def write_single_coil(server: Server, frame: Framer) -> tuple[bytes, ExceptionCode]:
    """Function 5: write one coil; any non-zero value switches it on."""
    register, value = register_address_and_value(frame)
    server.coils[register] = 1 if value else 0
    return bytes(frame.data[:4]), ExceptionCode.SUCCESS


def write_holding_register(server: Server, frame: Framer) -> tuple[bytes, ExceptionCode]:
    """Function 6: write one holding register."""
    register, value = register_address_and_value(frame)
    server.holding_registers[register] = value
    return bytes(frame.data[:4]), ExceptionCode.SUCCESS


def write_multiple_coils(server: Server, frame: Framer) -> tuple[bytes, ExceptionCode]:
    """Function 15: write coils from packed bytes, least significant bit first."""
    register, count, end = register_address_and_number(frame)
    value_bytes = bytes(frame.data[5:])
    if end > _TABLE_LIMIT:
        return b"", ExceptionCode.ILLEGAL_DATA_ADDRESS

    bits = ((byte >> pos) & 0x01 for byte in value_bytes for pos in range(8))
    for offset, bit in enumerate(bits):
        server.coils[register + offset] = bit
        if offset + 1 >= count:
            break
    return bytes(frame.data[:4]), ExceptionCode.SUCCESS


def write_holding_registers(server: Server, frame: Framer) -> tuple[bytes, ExceptionCode]:
    """Function 16: write holding registers.

    Values are stored as far as the map reaches; the request fails unless
    exactly the announced number of registers was written.
    """
    register, count, _ = register_address_and_number(frame)
    values = bytes_to_uint16(bytes(frame.data[5:]))
    room = len(server.holding_registers) - register
    written = values[:room]
    server.holding_registers[register:register + len(written)] = written
    if len(written) == count:
        return bytes(frame.data[:4]), ExceptionCode.SUCCESS
    return b"", ExceptionCode.ILLEGAL_DATA_ADDRESS