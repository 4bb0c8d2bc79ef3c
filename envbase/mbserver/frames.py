"""Modbus RTU and TCP frames and helpers for their data fields."""

from __future__ import annotations

import abc
import dataclasses
import struct

from envbase.mbserver.convert import uint16_to_bytes
from envbase.mbserver.crc import crc_modbus
from envbase.mbserver.exceptions import ExceptionCode


class FrameError(ValueError):
    """A packet cannot be decoded as a Modbus frame."""


class Framer(abc.ABC):
    """A Modbus frame: a function code and a data field."""

    function: int
    data: bytes

    @abc.abstractmethod
    def to_bytes(self) -> bytes:
        """Return the frame as it goes on the wire."""

    @abc.abstractmethod
    def copy(self) -> Framer:
        """Return a copy of the frame."""

    @abc.abstractmethod
    def set_data(self, data: bytes) -> None:
        """Replace the data field."""

    @abc.abstractmethod
    def set_exception(self, exception: ExceptionCode) -> None:
        """Turn the frame into an exception response."""


@dataclasses.dataclass
class RTUFrame(Framer):
    """A Modbus RTU frame."""

    address: int = 0
    function: int = 0
    data: bytes = b""
    crc: int = 0

    def to_bytes(self) -> bytes:
        body = bytes([self.address & 0xFF, self.function & 0xFF]) + bytes(self.data)
        return body + crc_modbus(body).to_bytes(2, "little")

    def copy(self) -> RTUFrame:
        return dataclasses.replace(self)

    def set_data(self, data: bytes) -> None:
        self.data = bytes(data)

    def set_exception(self, exception: ExceptionCode) -> None:
        self.function |= 0x80
        self.data = bytes([int(exception)])


@dataclasses.dataclass
class TCPFrame(Framer):
    """A Modbus TCP frame (MBAP header plus PDU)."""

    transaction_identifier: int = 0
    protocol_identifier: int = 0
    length: int = 0
    device: int = 0
    function: int = 0
    data: bytes = b""

    def to_bytes(self) -> bytes:
        header = struct.pack(
            ">HHHBB",
            self.transaction_identifier & 0xFFFF,
            self.protocol_identifier & 0xFFFF,
            (2 + len(self.data)) & 0xFFFF,
            self.device & 0xFF,
            self.function & 0xFF,
        )
        return header + bytes(self.data)

    def copy(self) -> TCPFrame:
        return dataclasses.replace(self)

    def set_data(self, data: bytes) -> None:
        self.data = bytes(data)
        self._update_length()

    def set_exception(self, exception: ExceptionCode) -> None:
        self.function |= 0x80
        self.data = bytes([int(exception)])
        self._update_length()

    def _update_length(self) -> None:
        self.length = (len(self.data) + 2) & 0xFFFF


def new_rtu_frame(packet: bytes) -> RTUFrame:
    """Decode an RTU packet, checking its length and CRC."""
    packet = bytes(packet)
    if len(packet) < 5:
        raise FrameError(f"RTU Frame error: packet less than 5 bytes: {list(packet)}")
    expected = int.from_bytes(packet[-2:], "little")
    calculated = crc_modbus(packet[:-2])
    if calculated != expected:
        raise FrameError(
            f"RTU Frame error: CRC (expected 0x{expected:x}, got 0x{calculated:x})"
        )
    return RTUFrame(address=packet[0], function=packet[1], data=packet[2:-2], crc=expected)


def new_tcp_frame(packet: bytes) -> TCPFrame:
    """Decode a TCP packet, checking that its length field matches."""
    packet = bytes(packet)
    if len(packet) < 9:
        raise FrameError("TCP Frame error: packet less than 9 bytes")
    transaction, protocol, length, device, function = struct.unpack_from(">HHHBB", packet)
    frame = TCPFrame(
        transaction_identifier=transaction,
        protocol_identifier=protocol,
        length=length,
        device=device,
        function=function,
        data=packet[8:],
    )
    if frame.length != len(frame.data) + 2:
        raise FrameError("specified packet length does not match actual packet length")
    return frame


def get_exception(frame: Framer) -> ExceptionCode:
    """Return the exception code of a response, or SUCCESS when it is not one."""
    if frame.function & 0x80:
        return ExceptionCode(frame.data[0])
    return ExceptionCode.SUCCESS


def _two_words(frame: Framer) -> tuple[int, int]:
    if len(frame.data) < 4:
        raise FrameError(f"frame data of {len(frame.data)} bytes holds no register and count")
    return struct.unpack_from(">HH", frame.data)


def register_address_and_number(frame: Framer) -> tuple[int, int, int]:
    """Return (first register, register count, end register) from the data field."""
    register, number = _two_words(frame)
    return register, number, register + number


def register_address_and_value(frame: Framer) -> tuple[int, int]:
    """Return (register, value) from the data field."""
    return _two_words(frame)


def set_data_with_register_and_number(frame: Framer, register: int, number: int) -> None:
    """Set the data field to a register address and a register count."""
    frame.set_data(struct.pack(">HH", register, number))


def set_data_with_register_and_number_and_values(
    frame: Framer, register: int, number: int, values: list[int]
) -> None:
    """Set the data field to register, count, byte count and register values."""
    payload = uint16_to_bytes(values)
    frame.set_data(struct.pack(">HHB", register, number, len(payload) & 0xFF) + payload)


def set_data_with_register_and_number_and_bytes(
    frame: Framer, register: int, number: int, data: bytes
) -> None:
    """Set the data field to register, count, byte count and coil bytes."""
    data = bytes(data)
    frame.set_data(struct.pack(">HHB", register, number, len(data) & 0xFF) + data)