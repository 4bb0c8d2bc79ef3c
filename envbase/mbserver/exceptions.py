"""Modbus exception codes."""

from __future__ import annotations

import enum


class ExceptionCode(enum.IntEnum):
    """Modbus exception code carried in an exception response."""

    SUCCESS = 0
    ILLEGAL_FUNCTION = 1
    ILLEGAL_DATA_ADDRESS = 2
    ILLEGAL_DATA_VALUE = 3
    SLAVE_DEVICE_FAILURE = 4
    ACKNOWLEDGE_SLAVE = 5
    SLAVE_DEVICE_BUSY = 6
    NEGATIVE_ACKNOWLEDGE = 7
    MEMORY_PARITY_ERROR = 8
    GATEWAY_PATH_UNAVAILABLE = 10
    GATEWAY_TARGET_DEVICE_FAILED_TO_RESPOND = 11

    @classmethod
    def _missing_(cls, value):
        # Any byte may arrive on the wire; keep unknown codes representable.
        if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 0xFF:
            member = int.__new__(cls, value)
            member._name_ = f"UNKNOWN_{value}"
            member._value_ = value
            return member
        return None

    def __str__(self) -> str:
        return _LABELS.get(self._value_, "unknown")


_LABELS = {
    0: "Success",
    1: "IllegalFunction",
    2: "IllegalDataAddress",
    3: "IllegalDataValue",
    4: "SlaveDeviceFailure",
    5: "AcknowledgeSlave",
    6: "SlaveDeviceBusy",
    7: "NegativeAcknowledge",
    8: "MemoryParityError",
    10: "GatewayPathUnavailable",
    11: "GatewayTargetDeviceFailedtoRespond",
}