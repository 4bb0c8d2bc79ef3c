"""Naming rules for HJ212 data tables and columns.

Tables are named per data type (real-time, minute, hour, day), optionally
partitioned by month or year; HJ212 factor names map to column names.
"""

from __future__ import annotations

import enum
from datetime import datetime

CN_REAL = "2011"
CN_MINUTE = "2051"
CN_HOUR = "2061"
CN_DAY = "2031"


class DataType(str, enum.Enum):
    """Kind of data a table holds."""

    REAL = "REAL"
    MINUTE = "MINUTE"
    HOUR = "HOUR"
    DAY = "DAY"

    @classmethod
    def from_cn(cls, cn: str) -> DataType | None:
        """Return the data type for an HJ212 command number, or None."""
        return _CN_TYPES.get(cn)


_CN_TYPES = {
    CN_REAL: DataType.REAL,
    CN_MINUTE: DataType.MINUTE,
    CN_HOUR: DataType.HOUR,
    CN_DAY: DataType.DAY,
}


def table_name_hj212(mcu_sn: str, cn: str) -> str:
    """Return the upper-case table name, or "" for an unknown command number."""
    data_type = DataType.from_cn(cn)
    if data_type is None:
        return ""
    return f"T_{data_type.value}_{mcu_sn}".upper()


def _partitioned(mcu_sn: str, cn: str, s_time: str) -> tuple[str, str]:
    data_type = DataType.from_cn(cn)
    if data_type is None:
        return "", ""
    suffix = f"{data_type.value}_{s_time}_{mcu_sn}"
    return f"T_RAW_{suffix}", f"T_RMC_{suffix}"


def table_name_hj212_month(mcu_sn: str, cn: str, s_time: str = "") -> tuple[str, str]:
    """Return the raw and processed table names for a month (YYYYMM, default now)."""
    if not s_time:
        s_time = datetime.now().strftime("%Y%m")
    return _partitioned(mcu_sn, cn, s_time)


def table_name_hj212_year(mcu_sn: str, cn: str, s_time: str = "") -> tuple[str, str]:
    """Return the raw and processed table names for a year (YYYY, default now)."""
    if not s_time:
        s_time = datetime.now().strftime("%Y")
    return _partitioned(mcu_sn, cn, s_time)


def factor_to_column_name(factor: str) -> str:
    """Turn ``S01-Rtd`` into ``Rtd_S01``; return "" when there is no code before '-'."""
    if factor.find("-") <= 0:
        return ""
    parts = factor.split("-")
    return f"{parts[1]}_{parts[0]}"


def factor_to_split(factor: str) -> tuple[str, str, str]:
    """Return (column name, factor code, factor flag) for an HJ212 factor name."""
    if factor.find("-") <= 0:
        return "", factor, ""
    parts = factor.split("-")
    return f"{parts[1]}_{parts[0]}", parts[0], parts[1]