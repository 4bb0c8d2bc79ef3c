"""Builders for the MySQL statements used by the database layer.

Values are quoted as they are given. Empty strings, and in some builders
the word NULL, become SQL NULL. Only ``insert_ignore_sql`` can escape
single quotes. Column order follows the order in which the keys are first
seen.
"""

from __future__ import annotations

import dataclasses
import json
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime


class NoDataError(ValueError):
    """There is nothing to build a statement from."""

    def __init__(self, message: str = "no data to insert") -> None:
        super().__init__(message)


@dataclasses.dataclass
class DataTable:
    """Result of a query: column names and one dict of strings per row."""

    columns: list[str] = dataclasses.field(default_factory=list)
    row_data: list[dict[str, str]] = dataclasses.field(default_factory=list)

    @property
    def count(self) -> int:
        """Number of rows."""
        return len(self.row_data)


_INT_RE = re.compile(r"[+-]?[0-9]+")


def get_integer(value: str) -> int:
    """Parse a decimal integer; raise ValueError if it is empty or malformed."""
    if value == "":
        raise ValueError("value to convert is empty")
    if not _INT_RE.fullmatch(value):
        raise ValueError(f"invalid integer {value!r}")
    return int(value)


def _reject_constant(name: str) -> None:
    raise ValueError(f"invalid JSON constant {name}")


def is_valid_json(text: str) -> bool:
    """Return whether ``text`` is a JSON object (or null)."""
    try:
        parsed = json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        return False
    return parsed is None or isinstance(parsed, dict)


def _is_null(value: str) -> bool:
    return value == "" or value.upper() == "NULL"


def _literal(value: str) -> str:
    return "NULL" if _is_null(value) else f"'{value}'"


def report_string(param: Mapping[str, str] | None) -> str:
    """Build aggregate select items: {"SO2": "SUM"} gives "SUM(SO2) as SO2".

    Items come out in reverse order of the mapping.
    """
    if not param:
        return ""
    sqls = ""
    for column, func in param.items():
        sqls = f"{func}({column}) as {column},{sqls}"
    if len(sqls) > 5:
        return sqls[:-1]
    return ""


def data_to_string(tab_name: str, dt: DataTable, pri_key: str) -> str:
    """Build one insert for all rows of ``dt``, leaving out the ``pri_key`` column.

    Column names are upper-cased and looked up upper-case in the rows.
    """
    pri_key = pri_key.upper()
    cols = [col.upper() for col in dt.columns if col.upper() != pri_key]
    values = [
        "(" + ",".join(_literal(row.get(col, "")) for col in cols) + ")"
        for row in dt.row_data
    ]
    return f"insert into {tab_name}({','.join(cols)}) VALUES {','.join(values)}"


def data_to_string_by_page(
    tab_name: str, dt: DataTable, pri_key: str, min_index: int, max_index: int
) -> str:
    """Build one insert for rows ``min_index`` up to ``max_index`` of ``dt``."""
    if max_index > min_index and (min_index < 0 or max_index > len(dt.row_data)):
        raise IndexError(
            f"rows {min_index}..{max_index} out of range for {len(dt.row_data)} rows"
        )
    key = pri_key.upper()
    cols = [col for col in dt.columns if col.upper() != key]
    values = [
        "(" + ",".join(_literal(row.get(col, "")) for col in cols) + ")"
        for row in dt.row_data[min_index:max_index]
    ]
    return f"insert into {tab_name}({','.join(cols)}) VALUES{','.join(values)}"


def create_columns_sql(tab_name: str, new_cols: Mapping[str, str] | None) -> str:
    """Build an ``alter table`` adding each column with its type.

    Square brackets around the column names are removed.
    """
    if not new_cols:
        raise NoDataError("no columns to add")
    adds = []
    for col, col_type in new_cols.items():
        name = col.replace("[", "").replace("]", "")
        adds.append(f"add `{name}` {col_type}")
    return f"alter table {tab_name} " + ",".join(adds)


def _single_row(cols: Mapping[str, str] | None) -> tuple[str, str]:
    if not cols:
        raise NoDataError()
    return ",".join(cols), ",".join(_literal(value) for value in cols.values())


def insert_sql(tab_name: str, cols: Mapping[str, str] | None) -> str:
    """Build an insert of one row."""
    names, values = _single_row(cols)
    return f"insert into {tab_name}({names}) values ({values})"


def replace_sql(tab_name: str, cols: Mapping[str, str] | None) -> str:
    """Build a ``replace into`` of one row."""
    names, values = _single_row(cols)
    return f"replace into {tab_name}({names}) values ({values})"


def duplicate_sql(tab_name: str, cols: Mapping[str, str] | None) -> str:
    """Build an insert of one row that updates it on a duplicate key."""
    names, values = _single_row(cols)
    updates = ",".join(
        f"`{col}`=NULL" if _is_null(value) else f"{col}='{value}'"
        for col, value in cols.items()
    )
    return (
        f"insert into {tab_name}({names}) values ({values})"
        f"  ON DUPLICATE KEY UPDATE {updates}"
    )


def update_sql(tab_name: str, cols: Mapping[str, str], where: Mapping[str, str]) -> str:
    """Build an ``update`` setting ``cols`` on rows matching every ``where`` pair."""
    sets = ",".join(
        f"{col}=NULL" if _is_null(value) else f"{col}='{value}'"
        for col, value in cols.items()
    )
    conditions = " and ".join(f"{col}='{value}'" for col, value in where.items())
    return f"update {tab_name} set {sets} where {conditions}"


def _union_columns(data: Sequence[Mapping[str, str]] | None) -> list[str]:
    if not data:
        raise NoDataError()
    columns = list(dict.fromkeys(col for row in data for col in row))
    if not columns:
        raise NoDataError()
    return columns


def _rows(
    data: Iterable[Mapping[str, str]],
    columns: Sequence[str],
    render: Callable[[str], str] = lambda value: f"'{value}'",
) -> str:
    rendered = []
    for row in data:
        cells = (
            "NULL" if row.get(col, "") == "" else render(row.get(col, ""))
            for col in columns
        )
        rendered.append("(" + ",".join(cells) + ")")
    return ",".join(rendered)


def _quoted(columns: Iterable[str]) -> str:
    return ",".join(f"`{col}`" for col in columns)


def multi_insert_sql(tab_name: str, data: Sequence[Mapping[str, str]] | None) -> str:
    """Build an insert of many rows over the union of their columns."""
    columns = _union_columns(data)
    return f"insert into {tab_name}({_quoted(columns)}) values {_rows(data, columns)} "


def insert_ignore_sql(
    tab_name: str, data: Sequence[Mapping[str, str]] | None, escape_quotes: bool = True
) -> str:
    """Build an ``INSERT IGNORE`` of many rows, optionally doubling single quotes."""
    columns = _union_columns(data)
    if escape_quotes:
        rows = _rows(data, columns, lambda value: "'" + value.replace("'", "''") + "'")
    else:
        rows = _rows(data, columns)
    return f"INSERT IGNORE INTO {tab_name}({_quoted(columns)}) VALUES {rows}"


def _now_millis() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]


def insert_ignore_stamped_sql(
    tab_name: str, data: Sequence[Mapping[str, str]] | None, now: str | None = None
) -> str:
    """Build an ``INSERT IGNORE`` where any STORAGE_DT column holds ``now``.

    ``now`` defaults to the current local time with milliseconds.
    """
    columns = _union_columns(data)
    stamp = _now_millis() if now is None else now
    stamped = [
        {**row, **{col: stamp for col in columns if col.upper() == "STORAGE_DT"}}
        for row in data
    ]
    return f"INSERT IGNORE INTO {tab_name}({_quoted(columns)}) VALUES {_rows(stamped, columns)}"


def duplicate_slice_sql(tab_name: str, data: Sequence[Mapping[str, str]] | None) -> str:
    """Build a many-row insert that overwrites every column on a duplicate key."""
    columns = _union_columns(data)
    updates = ",".join(f"`{col}`=VALUES(`{col}`)" for col in columns)
    return (
        f"insert into {tab_name}({_quoted(columns)}) values {_rows(data, columns)}"
        f"  ON DUPLICATE KEY UPDATE {updates}"
    )


def duplicate_slice_ifnull_sql(
    tab_name: str, data: Sequence[Mapping[str, str]] | None
) -> str:
    """Build a many-row insert that keeps old values where the new one is NULL."""
    columns = _union_columns(data)
    updates = ",".join(f"`{col}`=IFNULL(VALUES(`{col}`), `{col}`)" for col in columns)
    return (
        f"insert into {tab_name}({','.join(columns)}) values {_rows(data, columns)}"
        f"  ON DUPLICATE KEY UPDATE {updates}"
    )