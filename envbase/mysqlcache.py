"""A MySQL connection with helpers for queries, inserts and upserts."""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping, Sequence
from typing import Any

import pymysql
import pymysql.converters

from envbase import sqlbuild
from envbase.sqlbuild import DataTable

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3306


def _split_addr(db_addr: str) -> tuple[str, int]:
    host, sep, port_text = db_addr.rpartition(":")
    if not sep or not port_text.isdigit():
        return db_addr.strip("[]"), DEFAULT_PORT
    return host.strip("[]"), int(port_text)


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


class MysqlCache:
    """A connection to one MySQL database.

    Query results come back as :class:`DataTable` rows of strings, exactly
    as the server sends them as text. Statements run one at a time.
    """

    def __init__(self, db_addr: str, db_instance: str, db_user: str, db_pwd: str) -> None:
        self.db_addr = db_addr
        self.db_instance = db_instance
        self.db_user = db_user
        self.db_pwd = db_pwd
        self.con_str = f"{db_user}:{db_pwd}@tcp({db_addr})/{db_instance}"
        host, port = _split_addr(db_addr)
        self._lock = threading.RLock()
        # Encoders only: without decoders every column is returned as text.
        self._conn = pymysql.connect(
            host=host,
            port=port,
            user=db_user,
            password=db_pwd,
            database=db_instance,
            charset="utf8mb4",
            autocommit=True,
            conv=dict(pymysql.converters.encoders),
        )

    def __enter__(self) -> MysqlCache:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def ping(self) -> None:
        """Check the connection, reconnecting if it was lost."""
        with self._lock:
            self._conn.ping(reconnect=True)

    def close(self) -> None:
        """Close the connection."""
        with self._lock:
            self._conn.close()

    def _run(self, sql: str, args: tuple[Any, ...] | None = None) -> int:
        with self._lock, self._conn.cursor() as cursor:
            cursor.execute(sql, args)
            return cursor.rowcount

    def execute_sql(self, sql: str) -> int:
        """Execute a statement and return the number of rows affected."""
        return self._run(sql)

    def execute_sql_with_arg(self, sql: str, data: Any) -> int:
        """Execute a statement with one ``%s`` parameter bound to ``data``."""
        return self._run(sql, (data,))

    def execute_transaction_sqls(self, *sqls: str) -> None:
        """Run all statements in one transaction; roll back and re-raise on failure."""
        with self._lock:
            self._conn.begin()
            try:
                with self._conn.cursor() as cursor:
                    for sql in sqls:
                        cursor.execute(sql)
            except pymysql.MySQLError:
                self._conn.rollback()
                raise
            self._conn.commit()

    def select_sql(self, sql: str) -> DataTable:
        """Run a query; row keys are the upper-cased column names.

        When rows come back the column list is upper-cased too.
        """
        with self._lock, self._conn.cursor() as cursor:
            cursor.execute(sql)
            columns = [item[0] for item in cursor.description or ()]
            raw_rows = cursor.fetchall()
        dt = DataTable(columns=list(columns))
        if raw_rows:
            dt.columns = [col.upper() for col in columns]
        for raw in raw_rows:
            dt.row_data.append(
                {col: _text(value) for col, value in zip(dt.columns, raw)}
            )
        return dt

    def tab_exist(self, table_name: str) -> bool:
        """Return whether the table exists in this database."""
        sql = (
            "select count(*) as count from information_schema.tables "
            f"where table_name='{table_name}' and table_schema='{self.db_instance}'"
        )
        try:
            dt = self.select_sql(sql)
        except pymysql.MySQLError:
            return False
        if not dt.row_data:
            return False
        try:
            return sqlbuild.get_integer(dt.row_data[0].get("COUNT", "")) > 0
        except ValueError:
            return False

    def _fields(self, table_name: str) -> list[str] | None:
        try:
            dt = self.select_sql(f"show fields from {table_name}")
        except pymysql.MySQLError:
            return None
        return [row.get("FIELD", "") for row in dt.row_data]

    def get_columns(self, table_name: str) -> str:
        """Return the table's columns as "[field1][field2]...", or "" on error."""
        fields = self._fields(table_name)
        if fields is None:
            return ""
        return "".join(f"[{field}]" for field in fields)

    def get_column_list(self, table_name: str) -> list[str]:
        """Return the table's column names, or an empty list on error."""
        return self._fields(table_name) or []

    def get_columns_all(self) -> dict[str, str] | None:
        """Map each upper-case table name to "[col1][col2]..."; None on error."""
        sql = (
            "select COLUMN_NAME ,TABLE_NAME from information_schema.columns "
            f"where table_schema='{self.db_instance}'"
        )
        try:
            dt = self.select_sql(sql)
        except pymysql.MySQLError:
            return None
        tab_columns: dict[str, str] = {}
        for row in dt.row_data:
            table = row.get("TABLE_NAME", "").upper()
            tab_columns[table] = tab_columns.get(table, "") + f"[{row.get('COLUMN_NAME', '')}]"
        return tab_columns

    def create_columns(self, tab_name: str, new_cols: Mapping[str, str] | None) -> int:
        """Add columns (name to SQL type) to a table."""
        return self.execute_sql(sqlbuild.create_columns_sql(tab_name, new_cols))

    def _built(self, sql: str) -> tuple[str, int]:
        return sql, self.execute_sql(sql)

    def insert_data(self, tab_name: str, cols: Mapping[str, str] | None) -> tuple[str, int]:
        """Insert one row; return the statement and the rows affected."""
        return self._built(sqlbuild.insert_sql(tab_name, cols))

    def insert_slice_data(
        self, tab_name: str, data: Sequence[Mapping[str, str]] | None
    ) -> tuple[str, int]:
        """Insert many rows in one statement."""
        return self._built(sqlbuild.multi_insert_sql(tab_name, data))

    def insert_no_update_duplicate(
        self, tab_name: str, data: Sequence[Mapping[str, str]] | None
    ) -> tuple[str, int]:
        """Insert many rows, skipping duplicates; single quotes are escaped."""
        return self._built(sqlbuild.insert_ignore_sql(tab_name, data, escape_quotes=True))

    def insert_no_update_duplicate_base(
        self, tab_name: str, data: Sequence[Mapping[str, str]] | None
    ) -> tuple[str, int]:
        """Insert many rows, skipping duplicates; values are used as given."""
        return self._built(sqlbuild.insert_ignore_sql(tab_name, data, escape_quotes=False))

    def insert_no_update_duplicate_slice(
        self, tab_name: str, data: Sequence[Mapping[str, str]] | None
    ) -> tuple[str, int]:
        """Insert many rows, skipping duplicates; STORAGE_DT gets the current time."""
        return self._built(sqlbuild.insert_ignore_stamped_sql(tab_name, data))

    def replace_data(self, tab_name: str, cols: Mapping[str, str] | None) -> tuple[str, int]:
        """Replace one row."""
        return self._built(sqlbuild.replace_sql(tab_name, cols))

    def duplicate_data(self, tab_name: str, cols: Mapping[str, str] | None) -> tuple[str, int]:
        """Insert one row or update it when its unique key already exists."""
        return self._built(sqlbuild.duplicate_sql(tab_name, cols))

    def update_data_one(
        self, tab_name: str, cols: Mapping[str, str], where: Mapping[str, str]
    ) -> str:
        """Update the rows matching ``where``; return the statement run."""
        sql = sqlbuild.update_sql(tab_name, cols, where)
        self.execute_sql(sql)
        return sql

    def duplicate_slice_data(
        self, tab_name: str, data: Sequence[Mapping[str, str]] | None
    ) -> tuple[str, int]:
        """Insert many rows, overwriting existing ones on a duplicate key."""
        return self._built(sqlbuild.duplicate_slice_sql(tab_name, data))

    def duplicate_slice_data_ifnull(
        self, tab_name: str, data: Sequence[Mapping[str, str]] | None
    ) -> tuple[str, int]:
        """Insert many rows; on a duplicate key keep old values where the new is NULL."""
        return self._built(sqlbuild.duplicate_slice_ifnull_sql(tab_name, data))

    def get_count(self, tab_name: str, where: str) -> int:
        """Count rows matching ``where``; -1 if the query fails."""
        sql = f"select COUNT(*) as COUNT from {tab_name} where {where}"
        try:
            dt = self.select_sql(sql)
        except pymysql.MySQLError:
            return -1
        if not dt.row_data:
            return 0
        try:
            return sqlbuild.get_integer(dt.row_data[0].get("COUNT", ""))
        except ValueError:
            return 0

    def batch_execute_sql(self, sqls: Sequence[str] | None) -> int:
        """Run statements in one transaction, skipping empty ones.

        Execution stops at the first failing statement; what ran before it is
        committed and the error is re-raised. Returns the number of statements run.
        """
        executed = 0
        with self._lock:
            self._conn.begin()
            try:
                with self._conn.cursor() as cursor:
                    for sql in sqls or ():
                        if not sql:
                            continue
                        try:
                            cursor.execute(sql)
                        except pymysql.MySQLError:
                            logger.error("batch statement failed: %s", sql)
                            raise
                        executed += 1
            finally:
                self._conn.commit()
        return executed