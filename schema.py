"""Read-only table metadata from the SQLite catalog."""

import sqlite3
from typing import NamedTuple

from dbutils import quote_ident
from errors import InvalidTable, NoColumns

# PRAGMA table_xinfo "hidden" values
HIDDEN_VIRTUAL = 1
GENERATED_VIRTUAL = 2
GENERATED_STORED = 3


class ColumnDescriptor(NamedTuple):
    name: str
    sql_type: str
    nullable: bool
    is_primary_key: bool
    is_auto_generated: bool
    default: str | None = None
    position: int = 0

    def to_dict(self):
        return self._asdict()


def list_tables(connection: sqlite3.Connection) -> list[str]:
    cursor = connection.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%' ORDER BY name;"
    )
    return [row[0] for row in cursor.fetchall()]


def _pragma_columns(connection, table_name):
    cursor = connection.execute(f"PRAGMA table_xinfo({quote_ident(table_name)});")
    return [row for row in cursor.fetchall() if row["hidden"] != HIDDEN_VIRTUAL]


def get_columns(connection: sqlite3.Connection, table_name: str) -> list[ColumnDescriptor]:
    """Column descriptors for `table_name`, in declaration order.

    Raises InvalidTable for a name that is not in the catalog and NoColumns
    for a table that reports no columns. Nothing else in the project may put
    a table name into SQL without going through here first.
    """
    if not table_name or table_name not in list_tables(connection):
        raise InvalidTable()

    pragma_rows = _pragma_columns(connection, table_name)
    if not pragma_rows:
        raise NoColumns()

    key_rows = [row for row in pragma_rows if row["pk"] > 0]
    # a lone INTEGER PRIMARY KEY is an alias for the rowid and gets assigned by sqlite,
    # except in a WITHOUT ROWID table where the caller supplies it
    rowid_alias = None
    if (
        len(key_rows) == 1
        and key_rows[0]["type"].upper() == "INTEGER"
        and not is_without_rowid(connection, table_name)
    ):
        rowid_alias = key_rows[0]["name"]

    columns = []
    for row in pragma_rows:
        is_primary_key = row["pk"] > 0
        is_generated = row["hidden"] in (GENERATED_VIRTUAL, GENERATED_STORED)
        columns.append(ColumnDescriptor(
            name=row["name"],
            sql_type=row["type"],
            nullable=not row["notnull"] and not is_primary_key,
            is_primary_key=is_primary_key,
            is_auto_generated=is_generated or row["name"] == rowid_alias,
            default=row["dflt_value"],
            position=row["cid"],
        ))
    return columns


def get_primary_key(connection: sqlite3.Connection, table_name: str) -> str | None:
    # first key column; composite keys are addressed by their leading column only
    for row in _pragma_columns(connection, table_name):
        if row["pk"] == 1:
            return row["name"]
    return None


def _create_sql(connection, table_name):
    cursor = connection.execute(
        "SELECT sql FROM sqlite_master WHERE type='table' AND name = ?;", [table_name]
    )
    row = cursor.fetchone()
    if not row or not row["sql"]:
        return ""
    return " ".join(row["sql"].upper().split())


def is_autoincrement(connection: sqlite3.Connection, table_name: str) -> bool:
    return "AUTOINCREMENT" in _create_sql(connection, table_name)


def is_without_rowid(connection: sqlite3.Connection, table_name: str) -> bool:
    return "WITHOUT ROWID" in _create_sql(connection, table_name)
