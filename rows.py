"""Row reading and the metadata-driven insert/update/delete operations."""

import logging
import sqlite3
from typing import Any, Iterable, Mapping

from dbutils import quote_ident
from errors import (
    FetchAfterInsert,
    MissingKey,
    NoData,
    NoPrimaryKey,
    NotFound,
    NoUpdatableFields,
    UpdateFailed,
    classify_db_error,
)
from schema import ColumnDescriptor, get_columns, get_primary_key

logger = logging.getLogger(__name__)

ROWID = "rowid"


class Pagination:

    def __init__(self, page: int, page_size: int, total: int):
        self.page_size = page_size
        self.total = total
        self.page_count = max(1, -(-total // page_size))
        self.page = min(max(1, page), self.page_count)

    @property
    def is_first_page(self):
        return self.page == 1

    @property
    def is_last_page(self):
        return self.page == self.page_count

    @property
    def prev(self):
        return self.page - 1

    @property
    def next(self):
        return self.page + 1

    @property
    def offset(self):
        return (self.page - 1) * self.page_size


def row_values(row: sqlite3.Row) -> dict[str, Any]:
    values = {}
    for key in row.keys():
        value = row[key]
        if isinstance(value, bytes):
            value = value.hex()
        values[key] = value
    return values


# ─── Reading ───

def fetch_row(connection, table_name, key_column, key_value):
    """One row by key, or None. Both names must already be validated."""
    key_sql = ROWID if key_column == ROWID else quote_ident(key_column)
    cursor = connection.execute(
        f"SELECT * FROM {quote_ident(table_name)} WHERE {key_sql} = ?;", [key_value]
    )
    row = cursor.fetchone()
    return row_values(row) if row is not None else None


def fetch_all(connection, table_name):
    cursor = connection.execute(f"SELECT * FROM {quote_ident(table_name)};")
    return [row_values(row) for row in cursor.fetchall()]


def fetch_page(connection, table_name, page, page_size):
    cursor = connection.execute(f"SELECT COUNT(*) FROM {quote_ident(table_name)};")
    pagination = Pagination(int(page), page_size, cursor.fetchone()[0])
    cursor = connection.execute(
        f"SELECT * FROM {quote_ident(table_name)} LIMIT ? OFFSET ?;",
        [pagination.page_size, pagination.offset],
    )
    return [row_values(row) for row in cursor.fetchall()], pagination


# ─── Writing ───

def build_values(
    columns: Iterable[ColumnDescriptor],
    submission: Mapping[str, Any],
    skip: Iterable[str] = (),
) -> dict[str, Any]:
    """Pick the submitted values the columns accept.

    Auto-generated columns and `skip` are left out, absent fields are left
    out (not nulled), and an empty string becomes NULL only where the column
    allows it. Keys that are not column names never get through.
    """
    skip = set(skip)
    values = {}
    for column in columns:
        if column.is_auto_generated or column.name in skip:
            continue
        if column.name in submission:
            value = submission[column.name]
            values[column.name] = None if value == "" and column.nullable else value
    return values


def execute_write(connection, sql, params):
    """Every mutation goes through here with bound parameters."""
    logger.debug("%s %r", sql, params)
    return connection.execute(sql, list(params))


def _require_table_and_id(submission):
    table_name = submission.get("table")
    row_id = submission.get("id")
    if not table_name or row_id is None or row_id == "":
        raise MissingKey()
    return table_name, row_id


def _require_primary_key(connection, table_name):
    primary = get_primary_key(connection, table_name)
    if not primary:
        logger.error("Table %s has no primary key", table_name)
        raise NoPrimaryKey()
    return primary


def _warn_if_many(cursor, verb, table_name, primary, row_id):
    # composite keys are addressed by their leading column, which can match several rows
    if cursor.rowcount > 1:
        logger.warning("%s %d rows in %s where %s = %r", verb, cursor.rowcount, table_name, primary, row_id)


def insert_row(connection: sqlite3.Connection, submission: Mapping[str, Any], engine: str = "sqlite") -> dict:
    """Insert the submitted fields and return the row as stored."""
    table_name = submission.get("table", "")
    columns = get_columns(connection, table_name)
    values = build_values(columns, submission)
    if not values:
        raise NoData()

    primary = get_primary_key(connection, table_name)
    column_sql = ", ".join(quote_ident(name) for name in values)
    placeholders = ", ".join("?" for _ in values)
    sql = f"INSERT INTO {quote_ident(table_name)} ({column_sql}) VALUES ({placeholders});"

    try:
        # insert and read-back commit together or not at all
        with connection:
            cursor = execute_write(connection, sql, values.values())
            if primary is None:
                key_column, key_value = ROWID, cursor.lastrowid
            elif primary in values:
                key_column, key_value = primary, values[primary]
            else:
                key_column, key_value = primary, cursor.lastrowid
            row = fetch_row(connection, table_name, key_column, key_value)
            if row is None:
                logger.error("Inserted row in %s not found by %s = %r", table_name, key_column, key_value)
                raise FetchAfterInsert()
    except sqlite3.DatabaseError as e:
        raise classify_db_error(e, "Insert", engine) from e

    logger.info("Inserted row into %s (%s = %r)", table_name, key_column, key_value)
    return row


def update_row(connection: sqlite3.Connection, submission: Mapping[str, Any], engine: str = "sqlite") -> bool:
    """Update one row addressed by its primary key. The key itself is never set."""
    table_name, row_id = _require_table_and_id(submission)
    columns = get_columns(connection, table_name)
    primary = _require_primary_key(connection, table_name)

    values = build_values(columns, submission, skip=[primary])
    if not values:
        raise NoUpdatableFields()

    set_sql = ", ".join(f"{quote_ident(name)} = ?" for name in values)
    sql = f"UPDATE {quote_ident(table_name)} SET {set_sql} WHERE {quote_ident(primary)} = ?;"

    try:
        with connection:
            cursor = execute_write(connection, sql, [*values.values(), row_id])
    except sqlite3.DatabaseError as e:
        raise classify_db_error(e, "Update", engine) from e

    # sqlite counts matched rows, so zero means the key matched nothing
    if cursor.rowcount < 1:
        raise UpdateFailed()
    _warn_if_many(cursor, "Updated", table_name, primary, row_id)
    logger.info("Updated %s row %s = %r", table_name, primary, row_id)
    return True


def delete_row(connection: sqlite3.Connection, submission: Mapping[str, Any], engine: str = "sqlite") -> bool:
    table_name, row_id = _require_table_and_id(submission)
    get_columns(connection, table_name)
    primary = _require_primary_key(connection, table_name)

    sql = f"DELETE FROM {quote_ident(table_name)} WHERE {quote_ident(primary)} = ?;"
    try:
        with connection:
            cursor = execute_write(connection, sql, [row_id])
    except sqlite3.DatabaseError as e:
        raise classify_db_error(e, "Delete", engine) from e

    if cursor.rowcount < 1:
        raise NotFound()
    _warn_if_many(cursor, "Deleted", table_name, primary, row_id)
    logger.info("Deleted %s row %s = %r", table_name, primary, row_id)
    return True
