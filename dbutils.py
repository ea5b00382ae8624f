import os
import os.path
import sqlite3

def ensure_db_dir_exists(path):
    db_dir = os.path.dirname(path)
    if db_dir and not os.path.exists(db_dir):
        raise FileNotFoundError(f"Directory {db_dir} does not exist")

def get_connection(path):
    connection = sqlite3.connect(path, check_same_thread=False)
    connection.row_factory = sqlite3.Row
    connection.execute("PRAGMA foreign_keys = ON") # pragma foreign_keys=ON is needed for each connection
    return connection

def Connection(path):
    if ":memory:" in path:
        return get_connection(path)

    path = os.path.abspath(path)
    ensure_db_dir_exists(path)

    return get_connection(path)

def quote_ident(name: str) -> str:
    # only for names already checked against the schema
    escaped = name.replace('"', '""')
    return f'"{escaped}"'
