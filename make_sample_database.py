import logging
import os
import sys
from dbutils import Connection

logger = logging.getLogger(__name__)

# Unix epoch timestamp (January 1, 2024 00:00:00 UTC)
EPOCH_DATE = 1704067200

PEOPLE = [
    ("Ada Lovelace", "ada@example.com", "555-0100"),
    ("Grace Hopper", "grace@example.com", None),
    ("Edsger Dijkstra", "edsger@example.com", "555-0199"),
]

def create_sample_database(db_path, with_rows=True):
    # Remove existing database if it exists
    if os.path.exists(db_path):
        os.remove(db_path)

    connection = Connection(db_path)

    connection.execute("""
        CREATE TABLE people (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT NOT NULL UNIQUE,
            phone TEXT,
            created_at INTEGER
        )
    """)

    # no declared primary key: rows can be listed and inserted, not edited
    connection.execute("""
        CREATE TABLE notes (
            body TEXT,
            url TEXT
        )
    """)

    if with_rows:
        for name, email, phone in PEOPLE:
            connection.execute("""
                INSERT INTO people (name, email, phone, created_at)
                VALUES (?, ?, ?, ?)
            """, (name, email, phone, EPOCH_DATE))

        connection.execute("""
            INSERT INTO notes (body, url)
            VALUES (?, ?)
        """, ("Hello, world!", "https://example.com/blog/article-123"))

    connection.commit()
    connection.close()
    logger.info("Sample database written to %s", db_path)
    return db_path

def main():
    logging.basicConfig(level=logging.INFO)
    db_path = sys.argv[1] if len(sys.argv) > 1 else "data/sample.db"
    os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
    create_sample_database(db_path)

if __name__ == "__main__":
    main()
