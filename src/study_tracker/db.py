"""Local key/value storage backed by SQLite."""
import sqlite3
from pathlib import Path

from study_tracker.config import DEFAULT_DB_PATH
from study_tracker.errors import PersistenceError

SCHEMA = """
CREATE TABLE IF NOT EXISTS local_storage (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL UNIQUE,
    value TEXT,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating the storage table if it doesn't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


def get_item(db_path: str, key: str) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM local_storage WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else None


def set_item(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO local_storage (key, value) VALUES (?, ?) "
        "ON CONFLICT(key) DO UPDATE SET value=?, updated_at=CURRENT_TIMESTAMP",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def remove_item(db_path: str, key: str) -> None:
    conn = get_connection(db_path)
    conn.execute("DELETE FROM local_storage WHERE key = ?", (key,))
    conn.commit()
    conn.close()


class SQLiteStorage:
    """The repository's storage backend: one string value per key."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path
        init_db(db_path)

    def get_item(self, key: str) -> str | None:
        try:
            return get_item(self.db_path, key)
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not read {key!r}: {e}") from e

    def set_item(self, key: str, value: str) -> None:
        try:
            set_item(self.db_path, key, value)
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not write {key!r}: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            remove_item(self.db_path, key)
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not remove {key!r}: {e}") from e


class MemoryStorage:
    """In-process storage with the same interface, for tests and dry runs."""

    def __init__(self, items: dict | None = None):
        self.items = dict(items or {})
        self.writes = 0

    def get_item(self, key: str) -> str | None:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value
        self.writes += 1

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)
