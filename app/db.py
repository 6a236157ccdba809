import sqlite3
from pathlib import Path
from datetime import datetime, timezone

def get_conn(db_path: str) -> sqlite3.Connection:
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, isolation_level=None)  # autocommit
    conn.execute("PRAGMA journal_mode=WAL;")
    return conn

DDL = [
    # One JSON blob per key; each key is an independent last-write-wins register.
    """
CREATE TABLE IF NOT EXISTS kv_store (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL,
  updated_at_utc TEXT NOT NULL
);
""",
]

def migrate(conn: sqlite3.Connection):
    cur = conn.cursor()
    for stmt in DDL:
        cur.execute(stmt)
    conn.commit()


class SqliteKeyValueStore:
    """String key-value store on a single SQLite table.

    A connection is opened per call so the store can be used from the event
    loop and from worker threads alike.
    """
    def __init__(self, db_path: str):
        self.db_path = db_path
        conn = get_conn(db_path)
        migrate(conn)
        conn.close()

    def get(self, key: str) -> str | None:
        conn = get_conn(self.db_path)
        try:
            row = conn.execute("SELECT value FROM kv_store WHERE key=?", (key,)).fetchone()
        finally:
            conn.close()
        return row[0] if row else None

    def set(self, key: str, value: str):
        now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        conn = get_conn(self.db_path)
        try:
            conn.execute(
                """
                INSERT INTO kv_store(key, value, updated_at_utc) VALUES(?,?,?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at_utc=excluded.updated_at_utc
                """,
                (key, value, now),
            )
        finally:
            conn.close()

    def keys(self) -> list[str]:
        conn = get_conn(self.db_path)
        try:
            rows = conn.execute("SELECT key FROM kv_store ORDER BY key").fetchall()
        finally:
            conn.close()
        return [r[0] for r in rows]


class MemoryKeyValueStore:
    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str):
        self.data[key] = value

    def keys(self) -> list[str]:
        return sorted(self.data)
