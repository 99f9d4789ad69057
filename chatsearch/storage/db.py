from __future__ import annotations

import sqlite3
from pathlib import Path


SCHEMA_PATH = Path(__file__).with_name("schema.sql")


def connect_db(sqlite_path: str) -> sqlite3.Connection:
    if sqlite_path != ":memory:":
        Path(sqlite_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(sqlite_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn


def init_db(conn: sqlite3.Connection, schema_path: Path = SCHEMA_PATH) -> None:
    schema_sql = schema_path.read_text(encoding="utf-8")
    conn.executescript(schema_sql)
    _ensure_columns(conn)
    conn.commit()


def _ensure_columns(conn: sqlite3.Connection) -> None:
    table_info = conn.execute("PRAGMA table_info(chat_messages)").fetchall()
    existing = {row[1] for row in table_info}
    if "is_recalled" not in existing:
        conn.execute("ALTER TABLE chat_messages ADD COLUMN is_recalled INTEGER NOT NULL DEFAULT 0")
