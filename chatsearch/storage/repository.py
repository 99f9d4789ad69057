from __future__ import annotations

import sqlite3
import time
from datetime import datetime

from chatsearch.search.models import Message, MessageType, Sender, SenderRole, as_utc


class MessageRepository:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def upsert_message(self, context_id: int, msg: Message) -> int:
        now = int(time.time())
        with self.conn:
            self.conn.execute(
                """
                INSERT INTO chat_messages (
                    context_id, message_id, content, message_type, sender_id, sender_name,
                    sender_role, timestamp, is_own, is_recalled, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(context_id, message_id) DO UPDATE SET
                    content=excluded.content,
                    message_type=excluded.message_type,
                    sender_id=excluded.sender_id,
                    sender_name=excluded.sender_name,
                    sender_role=excluded.sender_role,
                    timestamp=excluded.timestamp,
                    is_own=excluded.is_own,
                    is_recalled=excluded.is_recalled,
                    updated_at=excluded.updated_at
                """,
                (
                    context_id,
                    msg.id,
                    msg.content,
                    msg.message_type.value,
                    msg.sender.id,
                    msg.sender.name,
                    msg.sender.role.value,
                    as_utc(msg.timestamp).isoformat(timespec="microseconds"),
                    int(msg.is_own),
                    int(msg.is_recalled),
                    now,
                    now,
                ),
            )
            row = self.conn.execute(
                "SELECT id FROM chat_messages WHERE context_id=? AND message_id=?",
                (context_id, msg.id),
            ).fetchone()
            return int(row["id"])

    def fetch_messages(self, context_id: int) -> list[Message]:
        rows = self.conn.execute(
            """
            SELECT message_id, content, message_type, sender_id, sender_name, sender_role,
                   timestamp, is_own, is_recalled
            FROM chat_messages
            WHERE context_id = ?
            ORDER BY timestamp ASC, id ASC
            """,
            (context_id,),
        ).fetchall()
        return [
            Message(
                id=row["message_id"],
                content=row["content"],
                message_type=MessageType(row["message_type"]),
                sender=Sender(
                    id=int(row["sender_id"]),
                    name=row["sender_name"],
                    role=SenderRole(row["sender_role"]),
                ),
                timestamp=datetime.fromisoformat(row["timestamp"]),
                is_own=bool(row["is_own"]),
                is_recalled=bool(row["is_recalled"]),
            )
            for row in rows
        ]

    def count_messages(self, context_id: int | None = None) -> int:
        if context_id is None:
            row = self.conn.execute("SELECT COUNT(1) AS c FROM chat_messages").fetchone()
        else:
            row = self.conn.execute(
                "SELECT COUNT(1) AS c FROM chat_messages WHERE context_id=?",
                (context_id,),
            ).fetchone()
        return int(row["c"])

    def get_value(self, key: str) -> str | None:
        row = self.conn.execute("SELECT value FROM kv_store WHERE key=?", (key,)).fetchone()
        return row["value"] if row else None

    def set_value(self, key: str, value: str) -> None:
        with self.conn:
            self.conn.execute(
                """
                INSERT INTO kv_store(key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value=excluded.value,
                    updated_at=excluded.updated_at
                """,
                (key, value, int(time.time())),
            )

    def remove_value(self, key: str) -> None:
        with self.conn:
            self.conn.execute("DELETE FROM kv_store WHERE key=?", (key,))
