import sqlite3
from datetime import datetime, timezone

from chatsearch.search.models import Message, MessageType, Sender, SenderRole
from chatsearch.storage.db import init_db
from chatsearch.storage.repository import MessageRepository


def _repo() -> MessageRepository:
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    init_db(conn)
    return MessageRepository(conn)


def _message(message_id: str, content: str, day: int) -> Message:
    return Message(
        id=message_id,
        content=content,
        message_type=MessageType.IMAGE,
        sender=Sender(id=2, name="李四", role=SenderRole.SELLER),
        timestamp=datetime(2025, 1, day, 8, 30, tzinfo=timezone.utc),
        is_own=True,
        is_recalled=day % 2 == 0,
    )


def test_upsert_and_fetch_by_context() -> None:
    repo = _repo()
    repo.upsert_message(100, _message("2", "第二条", 2))
    repo.upsert_message(100, _message("1", "第一条", 1))
    repo.upsert_message(200, _message("1", "其他会话", 3))

    messages = repo.fetch_messages(100)
    assert [m.id for m in messages] == ["1", "2"]
    assert messages[0] == _message("1", "第一条", 1)
    assert repo.count_messages(100) == 2
    assert repo.count_messages() == 3


def test_upsert_overwrites_existing() -> None:
    repo = _repo()
    repo.upsert_message(100, _message("1", "旧内容", 1))
    repo.upsert_message(100, _message("1", "新内容", 1))
    messages = repo.fetch_messages(100)
    assert len(messages) == 1
    assert messages[0].content == "新内容"


def test_key_value_slot_roundtrip() -> None:
    repo = _repo()
    assert repo.get_value("k") is None
    repo.set_value("k", "v1")
    repo.set_value("k", "v2")
    assert repo.get_value("k") == "v2"
    repo.remove_value("k")
    assert repo.get_value("k") is None
