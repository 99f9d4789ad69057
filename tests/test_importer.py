import json
import sqlite3
from pathlib import Path

import pytest

from chatsearch.importer.json_export import import_json_export
from chatsearch.storage.db import init_db
from chatsearch.storage.repository import MessageRepository


def _repo() -> MessageRepository:
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    init_db(conn)
    return MessageRepository(conn)


def _write(tmp_path: Path, data: object) -> str:
    path = tmp_path / "export.json"
    path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
    return str(path)


def test_import_envelope_skips_invalid(tmp_path: Path) -> None:
    repo = _repo()
    path = _write(
        tmp_path,
        {
            "messages": [
                {"id": 1, "content": "你好", "timestamp": "2025-01-01T00:00:00Z"},
                {"id": 2, "content": "坏消息"},
            ]
        },
    )
    stats = import_json_export(path, repo, context_id=7)
    assert (stats.total, stats.imported, stats.skipped) == (2, 1, 1)
    assert [m.content for m in repo.fetch_messages(7)] == ["你好"]


def test_import_dry_run_writes_nothing(tmp_path: Path) -> None:
    repo = _repo()
    path = _write(tmp_path, [{"id": 1, "content": "你好", "timestamp": 1700000000}])
    stats = import_json_export(path, repo, context_id=7, dry_run=True)
    assert stats.imported == 1
    assert repo.count_messages(7) == 0


def test_import_rejects_unknown_shape(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        import_json_export(_write(tmp_path, {"items": []}), _repo(), context_id=1)
