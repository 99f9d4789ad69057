from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from chatsearch.normalize.message import normalize_message
from chatsearch.storage.repository import MessageRepository


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ImportStats:
    total: int = 0
    skipped: int = 0
    imported: int = 0


def _extract_messages(data: Any) -> list[Any]:
    # accepts a bare list or an export envelope {"messages": [...]}
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("messages"), list):
        return data["messages"]
    raise ValueError("export must be a list of messages or an object with a 'messages' list")


def import_json_export(
    json_path: str,
    repo: MessageRepository,
    context_id: int,
    dry_run: bool = False,
) -> ImportStats:
    data = json.loads(Path(json_path).read_text(encoding="utf-8"))
    items = _extract_messages(data)
    stats = ImportStats(total=len(items))

    for item in items:
        message = normalize_message(item)
        if message is None:
            stats.skipped += 1
            continue
        if not dry_run:
            repo.upsert_message(context_id, message)
        stats.imported += 1
    logger.info(
        "import done path=%s context_id=%s total=%s imported=%s skipped=%s dry_run=%s",
        json_path,
        context_id,
        stats.total,
        stats.imported,
        stats.skipped,
        dry_run,
    )
    return stats
