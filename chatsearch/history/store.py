from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone

from chatsearch.normalize.message import parse_timestamp
from chatsearch.search.models import SearchFilters, SearchHistoryEntry
from chatsearch.storage.slots import SlotStore


logger = logging.getLogger(__name__)

HISTORY_SLOT_KEY = "chat_search_history"
MAX_HISTORY_ITEMS = 10

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def new_entry(keyword: str, result_count: int, filters: SearchFilters) -> SearchHistoryEntry:
    return SearchHistoryEntry(
        id=uuid.uuid4().hex,
        keyword=keyword,
        searched_at=datetime.now(timezone.utc).isoformat(timespec="microseconds"),
        result_count=result_count,
        filters=filters,
    )


class HistoryStore:
    """Most-recent-first search history, deduplicated by keyword and persisted to one slot."""

    def __init__(
        self,
        slot: SlotStore,
        key: str = HISTORY_SLOT_KEY,
        max_items: int = MAX_HISTORY_ITEMS,
        display_limit: int | None = None,
    ) -> None:
        self.slot = slot
        self.key = key
        self.max_items = max_items
        self.display_limit = display_limit if display_limit is not None else max_items
        self._entries: list[SearchHistoryEntry] = self._load()

    def record(self, entry: SearchHistoryEntry) -> None:
        self._entries = [item for item in self._entries if item.keyword != entry.keyword]
        self._entries.insert(0, entry)
        del self._entries[self.max_items :]
        self._persist()

    def list(self) -> list[SearchHistoryEntry]:
        ordered = sorted(self._entries, key=_searched_at, reverse=True)
        return ordered[: self.display_limit]

    def clear(self) -> None:
        self._entries = []
        self.slot.remove(self.key)

    def __len__(self) -> int:
        return len(self._entries)

    def _load(self) -> list[SearchHistoryEntry]:
        stored = self.slot.get(self.key)
        if not stored:
            return []
        try:
            data = json.loads(stored)
            if not isinstance(data, list):
                raise ValueError(f"expected list, got {type(data).__name__}")
            entries = [SearchHistoryEntry.from_dict(item) for item in data]
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning("discarding malformed search history key=%s error=%r", self.key, exc)
            return []
        valid = [entry for entry in entries if parse_timestamp(entry.searched_at) is not None]
        if len(valid) < len(entries):
            logger.warning(
                "dropping history entries with bad timestamps key=%s dropped=%s",
                self.key,
                len(entries) - len(valid),
            )
        return valid[: self.max_items]

    def _persist(self) -> None:
        payload = json.dumps([entry.to_dict() for entry in self._entries], ensure_ascii=False)
        try:
            self.slot.set(self.key, payload)
        except Exception as exc:
            logger.warning("failed to persist search history key=%s error=%r", self.key, exc)


def _searched_at(entry: SearchHistoryEntry) -> datetime:
    return parse_timestamp(entry.searched_at) or _EPOCH
