from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    EMOJI = "emoji"


class SenderRole(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"
    ARBITRATOR = "arbitrator"
    UNKNOWN = "unknown"


class SortBy(str, Enum):
    RELEVANCE = "relevance"
    TIME = "time"
    SENDER = "sender"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class SuggestionKind(str, Enum):
    KEYWORD = "keyword"
    PERSON = "person"
    DATE = "date"


@dataclass(slots=True, frozen=True)
class Sender:
    id: int
    name: str
    role: SenderRole = SenderRole.UNKNOWN


@dataclass(slots=True, frozen=True)
class Message:
    id: str
    content: str
    message_type: MessageType
    sender: Sender
    timestamp: datetime
    is_own: bool = False
    is_recalled: bool = False


@dataclass(slots=True, frozen=True)
class DateRange:
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return as_utc(self.start) <= as_utc(moment) <= as_utc(self.end)


@dataclass(slots=True, frozen=True)
class SearchFilters:
    keyword: str = ""
    message_types: frozenset[MessageType] = frozenset()
    senders: frozenset[int] = frozenset()
    date_range: DateRange | None = None
    own_messages_only: bool = False
    include_recalled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "keyword": self.keyword,
            "messageTypes": sorted(t.value for t in self.message_types),
            "senders": sorted(self.senders),
            "dateRange": (
                {"start": self.date_range.start.isoformat(), "end": self.date_range.end.isoformat()}
                if self.date_range
                else None
            ),
            "ownMessagesOnly": self.own_messages_only,
            "includeRecalled": self.include_recalled,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SearchFilters:
        raw_range = data.get("dateRange")
        date_range = None
        if isinstance(raw_range, dict):
            date_range = DateRange(
                start=datetime.fromisoformat(raw_range["start"]),
                end=datetime.fromisoformat(raw_range["end"]),
            )
        return cls(
            keyword=str(data.get("keyword", "")),
            message_types=frozenset(MessageType(t) for t in data.get("messageTypes", [])),
            senders=frozenset(int(s) for s in data.get("senders", [])),
            date_range=date_range,
            own_messages_only=bool(data.get("ownMessagesOnly", False)),
            include_recalled=bool(data.get("includeRecalled", False)),
        )


@dataclass(slots=True, frozen=True)
class SearchOptions:
    page_size: int = 20
    max_results: int = 1000
    sort_by: SortBy = SortBy.RELEVANCE
    sort_order: SortOrder = SortOrder.DESC
    fuzzy_search: bool = False
    pinyin_search: bool = False


@dataclass(slots=True, frozen=True)
class PageRequest:
    page: int = 0
    page_size: int | None = None


@dataclass(slots=True, frozen=True)
class SearchRequest:
    keyword: str
    filters: SearchFilters = field(default_factory=SearchFilters)
    options: SearchOptions = field(default_factory=SearchOptions)
    pagination: PageRequest = field(default_factory=PageRequest)
    context_id: int = 0


@dataclass(slots=True, frozen=True)
class HighlightFragment:
    text: str
    is_match: bool


@dataclass(slots=True)
class SearchResult:
    message_id: str
    content: str
    message_type: MessageType
    sender: Sender
    timestamp: datetime
    matched_keywords: list[str]
    highlights: list[HighlightFragment]
    score: float
    is_own: bool


@dataclass(slots=True, frozen=True)
class PaginationInfo:
    page: int
    page_size: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


@dataclass(slots=True, frozen=True)
class SearchStatistics:
    total_results: int
    search_time_ms: float
    matched_keywords: list[str]


@dataclass(slots=True)
class SearchResponse:
    results: list[SearchResult]
    pagination: PaginationInfo
    statistics: SearchStatistics


@dataclass(slots=True, frozen=True)
class SearchHistoryEntry:
    id: str
    keyword: str
    searched_at: str
    result_count: int
    filters: SearchFilters

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "keyword": self.keyword,
            "searchedAt": self.searched_at,
            "resultCount": self.result_count,
            "filters": self.filters.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SearchHistoryEntry:
        return cls(
            id=str(data["id"]),
            keyword=str(data["keyword"]),
            searched_at=str(data["searchedAt"]),
            result_count=int(data.get("resultCount", 0)),
            filters=SearchFilters.from_dict(data.get("filters") or {}),
        )


@dataclass(slots=True, frozen=True)
class SearchSuggestion:
    text: str
    kind: SuggestionKind
    description: str | None = None
    icon: str | None = None


@dataclass(slots=True, frozen=True)
class HistoryStatistics:
    total_searches: int
    popular_keywords: list[tuple[str, int]]
    recent_searches: list[SearchHistoryEntry]
    success_rate: float
