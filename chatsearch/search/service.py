from __future__ import annotations

import logging
import math
import time
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol

from chatsearch.history.store import HistoryStore, new_entry
from chatsearch.normalize.message import normalize_message
from chatsearch.search.errors import SearchUnavailableError
from chatsearch.search.filters import passes
from chatsearch.search.highlight import highlight
from chatsearch.search.models import (
    HistoryStatistics,
    Message,
    PaginationInfo,
    SearchOptions,
    SearchRequest,
    SearchResponse,
    SearchResult,
    SearchStatistics,
    SortBy,
    SortOrder,
    as_utc,
)
from chatsearch.search.scoring import score
from chatsearch.search.tokenizer import Tokenizer


logger = logging.getLogger(__name__)

POPULAR_KEYWORDS_LIMIT = 10
RECENT_SEARCHES_LIMIT = 5


class MessageSource(Protocol):
    def fetch_messages(self, context_id: int) -> Iterable[Any]: ...


@dataclass(slots=True)
class InMemoryMessageSource:
    messages: dict[int, list[Any]] = field(default_factory=dict)

    def fetch_messages(self, context_id: int) -> list[Any]:
        return list(self.messages.get(context_id, []))


@dataclass(slots=True)
class StatisticsCache:
    value: HistoryStatistics | None = None

    def invalidate(self) -> None:
        self.value = None


@dataclass(slots=True)
class SearchService:
    source: MessageSource
    history: HistoryStore
    tokenizer: Tokenizer
    stats_cache: StatisticsCache = field(default_factory=StatisticsCache)

    def execute(self, request: SearchRequest) -> SearchResponse:
        started = time.perf_counter()
        keyword = request.keyword
        if not keyword.strip():
            return _empty_response(request, _elapsed_ms(started))

        messages = self._load_messages(request.context_id)
        candidates = [m for m in messages if passes(m, request.filters)]
        results = self._match(candidates, keyword)
        ordered = sort_results(results, request.options)

        page = request.pagination.page
        page_size = _page_size(request)
        items, pagination = paginate(ordered, page, page_size)

        matched_keywords = _merge_keywords(keyword, results)
        elapsed = _elapsed_ms(started)
        logger.debug(
            "search done keyword=%r total=%s page=%s elapsed_ms=%.2f",
            keyword,
            len(results),
            page,
            elapsed,
        )

        self.history.record(new_entry(keyword, len(results), request.filters))
        self.stats_cache.invalidate()

        return SearchResponse(
            results=items,
            pagination=pagination,
            statistics=SearchStatistics(
                total_results=len(results),
                search_time_ms=elapsed,
                matched_keywords=matched_keywords,
            ),
        )

    def statistics(self) -> HistoryStatistics:
        if self.stats_cache.value is not None:
            return self.stats_cache.value
        history = self.history.list()
        counts = Counter(entry.keyword for entry in history)
        successes = sum(1 for entry in history if entry.result_count > 0)
        self.stats_cache.value = HistoryStatistics(
            total_searches=len(history),
            popular_keywords=counts.most_common(POPULAR_KEYWORDS_LIMIT),
            recent_searches=history[:RECENT_SEARCHES_LIMIT],
            success_rate=(successes / len(history)) * 100 if history else 0.0,
        )
        return self.stats_cache.value

    def clear_history(self) -> None:
        self.history.clear()
        self.stats_cache.invalidate()

    def _load_messages(self, context_id: int) -> list[Message]:
        try:
            raw_messages = list(self.source.fetch_messages(context_id))
        except Exception as exc:
            logger.exception("message source failed context_id=%s", context_id)
            raise SearchUnavailableError() from exc
        messages: list[Message] = []
        for raw in raw_messages:
            message = normalize_message(raw)
            if message is not None:
                messages.append(message)
        return messages

    def _match(self, messages: list[Message], keyword: str) -> list[SearchResult]:
        needle = keyword.lower()
        results: list[SearchResult] = []
        for message in messages:
            if needle not in message.content.lower():
                continue
            results.append(
                SearchResult(
                    message_id=message.id,
                    content=message.content,
                    message_type=message.message_type,
                    sender=message.sender,
                    timestamp=message.timestamp,
                    matched_keywords=self.tokenizer.attribute(keyword, message.content),
                    highlights=highlight(message.content, keyword),
                    score=score(message, keyword),
                    is_own=message.is_own,
                )
            )
        return results


def sort_results(results: list[SearchResult], options: SearchOptions) -> list[SearchResult]:
    descending = options.sort_order == SortOrder.DESC
    if options.sort_by == SortBy.TIME:
        return sorted(results, key=lambda r: as_utc(r.timestamp), reverse=descending)
    if options.sort_by == SortBy.SENDER:
        return sorted(results, key=lambda r: r.sender.name.casefold(), reverse=descending)
    return sorted(results, key=lambda r: r.score, reverse=descending)


def paginate(results: list[SearchResult], page: int, page_size: int) -> tuple[list[SearchResult], PaginationInfo]:
    total = len(results)
    if page_size <= 0:
        return [], PaginationInfo(
            page=page,
            page_size=page_size,
            total=total,
            total_pages=0,
            has_next=False,
            has_prev=page > 0,
        )
    total_pages = math.ceil(total / page_size)
    start = page * page_size
    items = results[start : start + page_size] if page >= 0 else []
    return items, PaginationInfo(
        page=page,
        page_size=page_size,
        total=total,
        total_pages=total_pages,
        has_next=page + 1 < total_pages,
        has_prev=page > 0,
    )


def _merge_keywords(keyword: str, results: list[SearchResult]) -> list[str]:
    merged = [keyword.strip()]
    for result in results:
        for item in result.matched_keywords:
            if item not in merged:
                merged.append(item)
    return merged


def _page_size(request: SearchRequest) -> int:
    # an explicit page size on the page request overrides the option default
    if request.pagination.page_size is not None:
        return request.pagination.page_size
    return request.options.page_size


def _empty_response(request: SearchRequest, elapsed_ms: float) -> SearchResponse:
    _, pagination = paginate([], request.pagination.page, _page_size(request))
    return SearchResponse(
        results=[],
        pagination=pagination,
        statistics=SearchStatistics(total_results=0, search_time_ms=elapsed_ms, matched_keywords=[]),
    )


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
