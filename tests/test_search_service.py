from datetime import datetime, timezone
from typing import Any

import pytest

from chatsearch.history.store import HistoryStore
from chatsearch.search.errors import SearchUnavailableError
from chatsearch.search.models import (
    PageRequest,
    SearchFilters,
    SearchOptions,
    SearchRequest,
    SortBy,
    SortOrder,
)
from chatsearch.search.service import InMemoryMessageSource, SearchService
from chatsearch.search.tokenizer import default_tokenizer
from chatsearch.storage.slots import MemorySlotStore


def _raw(message_id: str, content: str, **overrides: Any) -> dict[str, Any]:
    raw: dict[str, Any] = {
        "id": message_id,
        "content": content,
        "messageType": "text",
        "senderId": 1,
        "senderName": "张三",
        "senderRole": "buyer",
        "timestamp": "2025-11-07T10:00:00Z",
        "isOwn": False,
    }
    raw.update(overrides)
    return raw


def _service(messages: list[Any], slot: MemorySlotStore | None = None) -> SearchService:
    history = HistoryStore(slot=slot or MemorySlotStore())
    return SearchService(
        source=InMemoryMessageSource({1: messages}),
        history=history,
        tokenizer=default_tokenizer(),
    )


def _request(keyword: str, **kwargs: Any) -> SearchRequest:
    return SearchRequest(keyword=keyword, context_id=1, **kwargs)


class _FailingSource:
    def fetch_messages(self, context_id: int) -> list[Any]:
        raise ConnectionError("upstream down")


def test_empty_keyword_returns_nothing_and_skips_history() -> None:
    service = _service([_raw("1", "消息")])
    for keyword in ["", "   "]:
        response = service.execute(_request(keyword))
        assert response.results == []
        assert response.pagination.total == 0
    assert service.history.list() == []


def test_search_returns_both_and_own_filter_narrows() -> None:
    service = _service(
        [
            _raw("1", "这是一条测试消息", isOwn=False),
            _raw("2", "我自己的消息内容", isOwn=True, senderId=2, senderName="李四"),
        ]
    )
    response = service.execute(_request("消息"))
    assert {r.message_id for r in response.results} == {"1", "2"}
    for result in response.results:
        assert "消息" in result.matched_keywords
    assert "消息" in response.statistics.matched_keywords

    own = service.execute(_request("消息", filters=SearchFilters(own_messages_only=True)))
    assert [r.message_id for r in own.results] == ["2"]


def test_exact_match_ranks_first_by_relevance() -> None:
    service = _service([_raw("long", "这是一条包含测试关键词的消息"), _raw("exact", "测试")])
    response = service.execute(_request("测试", options=SearchOptions(sort_by=SortBy.RELEVANCE)))
    assert [r.message_id for r in response.results] == ["exact", "long"]
    assert response.results[0].score > response.results[1].score


def test_results_carry_highlights_and_bounded_scores() -> None:
    service = _service([_raw("1", "Hello world, hello again")])
    result = service.execute(_request("HELLO")).results[0]
    assert "".join(f.text for f in result.highlights) == "Hello world, hello again"
    assert [f.text for f in result.highlights if f.is_match] == ["Hello", "hello"]
    assert 0.0 <= result.score <= 1.0


def test_sort_by_time_and_sender() -> None:
    service = _service(
        [
            _raw("a", "消息 a", timestamp="2025-01-02T00:00:00Z", senderName="b"),
            _raw("b", "消息 b", timestamp="2025-01-01T00:00:00Z", senderName="c"),
            _raw("c", "消息 c", timestamp="2025-01-03T00:00:00Z", senderName="a"),
        ]
    )
    by_time_desc = service.execute(_request("消息", options=SearchOptions(sort_by=SortBy.TIME)))
    assert [r.message_id for r in by_time_desc.results] == ["c", "a", "b"]
    by_time_asc = service.execute(
        _request("消息", options=SearchOptions(sort_by=SortBy.TIME, sort_order=SortOrder.ASC))
    )
    assert [r.message_id for r in by_time_asc.results] == ["b", "a", "c"]
    by_sender = service.execute(
        _request("消息", options=SearchOptions(sort_by=SortBy.SENDER, sort_order=SortOrder.ASC))
    )
    assert [r.sender.name for r in by_sender.results] == ["a", "b", "c"]
    by_sender_desc = service.execute(
        _request("消息", options=SearchOptions(sort_by=SortBy.SENDER, sort_order=SortOrder.DESC))
    )
    assert [r.sender.name for r in by_sender_desc.results] == ["c", "b", "a"]


def test_pages_reconstruct_full_result_set() -> None:
    messages = [_raw(str(i), f"消息 {i}") for i in range(23)]
    service = _service(messages)
    first = service.execute(_request("消息", pagination=PageRequest(page=0, page_size=5)))
    assert first.pagination.total == 23
    assert first.pagination.total_pages == 5
    assert first.pagination.has_next and not first.pagination.has_prev

    collected: list[str] = []
    for page in range(first.pagination.total_pages):
        response = service.execute(_request("消息", pagination=PageRequest(page=page, page_size=5)))
        collected.extend(r.message_id for r in response.results)
    assert sorted(collected, key=int) == [str(i) for i in range(23)]
    assert len(collected) == len(set(collected))

    last = service.execute(_request("消息", pagination=PageRequest(page=4, page_size=5)))
    assert len(last.results) == 3
    assert not last.pagination.has_next and last.pagination.has_prev


def test_out_of_range_page_is_empty_with_metadata() -> None:
    service = _service([_raw("1", "消息")])
    for page in [5, -1]:
        response = service.execute(_request("消息", pagination=PageRequest(page=page, page_size=10)))
        assert response.results == []
        assert response.pagination.total == 1
        assert response.pagination.total_pages == 1


def test_repeated_search_is_stable() -> None:
    service = _service([_raw(str(i), f"测试消息 {i}") for i in range(5)])
    first = service.execute(_request("测试"))
    second = service.execute(_request("测试"))
    assert [r.message_id for r in first.results] == [r.message_id for r in second.results]
    assert [r.score for r in first.results] == [r.score for r in second.results]


def test_zero_result_search_is_recorded() -> None:
    service = _service([_raw("1", "消息")])
    response = service.execute(_request("不存在"))
    assert response.pagination.total == 0
    entries = service.history.list()
    assert [(e.keyword, e.result_count) for e in entries] == [("不存在", 0)]


def test_filters_are_recorded_with_history() -> None:
    service = _service([_raw("1", "消息", isOwn=True)])
    filters = SearchFilters(keyword="消息", own_messages_only=True)
    service.execute(_request("消息", filters=filters))
    assert service.history.list()[0].filters == filters


def test_invalid_records_are_dropped_at_boundary() -> None:
    service = _service(
        [
            _raw("1", "消息"),
            _raw("2", "消息", messageType="video"),
            {"content": "消息 without id", "timestamp": "2025-01-01T00:00:00Z"},
            _raw("3", "消息", timestamp=10**20),
            _raw("4", "消息", timestamp="99999999999999999999"),
            "消息",
        ]
    )
    response = service.execute(_request("消息"))
    assert [r.message_id for r in response.results] == ["1"]


def test_source_failure_raises_unavailable() -> None:
    service = SearchService(
        source=_FailingSource(),
        history=HistoryStore(slot=MemorySlotStore()),
        tokenizer=default_tokenizer(),
    )
    with pytest.raises(SearchUnavailableError) as excinfo:
        service.execute(_request("消息"))
    assert isinstance(excinfo.value.__cause__, ConnectionError)
    assert service.history.list() == []


def test_matched_keywords_include_fragments() -> None:
    service = _service([_raw("1", "Hello there, world")])
    response = service.execute(_request("hello world"))
    assert response.results == []

    service = _service([_raw("1", "say hello world now")])
    result = service.execute(_request("hello world")).results[0]
    assert result.matched_keywords[0] == "hello world"
    assert {"hello", "world"} <= set(result.matched_keywords)


def test_statistics_cache_invalidated_on_search() -> None:
    service = _service([_raw("1", "消息")])
    service.execute(_request("消息"))
    stats = service.statistics()
    assert stats.total_searches == 1
    assert stats.success_rate == 100.0
    assert service.statistics() is stats

    service.execute(_request("没有"))
    refreshed = service.statistics()
    assert refreshed is not stats
    assert refreshed.total_searches == 2
    assert refreshed.success_rate == 50.0
    assert refreshed.recent_searches[0].keyword == "没有"

    service.clear_history()
    assert service.statistics().total_searches == 0


def test_naive_and_aware_timestamps_sort_together() -> None:
    service = _service(
        [
            _raw("naive", "消息", timestamp=datetime(2025, 1, 2)),
            _raw("aware", "消息", timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc)),
        ]
    )
    response = service.execute(_request("消息", options=SearchOptions(sort_by=SortBy.TIME)))
    assert [r.message_id for r in response.results] == ["naive", "aware"]


def test_page_size_falls_back_to_options() -> None:
    service = _service([_raw(str(i), f"消息 {i}") for i in range(5)])
    response = service.execute(_request("消息", options=SearchOptions(page_size=2)))
    assert len(response.results) == 2
    assert response.pagination.page_size == 2
    assert response.pagination.total_pages == 3

    explicit = service.execute(
        _request("消息", options=SearchOptions(page_size=2), pagination=PageRequest(page=0, page_size=4))
    )
    assert len(explicit.results) == 4
    assert explicit.pagination.total_pages == 2
