from __future__ import annotations

from chatsearch.search.highlight import truncate_fragments
from chatsearch.search.models import (
    HighlightFragment,
    HistoryStatistics,
    SearchHistoryEntry,
    SearchResponse,
    SearchResult,
    SearchSuggestion,
    as_utc,
)
from chatsearch.suggest.generator import ROLE_LABELS


PREVIEW_LENGTH = 50


def _format_time(result: SearchResult) -> str:
    return as_utc(result.timestamp).strftime("%Y-%m-%d %H:%M")


def render_fragments(fragments: list[HighlightFragment], max_length: int | None = PREVIEW_LENGTH) -> str:
    if max_length is not None:
        fragments = truncate_fragments(fragments, max_length)
    return "".join(f"**{f.text}**" if f.is_match else f.text for f in fragments)


def render_result(result: SearchResult) -> str:
    label, _ = ROLE_LABELS[result.sender.role]
    owner = "（我）" if result.is_own else ""
    return (
        f"📌 发送者：{result.sender.name}{owner} · {label}\n"
        f"🕒 时间：{_format_time(result)}  相关度：{result.score:.2f}\n"
        f"📝 内容：{render_fragments(result.highlights)}"
    )


def render_response(response: SearchResponse, separator: str = "----") -> str:
    if not response.results:
        if response.pagination.total:
            return f"没有更多结果。（共 {response.pagination.total} 条）"
        return "未找到匹配结果。"
    pagination = response.pagination
    stats = response.statistics
    header = (
        f"共 {stats.total_results} 条结果，第 {pagination.page + 1}/{pagination.total_pages} 页，"
        f"耗时 {stats.search_time_ms:.1f} ms，关键词：{', '.join(stats.matched_keywords)}"
    )
    body = f"\n{separator}\n".join(render_result(r) for r in response.results)
    return f"{header}\n{separator}\n{body}"


def render_suggestion(suggestion: SearchSuggestion) -> str:
    icon = f"{suggestion.icon} " if suggestion.icon else ""
    description = f"（{suggestion.description}）" if suggestion.description else ""
    return f"{icon}{suggestion.text}{description}"


def render_history(entries: list[SearchHistoryEntry]) -> str:
    if not entries:
        return "暂无搜索历史。"
    return "\n".join(f"{e.searched_at}  {e.keyword}  ({e.result_count} 个结果)" for e in entries)


def render_statistics(stats: HistoryStatistics) -> str:
    popular = ", ".join(f"{keyword}×{count}" for keyword, count in stats.popular_keywords) or "-"
    return (
        f"搜索次数：{stats.total_searches}\n"
        f"成功率：{stats.success_rate:.1f}%\n"
        f"热门关键词：{popular}"
    )
