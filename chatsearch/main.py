from __future__ import annotations

import argparse
import logging
import sys

from chatsearch.config import load_settings
from chatsearch.context import RuntimeContext, create_runtime
from chatsearch.importer.json_export import import_json_export
from chatsearch.interaction.renderers import (
    render_history,
    render_response,
    render_statistics,
    render_suggestion,
)
from chatsearch.normalize.message import parse_message_type, parse_timestamp
from chatsearch.search.errors import SearchUnavailableError
from chatsearch.search.models import (
    DateRange,
    MessageType,
    PageRequest,
    SearchFilters,
    SearchOptions,
    SearchRequest,
    SortBy,
    SortOrder,
)
from chatsearch.suggest.generator import directory_from_messages


logger = logging.getLogger(__name__)


def _parse_types(values: list[str]) -> frozenset[MessageType]:
    types: set[MessageType] = set()
    for value in values:
        message_type = parse_message_type(value)
        if message_type is None:
            raise SystemExit(f"unknown message type: {value}")
        types.add(message_type)
    return frozenset(types)


def _parse_date_range(since: str | None, until: str | None) -> DateRange | None:
    if since is None and until is None:
        return None
    start = parse_timestamp(since or "1970-01-01T00:00:00Z")
    end = parse_timestamp(until or "9999-12-31T23:59:59Z")
    if start is None or end is None:
        raise SystemExit("invalid --since/--until timestamp")
    return DateRange(start=start, end=end)


def build_request(args: argparse.Namespace, runtime: RuntimeContext) -> SearchRequest:
    keyword = " ".join(args.keyword)
    page_size = args.page_size or runtime.default_page_size
    filters = SearchFilters(
        keyword=keyword,
        message_types=_parse_types(args.type or []),
        senders=frozenset(args.sender or []),
        date_range=_parse_date_range(args.since, args.until),
        own_messages_only=args.own,
        include_recalled=args.include_recalled,
    )
    options = SearchOptions(
        page_size=page_size,
        max_results=runtime.max_results,
        sort_by=SortBy(args.sort),
        sort_order=SortOrder(args.order),
    )
    return SearchRequest(
        keyword=keyword,
        filters=filters,
        options=options,
        pagination=PageRequest(page=args.page),
        context_id=args.context,
    )


def run_search(args: argparse.Namespace, runtime: RuntimeContext) -> int:
    try:
        response = runtime.execute(build_request(args, runtime))
    except SearchUnavailableError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    print(render_response(response))
    return 0


def run_suggest(args: argparse.Namespace, runtime: RuntimeContext) -> int:
    if args.context is not None:
        runtime.suggestions.directory = directory_from_messages(runtime.repo.fetch_messages(args.context))
    for suggestion in runtime.suggest(" ".join(args.partial)):
        print(render_suggestion(suggestion))
    return 0


def run_history(args: argparse.Namespace, runtime: RuntimeContext) -> int:
    if args.clear:
        runtime.clear_history()
        print("搜索历史已清除。")
        return 0
    print(render_history(runtime.history.list()))
    return 0


def run_import(args: argparse.Namespace, runtime: RuntimeContext) -> int:
    stats = import_json_export(
        json_path=args.json,
        repo=runtime.repo,
        context_id=args.context,
        dry_run=args.dry_run,
    )
    print(f"total={stats.total} imported={stats.imported} skipped={stats.skipped}")
    return 0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="In-memory chat message search")
    sub = parser.add_subparsers(dest="command", required=True)

    import_parser = sub.add_parser("import", help="Import a JSON message export")
    import_parser.add_argument("--json", required=True, help="Path to the export file")
    import_parser.add_argument("--context", type=int, required=True, help="Conversation id")
    import_parser.add_argument("--dry-run", action="store_true")

    search_parser = sub.add_parser("search", help="Search messages of one conversation")
    search_parser.add_argument("keyword", nargs="+")
    search_parser.add_argument("--context", type=int, required=True)
    search_parser.add_argument("--type", action="append", help="text, image, file or emoji")
    search_parser.add_argument("--sender", type=int, action="append")
    search_parser.add_argument("--since")
    search_parser.add_argument("--until")
    search_parser.add_argument("--own", action="store_true")
    search_parser.add_argument("--include-recalled", action="store_true")
    search_parser.add_argument("--sort", choices=[s.value for s in SortBy], default=SortBy.RELEVANCE.value)
    search_parser.add_argument("--order", choices=[o.value for o in SortOrder], default=SortOrder.DESC.value)
    search_parser.add_argument("--page", type=int, default=0)
    search_parser.add_argument("--page-size", type=int)

    suggest_parser = sub.add_parser("suggest", help="Suggest completions for a partial keyword")
    suggest_parser.add_argument("partial", nargs="+")
    suggest_parser.add_argument("--context", type=int, help="Build the person directory from this conversation")

    history_parser = sub.add_parser("history", help="Show or clear search history")
    history_parser.add_argument("--clear", action="store_true")

    sub.add_parser("stats", help="Show search statistics")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = load_settings()
    logging.basicConfig(
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        level=getattr(logging, settings.log_level, logging.INFO),
    )
    logging.getLogger("jieba").setLevel(logging.WARNING)
    runtime = create_runtime(settings)
    logger.debug("runtime ready sqlite_path=%s", settings.sqlite_path)

    if args.command == "import":
        return run_import(args, runtime)
    if args.command == "search":
        return run_search(args, runtime)
    if args.command == "suggest":
        return run_suggest(args, runtime)
    if args.command == "history":
        return run_history(args, runtime)
    print(render_statistics(runtime.search_service.statistics()))
    return 0


if __name__ == "__main__":
    sys.exit(main())
