from __future__ import annotations

from dataclasses import dataclass

from cryptography.fernet import Fernet

from chatsearch.config import Settings
from chatsearch.history.store import HistoryStore
from chatsearch.search.highlight import highlight
from chatsearch.search.models import HighlightFragment, SearchRequest, SearchResponse, SearchSuggestion
from chatsearch.search.service import SearchService
from chatsearch.search.tokenizer import Tokenizer, default_tokenizer
from chatsearch.storage.db import connect_db, init_db
from chatsearch.storage.repository import MessageRepository
from chatsearch.storage.slots import EncryptedSlotStore, SlotStore, SqliteSlotStore
from chatsearch.suggest.generator import SuggestionGenerator


@dataclass(slots=True)
class RuntimeContext:
    repo: MessageRepository
    tokenizer: Tokenizer
    history: HistoryStore
    search_service: SearchService
    suggestions: SuggestionGenerator
    default_page_size: int
    max_results: int

    def execute(self, request: SearchRequest) -> SearchResponse:
        return self.search_service.execute(request)

    def suggest(self, partial_keyword: str) -> list[SearchSuggestion]:
        return self.suggestions.suggest(partial_keyword)

    def highlight(self, text: str, query: str) -> list[HighlightFragment]:
        return highlight(text, query)

    def clear_history(self) -> None:
        self.search_service.clear_history()


def create_runtime(settings: Settings) -> RuntimeContext:
    conn = connect_db(settings.sqlite_path)
    init_db(conn)
    repo = MessageRepository(conn)

    slot: SlotStore = SqliteSlotStore(repo=repo)
    if settings.history_encryption_key:
        slot = EncryptedSlotStore(inner=slot, fernet=Fernet(settings.history_encryption_key.encode("utf-8")))
    history = HistoryStore(
        slot=slot,
        key=settings.history_key,
        max_items=settings.max_history_items,
    )

    tokenizer = default_tokenizer()
    search_service = SearchService(source=repo, history=history, tokenizer=tokenizer)
    suggestions = SuggestionGenerator(history=history, max_suggestions=settings.max_suggestions)
    return RuntimeContext(
        repo=repo,
        tokenizer=tokenizer,
        history=history,
        search_service=search_service,
        suggestions=suggestions,
        default_page_size=settings.default_page_size,
        max_results=settings.max_results,
    )
