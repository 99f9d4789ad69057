from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from chatsearch.history.store import HistoryStore
from chatsearch.search.models import Message, SearchSuggestion, SenderRole, SuggestionKind


MAX_SUGGESTIONS = 8
MAX_KEYWORD_SUGGESTIONS = 3
MAX_PERSON_SUGGESTIONS = 2

ROLE_LABELS = {
    SenderRole.BUYER: ("买家", "👤"),
    SenderRole.SELLER: ("卖家", "🏪"),
    SenderRole.ARBITRATOR: ("仲裁员", "⚖️"),
    SenderRole.UNKNOWN: ("成员", "👤"),
}

# (triggers, suggestion text, description, icon)
DATE_PHRASES: list[tuple[tuple[str, ...], str, str, str]] = [
    (("今天", "今日", "today"), "今天", "今天的消息", "📅"),
    (("昨天", "昨日", "yesterday"), "昨天", "昨天的消息", "📅"),
    (("本周", "这周", "this week"), "本周", "本周的消息", "📆"),
]


@dataclass(slots=True, frozen=True)
class Contact:
    id: int
    name: str
    role: SenderRole


def default_directory() -> list[Contact]:
    return [
        Contact(id=1, name="张三", role=SenderRole.BUYER),
        Contact(id=2, name="李四", role=SenderRole.SELLER),
        Contact(id=3, name="王五", role=SenderRole.ARBITRATOR),
    ]


def directory_from_messages(messages: Iterable[Message]) -> list[Contact]:
    contacts: dict[int, Contact] = {}
    for message in messages:
        sender = message.sender
        if sender.name and sender.id not in contacts:
            contacts[sender.id] = Contact(id=sender.id, name=sender.name, role=sender.role)
    return list(contacts.values())


@dataclass(slots=True)
class SuggestionCache:
    entries: dict[str, list[SearchSuggestion]] = field(default_factory=dict)

    def get(self, key: str) -> list[SearchSuggestion] | None:
        return self.entries.get(key)

    def put(self, key: str, suggestions: list[SearchSuggestion]) -> None:
        self.entries[key] = suggestions


@dataclass(slots=True)
class SuggestionGenerator:
    history: HistoryStore
    directory: list[Contact] = field(default_factory=default_directory)
    max_suggestions: int = MAX_SUGGESTIONS
    cache: SuggestionCache = field(default_factory=SuggestionCache)

    def suggest(self, partial_keyword: str) -> list[SearchSuggestion]:
        cache_key = partial_keyword.strip().lower()
        if not cache_key:
            return []
        cached = self.cache.get(cache_key)
        if cached is not None:
            return list(cached)

        suggestions: list[SearchSuggestion] = []
        suggestions.extend(self._keyword_suggestions(cache_key))
        suggestions.extend(self._person_suggestions(cache_key))
        suggestions.extend(self._date_suggestions(cache_key))

        capped = _dedupe(suggestions)[: self.max_suggestions]
        self.cache.put(cache_key, capped)
        return list(capped)

    def _keyword_suggestions(self, needle: str) -> list[SearchSuggestion]:
        matches = [entry for entry in self.history.list() if needle in entry.keyword.lower()]
        return [
            SearchSuggestion(
                text=entry.keyword,
                kind=SuggestionKind.KEYWORD,
                description=f"{entry.result_count} 个结果",
                icon="🔍",
            )
            for entry in matches[:MAX_KEYWORD_SUGGESTIONS]
        ]

    def _person_suggestions(self, needle: str) -> list[SearchSuggestion]:
        matches = [contact for contact in self.directory if needle in contact.name.lower()]
        suggestions: list[SearchSuggestion] = []
        for contact in matches[:MAX_PERSON_SUGGESTIONS]:
            label, icon = ROLE_LABELS.get(contact.role, ROLE_LABELS[SenderRole.UNKNOWN])
            suggestions.append(
                SearchSuggestion(text=contact.name, kind=SuggestionKind.PERSON, description=label, icon=icon)
            )
        return suggestions

    def _date_suggestions(self, needle: str) -> list[SearchSuggestion]:
        return [
            SearchSuggestion(text=text, kind=SuggestionKind.DATE, description=description, icon=icon)
            for triggers, text, description, icon in DATE_PHRASES
            if any(trigger in needle for trigger in triggers)
        ]


def _dedupe(suggestions: list[SearchSuggestion]) -> list[SearchSuggestion]:
    seen: set[tuple[str, SuggestionKind]] = set()
    unique: list[SearchSuggestion] = []
    for suggestion in suggestions:
        key = (suggestion.text, suggestion.kind)
        if key in seen:
            continue
        seen.add(key)
        unique.append(suggestion)
    return unique
