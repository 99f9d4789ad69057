from __future__ import annotations

from chatsearch.search.models import Message, SearchFilters


def passes(message: Message, filters: SearchFilters) -> bool:
    if filters.own_messages_only and not message.is_own:
        return False
    if not filters.include_recalled and message.is_recalled:
        return False
    if filters.message_types and message.message_type not in filters.message_types:
        return False
    if filters.senders and message.sender.id not in filters.senders:
        return False
    if filters.date_range is not None and not filters.date_range.contains(message.timestamp):
        return False
    return True
