from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from chatsearch.search.models import Message, MessageType, Sender, SenderRole, as_utc


logger = logging.getLogger(__name__)

MESSAGE_TYPE_ALIASES = {
    "sticker": MessageType.EMOJI,
    "photo": MessageType.IMAGE,
    "document": MessageType.FILE,
}


def extract_text_field(value: Any) -> str:
    if isinstance(value, str):
        return value
    if not isinstance(value, list):
        return ""
    parts: list[str] = []
    for item in value:
        if isinstance(item, str):
            parts.append(item)
        elif isinstance(item, dict):
            text = item.get("text")
            if isinstance(text, str):
                parts.append(text)
    return "".join(parts)


def parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _from_unix(value)
    if isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.lstrip("-").isdigit():
            return _from_unix(int(raw))
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            return as_utc(datetime.fromisoformat(raw))
        except ValueError:
            return None
    return None


def _from_unix(seconds: int | float) -> datetime | None:
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def parse_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def parse_message_type(value: Any) -> MessageType | None:
    if isinstance(value, MessageType):
        return value
    if value is None:
        return MessageType.TEXT
    raw = str(value).strip().lower()
    if raw in MESSAGE_TYPE_ALIASES:
        return MESSAGE_TYPE_ALIASES[raw]
    try:
        return MessageType(raw)
    except ValueError:
        return None


def parse_role(value: Any) -> SenderRole:
    try:
        return SenderRole(str(value).strip().lower())
    except ValueError:
        return SenderRole.UNKNOWN


def _field(raw: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if name in raw and raw[name] is not None:
            return raw[name]
    return None


def normalize_message(raw: Any) -> Message | None:
    if isinstance(raw, Message):
        return raw
    if not isinstance(raw, Mapping):
        logger.debug("reject message: not a mapping type=%s", type(raw).__name__)
        return None

    message_id = _field(raw, "id", "messageId", "message_id")
    timestamp = parse_timestamp(_field(raw, "timestamp", "sentAt", "date"))
    message_type = parse_message_type(_field(raw, "messageType", "message_type"))
    if message_id is None or timestamp is None or message_type is None:
        logger.debug("reject message: id=%r timestamp=%r type=%r", message_id, timestamp, message_type)
        return None

    sender_raw = raw.get("sender")
    if isinstance(sender_raw, Mapping):
        sender_id = sender_raw.get("id")
        sender_name = sender_raw.get("name")
        sender_role = sender_raw.get("role")
    else:
        sender_id = _field(raw, "senderId", "sender_id")
        sender_name = _field(raw, "senderName", "sender_name")
        sender_role = _field(raw, "senderRole", "sender_role")
    try:
        sender = Sender(
            id=int(sender_id) if sender_id is not None else 0,
            name=str(sender_name) if sender_name is not None else "",
            role=parse_role(sender_role),
        )
    except (TypeError, ValueError):
        logger.debug("reject message: id=%r bad sender id=%r", message_id, sender_id)
        return None

    return Message(
        id=str(message_id),
        content=extract_text_field(_field(raw, "content", "text")),
        message_type=message_type,
        sender=sender,
        timestamp=timestamp,
        is_own=parse_flag(_field(raw, "isOwn", "is_own")),
        is_recalled=parse_flag(_field(raw, "isRecalled", "is_recalled")),
    )
