from __future__ import annotations

import base64
import binascii
import os
from dataclasses import dataclass
from pathlib import Path


def _parse_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(slots=True)
class Settings:
    sqlite_path: str
    history_key: str
    max_history_items: int
    max_suggestions: int
    default_page_size: int
    max_results: int
    history_encryption_key: str | None
    log_level: str


def load_dotenv(dotenv_path: str = ".env") -> None:
    path = Path(dotenv_path)
    if not path.exists():
        return
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip().strip("\"").strip("'"))


def load_settings() -> Settings:
    load_dotenv()
    key = os.getenv("HISTORY_ENCRYPTION_KEY", "").strip() or None
    if key is not None:
        try:
            decoded = base64.urlsafe_b64decode(key.encode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise ValueError("HISTORY_ENCRYPTION_KEY is not valid urlsafe base64") from exc
        if len(decoded) != 32:
            raise ValueError("HISTORY_ENCRYPTION_KEY must decode to 32 bytes")

    return Settings(
        sqlite_path=os.getenv("SQLITE_PATH", "data/chat_search.db").strip(),
        history_key=os.getenv("SEARCH_HISTORY_KEY", "chat_search_history").strip(),
        max_history_items=_parse_int("MAX_HISTORY_ITEMS", 10),
        max_suggestions=_parse_int("MAX_SUGGESTIONS", 8),
        default_page_size=_parse_int("DEFAULT_PAGE_SIZE", 20),
        max_results=_parse_int("MAX_RESULTS", 1000),
        history_encryption_key=key,
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
    )
