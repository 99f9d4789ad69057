from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from cryptography.fernet import Fernet, InvalidToken

from chatsearch.storage.repository import MessageRepository


class SlotStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


@dataclass(slots=True)
class MemorySlotStore:
    values: dict[str, str] = field(default_factory=dict)

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def remove(self, key: str) -> None:
        self.values.pop(key, None)


@dataclass(slots=True)
class SqliteSlotStore:
    repo: MessageRepository

    def get(self, key: str) -> str | None:
        return self.repo.get_value(key)

    def set(self, key: str, value: str) -> None:
        self.repo.set_value(key, value)

    def remove(self, key: str) -> None:
        self.repo.remove_value(key)


@dataclass(slots=True)
class EncryptedSlotStore:
    inner: SlotStore
    fernet: Fernet

    def get(self, key: str) -> str | None:
        value = self.inner.get(key)
        if value is None:
            return None
        return self._decrypt_value(value)

    def set(self, key: str, value: str) -> None:
        self.inner.set(key, self.fernet.encrypt(value.encode("utf-8")).decode("utf-8"))

    def remove(self, key: str) -> None:
        self.inner.remove(key)

    def _decrypt_value(self, value: str) -> str | None:
        try:
            return self.fernet.decrypt(value.encode("utf-8")).decode("utf-8")
        except (InvalidToken, ValueError):
            return None
