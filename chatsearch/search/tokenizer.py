from __future__ import annotations

import re
from dataclasses import dataclass

import jieba


NON_TOKEN_RE = re.compile(r"[^\w\u4e00-\u9fff]+", re.UNICODE)
ASCII_WORD_RE = re.compile(r"^[a-z0-9_]+$")


@dataclass(slots=True)
class Tokenizer:
    stopwords: set[str]
    min_fragment_length: int = 2

    def normalize_text(self, text: str) -> str:
        lowered = text.lower().strip()
        return NON_TOKEN_RE.sub(" ", lowered).strip()

    def tokenize(self, text: str) -> list[str]:
        normalized = self.normalize_text(text)
        if not normalized:
            return []
        base_tokens = [t.strip() for t in jieba.cut(normalized) if t.strip()]
        return list(dict.fromkeys(t for t in base_tokens if t not in self.stopwords))

    def fragments(self, keyword: str) -> list[str]:
        return [
            token
            for token in self.tokenize(keyword)
            if len(token) >= self.min_fragment_length or ASCII_WORD_RE.match(token)
        ]

    def attribute(self, keyword: str, content: str) -> list[str]:
        """Keyword plus every fragment of it that also occurs in ``content``."""
        trimmed = keyword.strip()
        matched = [trimmed] if trimmed else []
        lowered = content.lower()
        for fragment in self.fragments(keyword):
            if fragment in lowered and fragment not in {m.lower() for m in matched}:
                matched.append(fragment)
        return matched


def default_tokenizer() -> Tokenizer:
    return Tokenizer(stopwords={"的", "了", "和", "是", "在", "就", "都", "而", "及", "与"})
