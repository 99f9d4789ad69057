from __future__ import annotations

from chatsearch.search.models import Message


EXACT_MATCH_SCORE = 1.0
PREFIX_MATCH_SCORE = 0.8
CONTAINS_MATCH_SCORE = 0.6
LENGTH_WEIGHT = 0.4
LENGTH_DECAY_CHARS = 100
MAX_SCORE = 1.0


def score(message: Message, keyword: str) -> float:
    content = message.content.lower()
    needle = keyword.lower()

    total = 0.0
    if content == needle:
        total += EXACT_MATCH_SCORE
    if content.startswith(needle):
        total += PREFIX_MATCH_SCORE
    if needle in content:
        total += CONTAINS_MATCH_SCORE

    # shorter content relative to the keyword is a tighter match
    proximity = max(0.0, 1 - (len(content) - len(needle)) / LENGTH_DECAY_CHARS)
    total += proximity * LENGTH_WEIGHT
    return max(0.0, min(total, MAX_SCORE))
