from __future__ import annotations

import re

from chatsearch.search.models import HighlightFragment


ELLIPSIS = "..."


def highlight(text: str, query: str) -> list[HighlightFragment]:
    if not query.strip():
        return [HighlightFragment(text=text, is_match=False)]

    pattern = re.compile(re.escape(query), re.IGNORECASE)
    fragments: list[HighlightFragment] = []
    last_index = 0
    for match in pattern.finditer(text):
        if match.start() > last_index:
            fragments.append(HighlightFragment(text=text[last_index : match.start()], is_match=False))
        fragments.append(HighlightFragment(text=match.group(0), is_match=True))
        last_index = match.end()

    if not fragments:
        return [HighlightFragment(text=text, is_match=False)]
    if last_index < len(text):
        fragments.append(HighlightFragment(text=text[last_index:], is_match=False))
    return fragments


def truncate_fragments(
    fragments: list[HighlightFragment],
    max_length: int,
    smart: bool = True,
    ellipsis: bool = True,
) -> list[HighlightFragment]:
    if sum(len(f.text) for f in fragments) <= max_length:
        return list(fragments)
    if smart:
        return _smart_truncate(fragments, max_length, ellipsis)
    return _simple_truncate(fragments, max_length, ellipsis)


def _simple_truncate(
    fragments: list[HighlightFragment],
    max_length: int,
    ellipsis: bool,
) -> list[HighlightFragment]:
    kept: list[HighlightFragment] = []
    length = 0
    for fragment in fragments:
        if length >= max_length:
            break
        remaining = max_length - length
        if len(fragment.text) <= remaining:
            kept.append(fragment)
            length += len(fragment.text)
            continue
        kept.append(HighlightFragment(text=fragment.text[:remaining], is_match=fragment.is_match))
        length = max_length
    truncated = length < sum(len(f.text) for f in fragments)
    if ellipsis and truncated and kept:
        last = kept[-1]
        kept[-1] = HighlightFragment(text=last.text + ELLIPSIS, is_match=last.is_match)
    return kept


def _smart_truncate(
    fragments: list[HighlightFragment],
    max_length: int,
    ellipsis: bool,
) -> list[HighlightFragment]:
    first_match = next((i for i, f in enumerate(fragments) if f.is_match), None)
    if first_match is None:
        return _simple_truncate(fragments, max_length, ellipsis)

    window = _simple_truncate(fragments[first_match:], max_length, ellipsis=False)
    length = sum(len(f.text) for f in window)
    tail_dropped = length < sum(len(f.text) for f in fragments[first_match:])

    # fill the remaining budget with the text right before the match
    head_dropped = False
    index = first_match - 1
    while index >= 0:
        if length >= max_length:
            head_dropped = True
            break
        fragment = fragments[index]
        remaining = max_length - length
        if len(fragment.text) > remaining:
            window.insert(0, HighlightFragment(text=fragment.text[-remaining:], is_match=fragment.is_match))
            head_dropped = True
            break
        window.insert(0, fragment)
        length += len(fragment.text)
        index -= 1

    if ellipsis:
        if head_dropped:
            head = window[0]
            window[0] = HighlightFragment(text=ELLIPSIS + head.text, is_match=head.is_match)
        if tail_dropped:
            tail = window[-1]
            window[-1] = HighlightFragment(text=tail.text + ELLIPSIS, is_match=tail.is_match)
    return window
