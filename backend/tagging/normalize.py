# backend/tagging/normalize.py
from __future__ import annotations

from typing import Iterable, List

ACRONYM_MAX_LENGTH = 5


def _capitalize_once(word: str) -> str:
    if not word:
        return word
    # acronyms and special cases like "MAT", "CEO", "SENCO" stay as typed
    if word == word.upper() and len(word) <= ACRONYM_MAX_LENGTH:
        return word
    return word.capitalize()


def _normalize_word(word: str) -> str:
    # titlecasing can expand the first character ("ŉ" -> "ʼN"), so one pass
    # is not always stable; repeat until it is.
    out = _capitalize_once(word)
    while out != word:
        word, out = out, _capitalize_once(out)
    return out


def normalize_tag(tag: str) -> str:
    """
    Canonical display form of a tag: each space-separated word capitalized,
    short all-caps words kept. normalize_tag(normalize_tag(x)) == normalize_tag(x).
    """
    return " ".join(_normalize_word(w) for w in tag.split(" "))


def normalize_tags(tags: Iterable[str]) -> List[str]:
    return [normalize_tag(t) for t in tags]


def dedupe_tags(tags: Iterable[str]) -> List[str]:
    """Drop blank and case-insensitive duplicate tags; first occurrence wins."""
    seen: set[str] = set()
    out: List[str] = []
    for tag in tags:
        name = tag.strip()
        key = name.casefold()
        if not name or key in seen:
            continue
        seen.add(key)
        out.append(name)
    return out


def merge_tags(*sources: Iterable[str]) -> List[str]:
    """
    Merge tags from several sources (existing, AI, manual, keywords) in
    order, collapsing case variants to one canonical tag.
    """
    merged: List[str] = []
    for src in sources:
        merged.extend(normalize_tags(t.strip() for t in src))
    return dedupe_tags(merged)
