# backend/tagging/keywords.py
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import List
import re

STOP_WORDS = frozenset({
    "the", "be", "to", "of", "and", "a", "in", "that", "have", "i", "it", "for", "not", "on", "with",
    "he", "as", "you", "do", "at", "this", "but", "his", "by", "from", "they", "we", "say", "her",
    "she", "or", "an", "will", "my", "one", "all", "would", "there", "their", "what", "so", "up",
    "out", "if", "about", "who", "get", "which", "go", "me", "when", "make", "can", "like", "time",
    "no", "just", "him", "know", "take", "people", "into", "year", "your", "good", "some", "could",
    "them", "see", "other", "than", "then", "now", "look", "only", "come", "its", "over", "think",
    "also", "back", "after", "use", "two", "how", "our", "work", "first", "well", "way", "even",
    "new", "want", "because", "any", "these", "give", "day", "most", "us", "is", "was", "are", "been",
    "has", "had", "were", "said", "did", "having", "may", "should", "am", "being", "here", "where",
})

MIN_WORD_LENGTH = 4
DEFAULT_MAX_KEYWORDS = 30

_TAG_RE = re.compile(r"<[^>]+>")
_PUNCT_RE = re.compile(r"[^\w\s]", re.ASCII)


@dataclass(frozen=True)
class Keyword:
    word: str
    count: int


def extract_keywords(text: str, max_keywords: int = DEFAULT_MAX_KEYWORDS) -> List[Keyword]:
    """
    Rank the words of an article by frequency.
    Markup is removed before tokenizing, so attribute values never count.
    Ties keep first-seen order.
    """
    if not text or max_keywords <= 0:
        return []

    clean = _TAG_RE.sub(" ", text)
    clean = _PUNCT_RE.sub(" ", clean).lower()

    counts: Counter[str] = Counter(
        w for w in clean.split() if len(w) >= MIN_WORD_LENGTH and w not in STOP_WORDS
    )
    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return [Keyword(word=w, count=c) for w, c in ranked[:max_keywords]]
