# backend/tagging/board.py
from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Iterator, List, Optional

from app.errors import ValidationFailure
from backend.tagging.keywords import Keyword
from backend.tagging.normalize import normalize_tag


class TagList:
    """
    Ordered, case-insensitively unique list of normalized tag names.
    Position 0 is the primary tag.
    """

    def __init__(self, names: Iterable[str] = ()) -> None:
        self._names: List[str] = []
        self.extend(names)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        key = normalize_tag(name.strip()).casefold()
        return any(n.casefold() == key for n in self._names)

    def __repr__(self) -> str:
        return f"TagList({self._names!r})"

    @property
    def names(self) -> List[str]:
        return list(self._names)

    @property
    def primary(self) -> Optional[str]:
        return self._names[0] if self._names else None

    def add(self, name: str) -> bool:
        tag = normalize_tag(name.strip())
        if not tag or tag in self:
            return False
        self._names.append(tag)
        return True

    def extend(self, names: Iterable[str]) -> int:
        return sum(1 for n in names if self.add(n))

    def remove(self, name: str) -> None:
        key = normalize_tag(name.strip()).casefold()
        self._names = [n for n in self._names if n.casefold() != key]

    def clear(self) -> None:
        self._names.clear()

    def move(self, from_index: int, to_index: int) -> None:
        n = len(self._names)
        if not (0 <= from_index < n and 0 <= to_index < n):
            raise IndexError(f"move({from_index}, {to_index}) out of range for {n} tags")
        tag = self._names.pop(from_index)
        self._names.insert(to_index, tag)


class TagBoard:
    """The editing columns for one article: existing, AI, new (to save) and keywords."""

    def __init__(self) -> None:
        self.article_id: Optional[str] = None
        self.existing = TagList()
        self.ai = TagList()
        self.new = TagList()
        self.keywords: List[Keyword] = []

    def load_article(self, article: Any) -> None:
        self.article_id = article.id
        self.existing = TagList(t.name for t in (article.tags or []))
        self.ai = TagList()
        self.new = TagList()
        self.keywords = []

    def set_ai_suggestions(self, tags: Iterable[str]) -> None:
        self.ai = TagList(tags)

    def add_all_existing(self) -> int:
        return self.new.extend(self.existing)

    def add_all_ai(self) -> int:
        return self.new.extend(self.ai)

    def add_keyword(self, word: str) -> bool:
        return self.new.add(word)

    def save_payload(self) -> List[str]:
        if not len(self.new):
            raise ValidationFailure("Please add at least one tag to the New column.")
        return self.new.names


class ScreenState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


class Screen:
    """idle -> loading -> loaded | error; loaded/error may start loading again."""

    def __init__(self) -> None:
        self.state = ScreenState.IDLE
        self.data: Any = None
        self.error: Optional[str] = None

    def start(self) -> None:
        if self.state is ScreenState.LOADING:
            raise RuntimeError("already loading")
        self.state = ScreenState.LOADING
        self.error = None

    def succeed(self, data: Any) -> None:
        if self.state is not ScreenState.LOADING:
            raise RuntimeError(f"cannot succeed from {self.state.value}")
        self.state = ScreenState.LOADED
        self.data = data

    def fail(self, message: str) -> None:
        # prior data is kept; a failed action never partially applies
        if self.state is not ScreenState.LOADING:
            raise RuntimeError(f"cannot fail from {self.state.value}")
        self.state = ScreenState.ERROR
        self.error = message
