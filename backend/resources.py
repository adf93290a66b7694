# backend/resources.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from app.errors import ConfigurationError, ValidationFailure
from app.settings import settings
from backend.enrich.prompts import DEFAULT_PROMPTS

LOG = logging.getLogger(__name__)

PROMPT_KINDS = tuple(DEFAULT_PROMPTS)


def _write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    tmp.replace(path)


# ---------- tag library ----------

class TagLibrary:
    """
    Category name -> comma-separated tag names, stored as one JSON document.
    Loaded and saved wholesale.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path else settings.LIBRARY_PATH

    def load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Tag library could not be read: {e}")
        return self.validate(data)

    def save(self, library: Any) -> Dict[str, str]:
        lib = self.validate(library)
        _write_text(self.path, json.dumps(lib, indent=2, ensure_ascii=False))
        LOG.info("saved tag library (%d categories)", len(lib))
        return lib

    @staticmethod
    def validate(library: Any) -> Dict[str, str]:
        if not isinstance(library, dict):
            raise ValidationFailure("Invalid library data")
        for k, v in library.items():
            if not isinstance(k, str) or not isinstance(v, str):
                raise ValidationFailure("Invalid library data", category=str(k))
        return dict(library)

    @staticmethod
    def split(tags: str) -> List[str]:
        return [t.strip() for t in tags.split(",") if t.strip()]


# ---------- prompt templates ----------

class PromptStore:
    """Plain-text prompt templates, one file per kind, with built-in defaults."""

    def __init__(self, paths: Optional[Dict[str, Path]] = None) -> None:
        self.paths = paths or {
            "tags": settings.TAGS_PROMPT_PATH,
            "descriptions": settings.DESCRIPTIONS_PROMPT_PATH,
        }

    def _path(self, kind: str) -> Path:
        if kind not in self.paths:
            raise ValidationFailure(f"Unknown prompt kind: {kind}", kinds=list(PROMPT_KINDS))
        return Path(self.paths[kind])

    def read(self, kind: str) -> Optional[str]:
        """Stored template, or None when it cannot be read."""
        path = self._path(kind)
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            LOG.warning("Error loading %s prompt, using default: %s", kind, e)
            return None

    def load(self, kind: str) -> str:
        text = self.read(kind)
        return text if text is not None else DEFAULT_PROMPTS[kind]

    def save(self, kind: str, prompt: Any) -> None:
        path = self._path(kind)
        if not prompt or not isinstance(prompt, str):
            raise ValidationFailure("Invalid prompt data")
        _write_text(path, prompt)
        LOG.info("saved %s prompt (%d chars)", kind, len(prompt))
