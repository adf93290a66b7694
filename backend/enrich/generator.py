# backend/enrich/generator.py
from __future__ import annotations

import json
import logging
import re
from typing import Iterable, List, Optional

from pydantic import ValidationError

from app.errors import ParseFailure
from backend.enrich.prompts import build_prompt
from backend.integrations.gemini_client import GeminiClient
from backend.models import CUSTOM_EXCERPT_MAX, Descriptions
from backend.resources import PromptStore

_LOG = logging.getLogger(__name__)

# bullets ("*", "-", "+", "•", dashes) and "1." / "2)" / "3:" / "4 " numbering, possibly repeated
_MARKER_RE = re.compile(r"^(?:[*\-+•\u2013\u2014]+\s*|\d+[.):]\s*|\d+\s+)+")
_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


# ---------- response parsing ----------

def parse_tag_lines(text: str) -> List[str]:
    """
    Permissive parse of a free-form tag list: one tag per line, markers
    stripped, comma-separated lines split into several tags.
    """
    tags: List[str] = []
    for line in (text or "").strip().splitlines():
        clean = _MARKER_RE.sub("", line.strip()).strip()
        if not clean:
            continue
        if "," in clean:
            tags.extend(t.strip() for t in clean.split(",") if t.strip())
        else:
            tags.append(clean)
    return tags


def truncate_excerpt(excerpt: Optional[str]) -> Optional[str]:
    if excerpt and len(excerpt) > CUSTOM_EXCERPT_MAX:
        return excerpt[: CUSTOM_EXCERPT_MAX - 3] + "..."
    return excerpt


def parse_descriptions(text: str) -> Descriptions:
    """
    Strict parse of the metadata JSON object (code fences allowed).
    Raises ParseFailure carrying the raw text when it is not a JSON object.
    """
    clean = _FENCE_RE.sub("", text or "").strip()
    try:
        data = json.loads(clean)
    except json.JSONDecodeError:
        _LOG.warning("Failed to parse AI response: %s", text)
        raise ParseFailure("Failed to parse AI response", rawResponse=text)
    if not isinstance(data, dict):
        raise ParseFailure("AI response is not a JSON object", rawResponse=text)
    try:
        descriptions = Descriptions.model_validate(data)
    except ValidationError as e:
        raise ParseFailure(f"AI response has invalid fields: {e.errors()[0].get('loc')}", rawResponse=text)

    descriptions.custom_excerpt = truncate_excerpt(descriptions.custom_excerpt)
    return descriptions


# ---------- generation ----------

class ContentGenerator:
    """Builds prompts from the stored templates and asks Gemini for tags or metadata."""

    def __init__(self, client: Optional[GeminiClient] = None, prompts: Optional[PromptStore] = None) -> None:
        self.client = client or GeminiClient()
        self.prompts = prompts or PromptStore()

    async def suggest_tags(self, title: str, content: str, existing_tags: Iterable[str]) -> List[str]:
        prompt = build_prompt(self.prompts.load("tags"), title, content, existing_tags)
        text = await self.client.generate(prompt)
        tags = parse_tag_lines(text)
        _LOG.info("generated %d tag suggestions for %r", len(tags), title[:60])
        return tags

    async def describe(self, title: str, content: str, existing_tags: Iterable[str]) -> Descriptions:
        prompt = build_prompt(self.prompts.load("descriptions"), title, content, existing_tags)
        text = await self.client.generate(prompt)
        return parse_descriptions(text)
