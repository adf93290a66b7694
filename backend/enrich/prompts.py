# backend/enrich/prompts.py
from __future__ import annotations

from typing import Iterable
import re

CONTENT_LIMIT = 5000

DEFAULT_TAGS_PROMPT = """\
Analyze the following blog article and suggest relevant tags.

Title: {title}

Content: {content}

Existing tags: {existing_tags}

Please provide a list of 10-20 relevant tags for this article. Consider:
- Main topics and themes (most important)
- Target audience and context
- Key concepts and terminology
- Related subjects and categories
- Educational context if applicable
- Industry-specific terms
- Broader topical areas

Think deeply about the article's content, purpose, and audience. Consider both specific and general tags that would help readers discover this content.

Return ONLY the tag names, one per line, without numbering or bullet points. Order them by relevance, with the most important/primary tag first."""

DEFAULT_DESCRIPTIONS_PROMPT = """\
Analyze this article and generate metadata for SEO and social media:

Title: {title}
Content: {content}
Existing Tags: {existing_tags}

Generate 7 fields (can be similar/same across platforms):
1. CUSTOM EXCERPT (300 chars) - Most important
2. META TITLE (60 chars)
3. META DESCRIPTION (160 chars)
4. OG TITLE (60 chars)
5. OG DESCRIPTION (160 chars)
6. TWITTER TITLE (60 chars)
7. TWITTER DESCRIPTION (200 chars)

IMPORTANT:
- ALL 7 FIELDS ARE REQUIRED - Do not omit any field
- You can use the same text across similar fields
- If a field would be the same as another, still include it in the output

Return ONLY valid JSON with ALL 7 FIELDS:
{
  "custom_excerpt": "...",
  "meta_title": "...",
  "meta_description": "...",
  "og_title": "...",
  "og_description": "...",
  "twitter_title": "...",
  "twitter_description": "..."
}"""

DEFAULT_PROMPTS = {
    "tags": DEFAULT_TAGS_PROMPT,
    "descriptions": DEFAULT_DESCRIPTIONS_PROMPT,
}

_PLACEHOLDER_RE = re.compile(r"\{(title|content|existing_tags)\}")


def build_prompt(template: str, title: str, content: str, existing_tags: Iterable[str]) -> str:
    """
    Fill {title}, {content} and {existing_tags} in one pass.
    Content is cut to CONTENT_LIMIT characters; no existing tags renders as "None".
    """
    tags = [t for t in existing_tags if t]
    values = {
        "title": title or "",
        "content": (content or "")[:CONTENT_LIMIT],
        "existing_tags": ", ".join(tags) if tags else "None",
    }
    return _PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], template)
