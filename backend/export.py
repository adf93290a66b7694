# backend/export.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from app.errors import ValidationFailure
from backend.integrations.ghost_client import GhostClient
from backend.models import GhostPost


@dataclass
class ContextExport:
    content: str
    filename: str
    count: int


def _utc_iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _article_md(index: int, post: GhostPost) -> str:
    lines = [
        f"## Article {index}: {post.title}",
        "",
        f"**URL:** {post.url or ''}",
        f"**Slug:** {post.slug}",
        f"**Published:** {post.published_at or ''}",
    ]
    if post.tags:
        lines.append(f"**Tags:** {', '.join(t.name for t in post.tags)}")
    if post.authors:
        lines.append(f"**Authors:** {', '.join(a.name for a in post.authors)}")
    if post.excerpt:
        lines.append(f"**Excerpt:** {post.excerpt}")
    lines += ["", "### Content", "", post.plaintext or "", "", "---", "", ""]
    return "\n".join(lines)


def render_context(posts: Sequence[GhostPost], now: Optional[datetime] = None) -> ContextExport:
    """Bundle posts into one Markdown document for use as AI context."""
    now = now or datetime.now(timezone.utc)
    head = (
        "# Ghost Blog Context Export\n\n"
        f"Generated on: {_utc_iso(now)}\n"
        f"Total Articles: {len(posts)}\n\n"
        "---\n\n"
    )
    body = "".join(_article_md(i, p) for i, p in enumerate(posts, start=1))
    return ContextExport(
        content=head + body,
        filename=f"ghost-context-{now.astimezone(timezone.utc).date().isoformat()}.md",
        count=len(posts),
    )


async def export_posts(ghost: GhostClient, post_ids: Optional[List[str]], now: Optional[datetime] = None) -> ContextExport:
    if not isinstance(post_ids, list) or not post_ids:
        raise ValidationFailure("Invalid post IDs")
    posts = await asyncio.gather(*(ghost.fetch_post(pid) for pid in post_ids))
    return render_context(posts, now=now)
