# backend/ghost_factory.py
from typing import List, Optional

from app.errors import ConfigurationError, ValidationFailure
from app.settings import BlogConfig, settings
from backend.integrations.ghost_client import GhostClient


def list_blogs() -> List[BlogConfig]:
    return settings.BLOGS


def get_blog(blog_id: Optional[str] = None) -> BlogConfig:
    blogs = list_blogs()
    if not blogs:
        raise ConfigurationError("No Ghost blog configured (set GHOST_API_URL or GHOST_BLOGS)")
    if not blog_id:
        return blogs[0]
    for b in blogs:
        if b.id == blog_id:
            return b
    raise ValidationFailure(f"Unknown blog: {blog_id}", status_code=404)


def get_ghost(blog_id: Optional[str] = None) -> GhostClient:
    blog = get_blog(blog_id)
    return GhostClient(blog.url, blog.admin_key, blog.content_key)
