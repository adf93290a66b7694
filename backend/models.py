# backend/models.py
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

DESCRIPTION_FIELDS = (
    "custom_excerpt",
    "meta_title",
    "meta_description",
    "og_title",
    "og_description",
    "twitter_title",
    "twitter_description",
)

CUSTOM_EXCERPT_MAX = 300

# nominal limits; only the custom excerpt is enforced
SOFT_LIMITS: Dict[str, int] = {
    "meta_title": 60,
    "meta_description": 160,
    "og_title": 60,
    "og_description": 160,
    "twitter_title": 60,
    "twitter_description": 200,
}


class GhostTag(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    slug: Optional[str] = None
    id: Optional[str] = None


class GhostAuthor(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str


class GhostPost(BaseModel):
    """A Ghost article. Every field but id/title is optional: the CMS only returns what was selected."""

    model_config = ConfigDict(extra="allow")

    id: str
    title: str = ""
    slug: str = ""
    url: Optional[str] = None
    html: Optional[str] = None
    plaintext: Optional[str] = None
    excerpt: Optional[str] = None
    published_at: Optional[str] = None
    updated_at: Optional[str] = None
    tags: Optional[List[GhostTag]] = None
    authors: Optional[List[GhostAuthor]] = None
    custom_excerpt: Optional[str] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    og_title: Optional[str] = None
    og_description: Optional[str] = None
    twitter_title: Optional[str] = None
    twitter_description: Optional[str] = None

    @property
    def tag_names(self) -> List[str]:
        return [t.name for t in (self.tags or [])]

    @property
    def body_text(self) -> str:
        return self.plaintext or self.html or ""


class Descriptions(BaseModel):
    """SEO/social metadata produced by the model. Missing fields stay None."""

    model_config = ConfigDict(extra="ignore")

    custom_excerpt: Optional[str] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    og_title: Optional[str] = None
    og_description: Optional[str] = None
    twitter_title: Optional[str] = None
    twitter_description: Optional[str] = None

    def over_soft_limits(self) -> List[str]:
        return [
            f for f, limit in SOFT_LIMITS.items()
            if getattr(self, f) is not None and len(getattr(self, f)) > limit
        ]


# ---------- request bodies ----------

class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class LoginRequest(_Body):
    password: str = ""


class GenerateTagsRequest(_Body):
    post_id: str = Field(default="", alias="postId")
    existing_tags: List[str] = Field(default_factory=list, alias="existingTags")


class UpdateTagsRequest(_Body):
    post_id: str = Field(default="", alias="postId")
    tags: Optional[List[str]] = None


class GenerateDescriptionsRequest(_Body):
    title: str = ""
    content: str = ""
    existing_tags: List[str] = Field(default_factory=list, alias="existingTags")


class UpdateDescriptionsRequest(_Body):
    post_id: str = Field(default="", alias="postId")
    custom_excerpt: Optional[str] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    og_title: Optional[str] = None
    og_description: Optional[str] = None
    twitter_title: Optional[str] = None
    twitter_description: Optional[str] = None

    def provided_fields(self) -> Dict[str, str]:
        return {f: getattr(self, f) for f in DESCRIPTION_FIELDS if f in self.model_fields_set}


class SavePromptRequest(_Body):
    prompt: Optional[str] = None


class ExportRequest(_Body):
    post_ids: Optional[List[str]] = Field(default=None, alias="postIds")
