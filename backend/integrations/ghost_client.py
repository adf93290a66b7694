# backend/integrations/ghost_client.py
from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Dict, List, Optional

import httpx
import jwt
from pydantic import ValidationError

from app.errors import ConfigurationError, ParseFailure, UpstreamError, ValidationFailure
from app.settings import settings
from backend.models import CUSTOM_EXCERPT_MAX, GhostPost
from backend.tagging.normalize import dedupe_tags

_LOG = logging.getLogger(__name__)

TOKEN_TTL_S = 5 * 60

SUMMARY_FIELDS = (
    "id,title,slug,html,custom_excerpt,meta_title,meta_description,"
    "og_title,og_description,twitter_title,twitter_description"
)
EXPORT_FIELDS = "id,title,slug,url,excerpt,plaintext,published_at,updated_at"
LISTING_FIELDS = "id,title,slug,url,excerpt,published_at,updated_at"


def make_admin_token(admin_key: str, *, now: Optional[int] = None) -> str:
    """
    Short-lived (5 min) HS256 token for the Admin API.
    admin_key is "<key id>:<hex secret>". Each call yields a fresh token.
    """
    try:
        key_id, secret = admin_key.split(":", 1)
        secret_bytes = bytes.fromhex(secret)
    except (AttributeError, ValueError):
        raise ConfigurationError("GHOST_ADMIN_API_KEY must look like <id>:<hex secret>")

    iat = int(now if now is not None else time.time())
    payload = {
        "iat": iat,
        "exp": iat + TOKEN_TTL_S,
        "aud": "/admin/",
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, secret_bytes, algorithm="HS256", headers={"kid": key_id, "typ": "JWT"})


class GhostClient:
    """
    Async wrapper over the Ghost Content and Admin APIs.
    Methods:
      - fetch_posts() / fetch_posts_by_tag(slug) / fetch_tags()   (Content API)
      - fetch_post(id)                                           (Content API, for export)
      - fetch_post_content(id)                                   (Admin API, html+plaintext)
      - update_tags(id, names) / update_post(id, fields)         (Admin API)
    Notes:
      - every admin request signs its own token; tokens are never reused.
      - writes read the post's updated_at right before the PUT so Ghost can
        reject a concurrent edit (409). Conflicts are not retried.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        admin_key: Optional[str] = None,
        content_key: Optional[str] = None,
        *,
        accept_version: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.GHOST_API_URL or "").rstrip("/")
        if not self.base_url:
            raise ConfigurationError("GHOST_API_URL not configured")
        self.admin_key = admin_key if admin_key is not None else (settings.GHOST_ADMIN_API_KEY or "")
        self.content_key = content_key if content_key is not None else (settings.GHOST_CONTENT_API_KEY or "")
        self.accept_version = accept_version or settings.GHOST_ACCEPT_VERSION
        self.timeout = httpx.Timeout(timeout_s or settings.HTTP_TIMEOUT_S, connect=10.0)
        self._transport = transport

    # -------------------- transport --------------------

    def _headers(self, admin: bool) -> Dict[str, str]:
        h = {"Accept-Version": self.accept_version, "Content-Type": "application/json"}
        if admin:
            h["Authorization"] = f"Ghost {make_admin_token(self.admin_key)}"
        return h

    async def _request(
        self,
        method: str,
        api: str,
        path: str,
        *,
        action: str,
        params: Optional[Dict[str, str]] = None,
        json_payload: Any = None,
    ) -> Dict[str, Any]:
        admin = api == "admin"
        params_final = dict(params or {})
        if not admin:
            if not self.content_key:
                raise ConfigurationError("GHOST_CONTENT_API_KEY not configured")
            params_final["key"] = self.content_key

        url = f"{self.base_url}/ghost/api/{api}/{path.lstrip('/')}"
        headers = self._headers(admin)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport, follow_redirects=True) as client:
                resp = await client.request(method, url, params=params_final, json=json_payload, headers=headers)
        except httpx.HTTPError as e:
            _LOG.warning("%s failed: %s", action, e)
            raise UpstreamError(f"Failed to {action}: {e}")

        if resp.status_code >= 400:
            try:
                body: Any = resp.json()
            except ValueError:
                body = resp.text
            _LOG.warning("%s failed: %s %s", action, resp.status_code, body)
            status = 409 if resp.status_code == 409 else (404 if resp.status_code == 404 else 502)
            raise UpstreamError(
                f"Failed to {action}: {resp.status_code} {_ghost_message(body)}",
                status_code=status,
                upstreamStatus=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError:
            raise ParseFailure(f"Failed to {action}: response is not JSON", rawResponse=resp.text[:2000])
        if not isinstance(data, dict):
            raise ParseFailure(f"Failed to {action}: unexpected response shape")
        return data

    # -------------------- parsing --------------------

    @staticmethod
    def _posts(data: Dict[str, Any], action: str) -> List[GhostPost]:
        raw = data.get("posts")
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise ParseFailure(f"Failed to {action}: 'posts' is not a list")
        try:
            return [GhostPost.model_validate(p) for p in raw]
        except ValidationError as e:
            raise ParseFailure(f"Failed to {action}: malformed post ({e.errors()[0].get('loc')})")

    def _first_post(self, data: Dict[str, Any], action: str) -> GhostPost:
        posts = self._posts(data, action)
        if not posts:
            raise UpstreamError(f"Failed to {action}: post not found", status_code=404)
        return posts[0]

    # -------------------- content API --------------------

    async def fetch_posts(self) -> List[GhostPost]:
        data = await self._request(
            "GET", "content", "posts/",
            action="fetch posts",
            params={"limit": "all", "fields": SUMMARY_FIELDS, "include": "tags"},
        )
        return self._posts(data, "fetch posts")

    async def fetch_posts_by_tag(self, tag_slug: str) -> List[GhostPost]:
        data = await self._request(
            "GET", "content", "posts/",
            action="fetch posts by tag",
            params={
                "filter": f"tag:{tag_slug}",
                "limit": "all",
                "fields": LISTING_FIELDS,
                "include": "tags,authors",
            },
        )
        return self._posts(data, "fetch posts by tag")

    async def fetch_tags(self) -> List[Dict[str, Any]]:
        data = await self._request(
            "GET", "content", "tags/",
            action="fetch tags",
            params={"limit": "all", "fields": "id,name,slug"},
        )
        tags = data.get("tags") or []
        if not isinstance(tags, list):
            raise ParseFailure("Failed to fetch tags: 'tags' is not a list")
        return tags

    async def fetch_post(self, post_id: str) -> GhostPost:
        data = await self._request(
            "GET", "content", f"posts/{post_id}/",
            action="fetch post",
            params={"fields": EXPORT_FIELDS, "include": "tags,authors", "formats": "html,plaintext"},
        )
        return self._first_post(data, "fetch post")

    # -------------------- admin API --------------------

    async def fetch_post_content(self, post_id: str) -> GhostPost:
        data = await self._request(
            "GET", "admin", f"posts/{post_id}/",
            action="fetch post content",
            params={"formats": "html,plaintext"},
        )
        return self._first_post(data, "fetch post content")

    async def _current_updated_at(self, post_id: str, action: str) -> Optional[str]:
        data = await self._request("GET", "admin", f"posts/{post_id}/", action=action)
        return self._first_post(data, action).updated_at

    async def update_tags(self, post_id: str, tag_names: List[str]) -> bool:
        """Replace the post's tags, keeping the given order (first = primary)."""
        if not post_id:
            raise ValidationFailure("Post ID is required")
        names = dedupe_tags(tag_names or [])
        if not names:
            raise ValidationFailure("At least one tag is required")

        updated_at = await self._current_updated_at(post_id, "update post tags")
        payload = {
            "posts": [
                {
                    "id": post_id,
                    "tags": [{"name": n} for n in names],
                    "updated_at": updated_at,
                }
            ]
        }
        await self._request("PUT", "admin", f"posts/{post_id}/", action="update post tags", json_payload=payload)
        _LOG.info("updated tags of post %s (%d tags)", post_id, len(names))
        return True

    async def update_post(self, post_id: str, fields: Dict[str, Any]) -> GhostPost:
        """Partial update (descriptions, metadata, ...)."""
        if not post_id:
            raise ValidationFailure("Post ID is required")
        if not fields:
            raise ValidationFailure("No fields provided to update")
        excerpt = fields.get("custom_excerpt")
        if isinstance(excerpt, str) and len(excerpt) > CUSTOM_EXCERPT_MAX:
            raise ValidationFailure(f"Custom excerpt cannot exceed {CUSTOM_EXCERPT_MAX} characters")

        updated_at = await self._current_updated_at(post_id, "update post")
        body = {k: v for k, v in fields.items() if k not in ("id", "updated_at")}
        payload = {"posts": [{"id": post_id, **body, "updated_at": updated_at}]}
        data = await self._request("PUT", "admin", f"posts/{post_id}/", action="update post", json_payload=payload)
        _LOG.info("updated post %s (%s)", post_id, ", ".join(sorted(body)))
        return self._first_post(data, "update post")


def _ghost_message(body: Any) -> str:
    """Ghost errors look like {"errors": [{"message": ..., "context": ...}]}."""
    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            msg = errors[0].get("message") or ""
            ctx = errors[0].get("context")
            return f"{msg} ({ctx})" if ctx else str(msg)
    return str(body)[:500]
