# tests/conftest.py
import json
import re
from typing import Any, Dict, List

import httpx
import pytest

from app.settings import settings

ADMIN_KEY = "650a1b2c3d4e5f:" + "ab" * 32
GHOST_URL = "https://ghost.test"
PASSWORD = "correct horse"


class FakeGhost:
    """In-memory Ghost Admin/Content API behind an httpx.MockTransport."""

    def __init__(self) -> None:
        self.posts: Dict[str, Dict[str, Any]] = {
            "p1": {
                "id": "p1",
                "title": "Data Engineering for Schools",
                "slug": "data-engineering-for-schools",
                "url": f"{GHOST_URL}/data-engineering-for-schools/",
                "excerpt": "How trusts use data.",
                "html": "<p>Data Data data engineering</p>",
                "plaintext": "Data Data data engineering",
                "published_at": "2025-01-02T10:00:00.000Z",
                "updated_at": "2025-01-05T09:00:00.000Z",
                "tags": [{"name": "data", "slug": "data"}, {"name": "CEO", "slug": "ceo"}],
                "authors": [{"name": "Sam Rivera"}],
            },
            "p2": {
                "id": "p2",
                "title": "Budget Season",
                "slug": "budget-season",
                "url": f"{GHOST_URL}/budget-season/",
                "html": "<p>Budgets and forecasts</p>",
                "plaintext": "Budgets and forecasts",
                "published_at": "2025-02-01T10:00:00.000Z",
                "updated_at": "2025-02-03T08:00:00.000Z",
                "tags": [],
            },
        }
        self.tags = [{"id": "t1", "name": "data", "slug": "data"}, {"id": "t2", "name": "CEO", "slug": "ceo"}]
        self.requests: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self.handle)

    def writes(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "PUT"]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        m = re.fullmatch(r"/ghost/api/(content|admin)/posts/([^/]+)/", path)

        if path == "/ghost/api/content/posts/":
            posts = list(self.posts.values())
            flt = request.url.params.get("filter")
            if flt and flt.startswith("tag:"):
                slug = flt[4:]
                posts = [p for p in posts if any(t.get("slug") == slug for t in p.get("tags") or [])]
            return httpx.Response(200, json={"posts": posts})

        if path == "/ghost/api/content/tags/":
            return httpx.Response(200, json={"tags": self.tags})

        if m:
            api, post_id = m.groups()
            post = self.posts.get(post_id)
            if post is None:
                return httpx.Response(404, json={"errors": [{"message": "Resource not found error, cannot read post."}]})
            if api == "admin" and not request.headers.get("authorization", "").startswith("Ghost "):
                return httpx.Response(403, json={"errors": [{"message": "Authorization failed"}]})
            if request.method == "GET":
                return httpx.Response(200, json={"posts": [post]})
            if request.method == "PUT":
                update = json.loads(request.content)["posts"][0]
                if update.get("updated_at") != post["updated_at"]:
                    return httpx.Response(409, json={"errors": [{
                        "message": "Saving failed! Someone else is editing this post.",
                        "context": "UpdateCollisionError",
                    }]})
                for k, v in update.items():
                    if k not in ("id", "updated_at"):
                        post[k] = v
                post["updated_at"] = "2025-03-01T00:00:00.000Z"
                return httpx.Response(200, json={"posts": [post]})

        return httpx.Response(404, json={"errors": [{"message": f"no route {path}"}]})


class FakeGemini:
    """Replies to generateContent with canned text."""

    def __init__(self, text: str = "Data\nEngineering") -> None:
        self.text = text
        self.status_code = 200
        self.prompts: List[str] = []
        self.requests: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = json.loads(request.content)
        self.prompts.append(body["contents"][0]["parts"][0]["text"])
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": {"message": "quota exceeded"}})
        if self.text is None:
            return httpx.Response(200, json={"candidates": [{"finishReason": "SAFETY"}]})
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": self.text}]}}]})


@pytest.fixture
def configured(monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "APP_PASSWORD", PASSWORD)
    monkeypatch.setattr(settings, "SESSION_SECRET", "test-session-secret-0123456789abcdef")
    monkeypatch.setattr(settings, "GHOST_API_URL", GHOST_URL)
    monkeypatch.setattr(settings, "GHOST_ADMIN_API_KEY", ADMIN_KEY)
    monkeypatch.setattr(settings, "GHOST_CONTENT_API_KEY", "content-key")
    monkeypatch.setattr(settings, "GHOST_BLOGS_JSON", None)
    monkeypatch.setattr(settings, "GEMINI_API_KEY", "gemini-key")
    monkeypatch.setattr(settings, "DATA_DIR", str(tmp_path))
    return settings


@pytest.fixture
def fake_ghost():
    return FakeGhost()


@pytest.fixture
def fake_gemini():
    return FakeGemini()
