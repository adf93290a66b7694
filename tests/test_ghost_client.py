import asyncio
import json

import httpx
import jwt
import pytest

from app.errors import ConfigurationError, UpstreamError, ValidationFailure
from backend.integrations.ghost_client import TOKEN_TTL_S, GhostClient, make_admin_token

from conftest import ADMIN_KEY, GHOST_URL, FakeGhost


def _client(fake: FakeGhost) -> GhostClient:
    return GhostClient(GHOST_URL, ADMIN_KEY, "content-key", transport=fake.transport)


def _token(request) -> str:
    return request.headers["authorization"].split(" ", 1)[1]


def test_admin_token_shape():
    key_id, secret = ADMIN_KEY.split(":")
    token = make_admin_token(ADMIN_KEY, now=1_700_000_000)
    header = jwt.get_unverified_header(token)
    assert header["kid"] == key_id
    assert header["alg"] == "HS256"
    claims = jwt.decode(
        token, bytes.fromhex(secret), algorithms=["HS256"], audience="/admin/",
        options={"verify_exp": False},
    )
    assert claims["exp"] - claims["iat"] == TOKEN_TTL_S


def test_admin_token_rejects_malformed_key():
    with pytest.raises(ConfigurationError):
        make_admin_token("no-colon-here")
    with pytest.raises(ConfigurationError):
        make_admin_token("id:not-hex")


def test_fetch_posts_uses_content_key(fake_ghost):
    posts = asyncio.run(_client(fake_ghost).fetch_posts())
    assert [p.id for p in posts] == ["p1", "p2"]
    assert posts[0].tag_names == ["data", "CEO"]
    req = fake_ghost.requests[0]
    assert req.url.params["key"] == "content-key"
    assert req.url.params["limit"] == "all"
    assert req.url.params["include"] == "tags"
    assert req.headers["accept-version"] == "v5.0"
    assert "authorization" not in req.headers


def test_fetch_posts_by_tag(fake_ghost):
    posts = asyncio.run(_client(fake_ghost).fetch_posts_by_tag("ceo"))
    assert [p.id for p in posts] == ["p1"]


def test_fetch_post_content_is_signed(fake_ghost):
    post = asyncio.run(_client(fake_ghost).fetch_post_content("p1"))
    assert post.plaintext == "Data Data data engineering"
    req = fake_ghost.requests[0]
    assert req.url.path == "/ghost/api/admin/posts/p1/"
    assert req.url.params["formats"] == "html,plaintext"
    assert req.headers["authorization"].startswith("Ghost ")


def test_update_tags_reads_updated_at_before_write(fake_ghost):
    ok = asyncio.run(_client(fake_ghost).update_tags("p1", ["Leadership", "data", "Data", "CEO"]))
    assert ok is True

    methods = [r.method for r in fake_ghost.requests]
    assert methods == ["GET", "PUT"]
    body = json.loads(fake_ghost.writes()[0].content)["posts"][0]
    assert body["updated_at"] == "2025-01-05T09:00:00.000Z"
    assert body["tags"] == [{"name": "Leadership"}, {"name": "data"}, {"name": "CEO"}]
    assert fake_ghost.posts["p1"]["tags"][0] == {"name": "Leadership"}


def test_update_tags_empty_list_makes_no_request(fake_ghost):
    with pytest.raises(ValidationFailure):
        asyncio.run(_client(fake_ghost).update_tags("p1", []))
    with pytest.raises(ValidationFailure):
        asyncio.run(_client(fake_ghost).update_tags("p1", ["  ", ""]))
    assert fake_ghost.requests == []


def test_each_request_gets_its_own_token(fake_ghost):
    client = _client(fake_ghost)
    asyncio.run(client.update_tags("p1", ["One"]))
    asyncio.run(client.update_tags("p1", ["Two"]))
    tokens = [_token(r) for r in fake_ghost.requests]
    assert len(tokens) == 4
    assert len(set(tokens)) == 4


def test_update_conflict_surfaces_as_409(fake_ghost):
    client = _client(fake_ghost)
    original = fake_ghost.handle

    def stale_read(request):
        response = original(request)
        if request.method == "GET":
            # someone else saved between our read and our write
            fake_ghost.posts["p1"]["updated_at"] = "2025-01-06T00:00:00.000Z"
        return response

    client._transport = httpx.MockTransport(stale_read)

    with pytest.raises(UpstreamError) as exc:
        asyncio.run(client.update_post("p1", {"meta_title": "New"}))
    assert exc.value.status_code == 409
    assert "UpdateCollisionError" in exc.value.message
    assert len(fake_ghost.writes()) == 1
    assert fake_ghost.posts["p1"].get("meta_title") is None


def test_update_post_returns_updated_article(fake_ghost):
    post = asyncio.run(_client(fake_ghost).update_post("p2", {"custom_excerpt": "Short", "og_title": "OG"}))
    assert post.custom_excerpt == "Short"
    assert post.og_title == "OG"
    body = json.loads(fake_ghost.writes()[0].content)["posts"][0]
    assert set(body) == {"id", "custom_excerpt", "og_title", "updated_at"}


def test_update_post_refuses_long_excerpt_before_any_request(fake_ghost):
    with pytest.raises(ValidationFailure) as exc:
        asyncio.run(_client(fake_ghost).update_post("p2", {"custom_excerpt": "x" * 400}))
    assert "300" in exc.value.message
    assert fake_ghost.requests == []
    assert "custom_excerpt" not in fake_ghost.posts["p2"]


def test_update_post_accepts_excerpt_at_limit(fake_ghost):
    post = asyncio.run(_client(fake_ghost).update_post("p2", {"custom_excerpt": "x" * 300}))
    assert len(post.custom_excerpt) == 300


def test_missing_post_is_404(fake_ghost):
    with pytest.raises(UpstreamError) as exc:
        asyncio.run(_client(fake_ghost).fetch_post_content("nope"))
    assert exc.value.status_code == 404


def test_network_error_is_upstream_error():
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = GhostClient(GHOST_URL, ADMIN_KEY, "content-key", transport=httpx.MockTransport(boom))
    with pytest.raises(UpstreamError) as exc:
        asyncio.run(client.fetch_posts())
    assert exc.value.status_code == 502
    assert "fetch posts" in exc.value.message
