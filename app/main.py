# app/main.py
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
import logging

from fastapi import Body, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.auth import SESSION_COOKIE, SessionContext, check_password, issue_session, require_session
from app.errors import AuthError, TaggerError, ValidationFailure
from app.settings import settings
from backend.enrich.generator import ContentGenerator
from backend.export import export_posts
from backend.ghost_factory import get_ghost, list_blogs
from backend.integrations.gemini_client import gemini_is_active
from backend.integrations.ghost_client import GhostClient
from backend.models import (
    CUSTOM_EXCERPT_MAX,
    ExportRequest,
    GenerateDescriptionsRequest,
    GenerateTagsRequest,
    LoginRequest,
    SavePromptRequest,
    UpdateDescriptionsRequest,
    UpdateTagsRequest,
)
from backend.resources import PromptStore, TagLibrary
from backend.tagging.keywords import DEFAULT_MAX_KEYWORDS, extract_keywords
from backend.tagging.board import Screen, TagBoard
from backend.tagging.normalize import merge_tags

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
LOG = logging.getLogger(__name__)

# ---------- App + globals ----------
app = FastAPI(title="Ghost Tagger API")


# ---------- error mapping ----------
@app.exception_handler(TaggerError)
async def tagger_error_handler(request: Request, exc: TaggerError):
    return JSONResponse(exc.to_payload(), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = f"{where}: {first.get('msg')}" if where else str(first.get("msg") or "Invalid request")
    return JSONResponse({"error": msg}, status_code=400)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    LOG.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": str(exc) or exc.__class__.__name__}, status_code=500)


# ---------- dependencies ----------
def ghost_for_request(blog: Optional[str] = Query(None)) -> GhostClient:
    return get_ghost(blog)


def generator_for_request() -> ContentGenerator:
    return ContentGenerator()


def library_for_request() -> TagLibrary:
    return TagLibrary()


def prompts_for_request() -> PromptStore:
    return PromptStore()


# ---------- lifecycle ----------
@app.on_event("startup")
async def startup() -> None:
    Path(settings.DATA_DIR).mkdir(parents=True, exist_ok=True)
    LOG.info("ghost-tagger starting (env=%s, gemini=%s)", settings.ENV, gemini_is_active())


# ---------- basics ----------
@app.get("/")
async def index():
    return {
        "service": "ghost-tagger",
        "routes": [
            "GET /health",
            "POST /api/auth/login",
            "POST /api/auth/logout",
            "GET /api/auth/session",
            "GET /api/blogs",
            "GET /api/posts",
            "GET /api/posts/{id}",
            "GET /api/posts/{id}/keywords",
            "GET /api/posts/{id}/board",
            "POST /api/tags/generate",
            "POST /api/tags/update",
            "POST /api/descriptions/generate",
            "POST /api/descriptions/update",
            "GET|POST /api/library",
            "GET|POST /api/prompt",
            "POST /api/export",
        ],
    }


@app.get("/health")
async def health():
    return {"ok": True, "ts": datetime.now(timezone.utc).isoformat()}


# ---------- auth ----------
@app.post("/api/auth/login")
async def login(body: LoginRequest):
    if not check_password(body.password):
        LOG.warning("rejected login attempt")
        raise AuthError("Invalid password")
    token, ctx = issue_session()
    resp = JSONResponse({"token": token, "expiresAt": ctx.expires_at.isoformat()})
    resp.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=settings.SESSION_MAX_AGE_HOURS * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.ENV != "dev",
    )
    return resp


@app.post("/api/auth/logout")
async def logout():
    resp = JSONResponse({"success": True})
    resp.delete_cookie(SESSION_COOKIE)
    return resp


@app.get("/api/auth/session")
async def session(ctx: SessionContext = Depends(require_session)):
    return {"user": ctx.subject, "expiresAt": ctx.expires_at.isoformat()}


# ---------- blogs + posts ----------
@app.get("/api/blogs")
async def blogs(ctx: SessionContext = Depends(require_session)):
    return {"blogs": [{"id": b.id, "name": b.name, "url": b.url} for b in list_blogs()]}


@app.get("/api/posts")
async def posts(
    type: Optional[str] = None,
    tag: Optional[str] = None,
    ctx: SessionContext = Depends(require_session),
    ghost: GhostClient = Depends(ghost_for_request),
):
    if type == "tags":
        return {"tags": await ghost.fetch_tags()}
    rows = await ghost.fetch_posts_by_tag(tag) if tag else await ghost.fetch_posts()
    return {"posts": [p.model_dump(exclude_none=True) for p in rows]}


@app.get("/api/posts/{post_id}")
async def post_detail(
    post_id: str,
    ctx: SessionContext = Depends(require_session),
    ghost: GhostClient = Depends(ghost_for_request),
):
    post = await ghost.fetch_post_content(post_id)
    return {"post": post.model_dump(exclude_none=True)}


@app.get("/api/posts/{post_id}/keywords")
async def post_keywords(
    post_id: str,
    limit: int = Query(DEFAULT_MAX_KEYWORDS, ge=1, le=200),
    ctx: SessionContext = Depends(require_session),
    ghost: GhostClient = Depends(ghost_for_request),
):
    post = await ghost.fetch_post_content(post_id)
    return {"keywords": extract_keywords(post.html or post.plaintext or "", limit)}


@app.get("/api/posts/{post_id}/board")
async def post_board(
    post_id: str,
    suggest: bool = False,
    limit: int = Query(DEFAULT_MAX_KEYWORDS, ge=1, le=200),
    ctx: SessionContext = Depends(require_session),
    ghost: GhostClient = Depends(ghost_for_request),
    generator: ContentGenerator = Depends(generator_for_request),
    library: TagLibrary = Depends(library_for_request),
):
    """
    Everything the tagging screen needs for one article: existing tags,
    keywords, the tag library by category and (with ?suggest=true) AI tags.
    A failed suggestion leaves the AI column in the error state; the rest loads.
    """
    post = await ghost.fetch_post_content(post_id)
    board = TagBoard()
    board.load_article(post)
    board.keywords = extract_keywords(post.html or post.plaintext or "", limit)

    ai = Screen()
    if suggest:
        ai.start()
        try:
            suggested = await generator.suggest_tags(post.title, post.body_text, board.existing.names)
        except TaggerError as e:
            LOG.warning("tag suggestions for %s failed: %s", post_id, e.message)
            ai.fail(e.message)
        else:
            board.set_ai_suggestions(suggested)
            ai.succeed(board.ai.names)

    return {
        "postId": board.article_id,
        "title": post.title,
        "existing": board.existing.names,
        "primaryTag": board.existing.primary,
        "ai": {"state": ai.state.value, "tags": board.ai.names, "error": ai.error},
        "keywords": board.keywords,
        "library": {category: TagLibrary.split(tags) for category, tags in library.load().items()},
    }


# ---------- tags ----------
@app.post("/api/tags/generate")
async def tags_generate(
    body: GenerateTagsRequest,
    ctx: SessionContext = Depends(require_session),
    ghost: GhostClient = Depends(ghost_for_request),
    generator: ContentGenerator = Depends(generator_for_request),
):
    if not body.post_id:
        raise ValidationFailure("Post ID is required")
    post = await ghost.fetch_post_content(body.post_id)
    suggested = await generator.suggest_tags(post.title, post.body_text, body.existing_tags)
    return {"suggestedTags": merge_tags(suggested)}


@app.post("/api/tags/update")
async def tags_update(
    body: UpdateTagsRequest,
    ctx: SessionContext = Depends(require_session),
    ghost: GhostClient = Depends(ghost_for_request),
):
    if not body.post_id or body.tags is None:
        raise ValidationFailure("Post ID and tags array are required")
    board = TagBoard()
    board.new.extend(body.tags)
    tags = board.save_payload()
    await ghost.update_tags(body.post_id, tags)
    return {"success": True, "tags": tags}


# ---------- descriptions ----------
@app.post("/api/descriptions/generate")
async def descriptions_generate(
    body: GenerateDescriptionsRequest,
    ctx: SessionContext = Depends(require_session),
    generator: ContentGenerator = Depends(generator_for_request),
):
    LOG.info("generate descriptions for %r (content length %d)", body.title[:60], len(body.content))
    if not body.title or not body.content:
        raise ValidationFailure(
            "Title and content are required",
            receivedTitle=bool(body.title),
            receivedContent=bool(body.content),
        )
    descriptions = await generator.describe(body.title, body.content, body.existing_tags)
    return {
        "descriptions": descriptions.model_dump(),
        "overSoftLimit": descriptions.over_soft_limits(),
    }


@app.post("/api/descriptions/update")
async def descriptions_update(
    body: UpdateDescriptionsRequest,
    ctx: SessionContext = Depends(require_session),
    ghost: GhostClient = Depends(ghost_for_request),
):
    if not body.post_id:
        raise ValidationFailure("Post ID is required")
    if body.custom_excerpt and len(body.custom_excerpt) > CUSTOM_EXCERPT_MAX:
        raise ValidationFailure(f"Custom excerpt cannot exceed {CUSTOM_EXCERPT_MAX} characters")
    fields = body.provided_fields()
    if not fields:
        raise ValidationFailure("No descriptions provided to update")
    post = await ghost.update_post(body.post_id, fields)
    return {"success": True, "post": post.model_dump(exclude_none=True)}


# ---------- persisted resources ----------
@app.get("/api/library")
async def library_get(
    ctx: SessionContext = Depends(require_session),
    library: TagLibrary = Depends(library_for_request),
):
    return {"library": library.load()}


@app.post("/api/library")
async def library_save(
    payload: Dict[str, Any] = Body(...),
    ctx: SessionContext = Depends(require_session),
    library: TagLibrary = Depends(library_for_request),
):
    library.save(payload.get("library"))
    return {"success": True}


@app.get("/api/prompt")
async def prompt_get(
    kind: str = "tags",
    ctx: SessionContext = Depends(require_session),
    prompts: PromptStore = Depends(prompts_for_request),
):
    stored = prompts.read(kind)
    return {"prompt": stored if stored is not None else prompts.load(kind), "isDefault": stored is None}


@app.post("/api/prompt")
async def prompt_save(
    body: SavePromptRequest,
    kind: str = "tags",
    ctx: SessionContext = Depends(require_session),
    prompts: PromptStore = Depends(prompts_for_request),
):
    prompts.save(kind, body.prompt)
    return {"success": True}


# ---------- context export ----------
@app.post("/api/export")
async def export(
    body: ExportRequest,
    ctx: SessionContext = Depends(require_session),
    ghost: GhostClient = Depends(ghost_for_request),
):
    result = await export_posts(ghost, body.post_ids)
    return {"content": result.content, "filename": result.filename, "count": result.count}


# ---------- debug ----------
@app.get("/debug/gemini")
async def debug_gemini(ctx: SessionContext = Depends(require_session)):
    return {"use_gemini": gemini_is_active(), "model": settings.GEMINI_MODEL}
