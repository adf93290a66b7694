# app/auth.py
from __future__ import annotations

import hmac
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Request

from app.errors import AuthError
from app.settings import settings

SESSION_COOKIE = "session"
_ALGORITHM = "HS256"


@dataclass(frozen=True)
class SessionContext:
    """Request-scoped operator session, passed explicitly into handlers."""

    subject: str
    expires_at: datetime


def check_password(password: str) -> bool:
    expected = settings.APP_PASSWORD
    if not expected or not password:
        return False
    return hmac.compare_digest(password.encode(), expected.encode())


def issue_session(now: Optional[datetime] = None) -> tuple[str, SessionContext]:
    now = now or datetime.now(timezone.utc)
    expires = now + timedelta(hours=settings.SESSION_MAX_AGE_HOURS)
    payload = {"sub": "user", "iat": int(now.timestamp()), "exp": int(expires.timestamp())}
    token = jwt.encode(payload, settings.SESSION_SECRET, algorithm=_ALGORITHM)
    return token, SessionContext(subject="user", expires_at=expires.replace(microsecond=0))


def verify_session(token: str) -> SessionContext:
    try:
        claims = jwt.decode(
            token, settings.SESSION_SECRET, algorithms=[_ALGORITHM], options={"require": ["exp", "sub"]}
        )
    except jwt.ExpiredSignatureError:
        raise AuthError("Session expired")
    except jwt.InvalidTokenError:
        raise AuthError("Unauthorized")
    return SessionContext(
        subject=str(claims.get("sub") or ""),
        expires_at=datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc),
    )


def _token_from_request(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return request.cookies.get(SESSION_COOKIE)


async def require_session(request: Request) -> SessionContext:
    """FastAPI dependency: 401 unless the request carries a valid session."""
    token = _token_from_request(request)
    if not token:
        raise AuthError("Unauthorized")
    return verify_session(token)
