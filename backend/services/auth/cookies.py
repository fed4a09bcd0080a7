"""HTTP cookie and header helpers for auth token transport."""

from __future__ import annotations

from datetime import timedelta
from typing import Literal

from fastapi import Request, Response

from core import settings
from core.config import DEVELOPMENT_ENVIRONMENTS

from .tokens import TokenIssuer, TokenPair, get_token_issuer

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"
COOKIE_PATH = "/"
COOKIE_SAMESITE: Literal["lax", "strict", "none"] = "lax"


def cookies_require_https() -> bool:
    """Session cookies carry ``Secure`` unless running locally or explicitly allowed."""
    if settings.allow_insecure_http_cookies:
        return False
    return settings.app_env.strip().lower() not in DEVELOPMENT_ENVIRONMENTS


def _set_session_cookie(
    response: Response,
    name: str,
    value: str,
    lifetime: timedelta,
    *,
    secure: bool,
) -> None:
    response.set_cookie(
        key=name,
        value=value,
        httponly=True,
        secure=secure,
        samesite=COOKIE_SAMESITE,
        max_age=int(lifetime.total_seconds()),
        path=COOKIE_PATH,
    )


def set_token_cookies(
    response: Response,
    tokens: TokenPair,
    *,
    issuer: TokenIssuer | None = None,
) -> None:
    """Attach both tokens as HTTP-only cookies living as long as the tokens do."""
    token_issuer = issuer or get_token_issuer()
    secure = cookies_require_https()
    _set_session_cookie(
        response, ACCESS_COOKIE, tokens.access_token, token_issuer.access_ttl, secure=secure
    )
    _set_session_cookie(
        response, REFRESH_COOKIE, tokens.refresh_token, token_issuer.refresh_ttl, secure=secure
    )


def clear_token_cookies(response: Response) -> None:
    secure = cookies_require_https()
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            key=name,
            path=COOKIE_PATH,
            secure=secure,
            samesite=COOKIE_SAMESITE,
        )


def _extract_bearer_token(request: Request) -> str | None:
    authorization = request.headers.get("authorization")
    if not authorization:
        return None

    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = value.strip()
    return token or None


def extract_access_token(request: Request) -> str | None:
    """Return the access token from its cookie, falling back to a bearer header."""
    cookie_token = (request.cookies.get(ACCESS_COOKIE) or "").strip()
    if cookie_token:
        return cookie_token
    return _extract_bearer_token(request)


def extract_refresh_token(request: Request, body_token: str | None = None) -> str | None:
    """Return the presented refresh token: cookie, then bearer header, then body."""
    cookie_token = (request.cookies.get(REFRESH_COOKIE) or "").strip()
    if cookie_token:
        return cookie_token

    bearer_token = _extract_bearer_token(request)
    if bearer_token:
        return bearer_token

    if body_token is not None and body_token.strip():
        return body_token.strip()
    return None
