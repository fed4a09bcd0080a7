"""Tests for auth token transport helpers."""

from __future__ import annotations

import json
from datetime import timedelta

from fastapi import Response
from starlette.requests import Request

from core import ConflictError, UnauthorizedError, error_response, settings
from services.auth import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    TokenIssuer,
    TokenPair,
    clear_token_cookies,
    cookies_require_https,
    extract_access_token,
    extract_refresh_token,
    set_token_cookies,
)


def _build_request(
    *,
    cookie_header: str | None = None,
    authorization: str | None = None,
) -> Request:
    headers: list[tuple[bytes, bytes]] = []
    if cookie_header is not None:
        headers.append((b"cookie", cookie_header.encode("ascii")))
    if authorization is not None:
        headers.append((b"authorization", authorization.encode("ascii")))
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/",
        "headers": headers,
        "query_string": b"",
        "client": ("10.0.0.12", 50000),
        "server": ("testserver", 80),
        "scheme": "http",
    }
    return Request(scope)


def _issuer(access_minutes: int = 5, refresh_days: int = 3) -> TokenIssuer:
    return TokenIssuer(
        access_secret="cookie-access-secret",
        refresh_secret="cookie-refresh-secret",
        access_ttl=timedelta(minutes=access_minutes),
        refresh_ttl=timedelta(days=refresh_days),
    )


def test_set_token_cookies_marks_cookies_http_only():
    response = Response()

    set_token_cookies(
        response,
        TokenPair(access_token="access-value", refresh_token="refresh-value"),
        issuer=_issuer(),
    )

    set_cookie_headers = response.headers.getlist("set-cookie")
    assert len(set_cookie_headers) == 2
    access_header = next(h for h in set_cookie_headers if h.startswith(f"{ACCESS_COOKIE}="))
    refresh_header = next(h for h in set_cookie_headers if h.startswith(f"{REFRESH_COOKIE}="))
    assert "access-value" in access_header
    assert "refresh-value" in refresh_header
    for header in set_cookie_headers:
        assert "HttpOnly" in header
        assert "Path=/" in header
        assert "SameSite=lax" in header


def test_cookie_lifetime_follows_issuer_ttls():
    response = Response()

    set_token_cookies(
        response,
        TokenPair(access_token="a", refresh_token="r"),
        issuer=_issuer(access_minutes=7, refresh_days=2),
    )

    headers = response.headers.getlist("set-cookie")
    access_header = next(h for h in headers if h.startswith(f"{ACCESS_COOKIE}="))
    refresh_header = next(h for h in headers if h.startswith(f"{REFRESH_COOKIE}="))
    assert f"Max-Age={7 * 60}" in access_header
    assert f"Max-Age={2 * 24 * 60 * 60}" in refresh_header


def test_cookies_are_secure_outside_local_environments(monkeypatch):
    monkeypatch.setattr(settings, "allow_insecure_http_cookies", False)
    monkeypatch.setattr(settings, "app_env", "production")
    response = Response()

    set_token_cookies(response, TokenPair(access_token="a", refresh_token="r"), issuer=_issuer())

    assert cookies_require_https()
    assert all("Secure" in h for h in response.headers.getlist("set-cookie"))


def test_insecure_cookies_can_be_allowed(monkeypatch):
    monkeypatch.setattr(settings, "app_env", "production")
    monkeypatch.setattr(settings, "allow_insecure_http_cookies", True)

    assert not cookies_require_https()

    monkeypatch.setattr(settings, "allow_insecure_http_cookies", False)
    monkeypatch.setattr(settings, "app_env", " Local ")
    assert not cookies_require_https()


def test_clear_token_cookies_expires_both_cookies():
    response = Response()

    clear_token_cookies(response)

    set_cookie_header = "; ".join(response.headers.getlist("set-cookie"))
    assert 'access_token=""' in set_cookie_header
    assert 'refresh_token=""' in set_cookie_header


def test_extract_refresh_token_prefers_cookie():
    request = _build_request(
        cookie_header="refresh_token=cookie-token",
        authorization="Bearer header-token",
    )

    assert extract_refresh_token(request, body_token="body-token") == "cookie-token"


def test_extract_refresh_token_falls_back_to_bearer_then_body():
    header_request = _build_request(authorization="Bearer header-token")
    body_request = _build_request(authorization="Basic dXNlcjpwYXNz")

    assert extract_refresh_token(header_request, body_token="body-token") == "header-token"
    assert extract_refresh_token(body_request, body_token=" body-token ") == "body-token"
    assert extract_refresh_token(_build_request()) is None
    assert extract_refresh_token(_build_request(), body_token="  ") is None


def test_extract_access_token_reads_cookie_or_bearer():
    assert extract_access_token(_build_request(cookie_header="access_token=abc")) == "abc"
    assert extract_access_token(_build_request(authorization="bearer xyz")) == "xyz"
    assert extract_access_token(_build_request(authorization="Bearer ")) is None


def test_error_response_renders_status_and_detail():
    response = error_response(ConflictError("User with that username or email already exists"))

    assert response.status_code == 409
    assert json.loads(response.body) == {
        "detail": "User with that username or email already exists"
    }


def test_error_response_uses_default_detail():
    response = error_response(UnauthorizedError())

    assert response.status_code == 401
    assert json.loads(response.body) == {"detail": "Unauthorized"}
