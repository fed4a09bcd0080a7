"""Access/refresh token issuance and verification."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

from core import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    InvalidTokenError,
    decode_token,
    encode_token,
    settings,
)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True, slots=True)
class TokenClaims:
    user_id: str
    token_type: str
    issued_at: datetime
    expires_at: datetime

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "TokenClaims":
        try:
            issued_at = datetime.fromtimestamp(payload["iat"], tz=timezone.utc)
            expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        except (KeyError, TypeError, ValueError, OverflowError) as exc:
            raise InvalidTokenError("malformed") from exc
        return cls(
            user_id=str(payload["sub"]),
            token_type=str(payload["type"]),
            issued_at=issued_at,
            expires_at=expires_at,
        )


class TokenIssuer:
    """Mints and verifies the signed tokens that back a session.

    Access and refresh tokens are signed with distinct secrets, so a token of
    one kind never verifies as the other even before the ``type`` claim is
    checked. Verification covers signature, structure and expiry only; the
    refresh token's match against the stored value is the session layer's job.
    """

    def __init__(
        self,
        *,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
        clock: Clock = utc_now,
    ) -> None:
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh tokens require distinct secrets")
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self._clock = clock

    @classmethod
    def from_settings(cls, *, clock: Clock = utc_now) -> "TokenIssuer":
        return cls(
            access_secret=settings.access_token_secret,
            refresh_secret=settings.refresh_token_secret,
            access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_ttl=timedelta(minutes=settings.refresh_token_expire_minutes),
            clock=clock,
        )

    def issue_pair(self, user_id: str) -> TokenPair:
        now = self._clock()
        access_token = encode_token(
            user_id,
            token_type=ACCESS_TOKEN_TYPE,
            secret=self._access_secret,
            expires_delta=self.access_ttl,
            now=now,
        )
        refresh_token = encode_token(
            user_id,
            token_type=REFRESH_TOKEN_TYPE,
            secret=self._refresh_secret,
            expires_delta=self.refresh_ttl,
            now=now,
        )
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    def verify_access(self, token: str) -> TokenClaims:
        return self._verify(token, secret=self._access_secret, token_type=ACCESS_TOKEN_TYPE)

    def verify_refresh(self, token: str) -> TokenClaims:
        return self._verify(token, secret=self._refresh_secret, token_type=REFRESH_TOKEN_TYPE)

    def _verify(self, token: str, *, secret: str, token_type: str) -> TokenClaims:
        if not token or not token.strip():
            raise InvalidTokenError("missing")
        payload = decode_token(
            token.strip(),
            secret=secret,
            expected_type=token_type,
            now=self._clock(),
        )
        return TokenClaims.from_payload(payload)


@lru_cache
def get_token_issuer() -> TokenIssuer:
    """Return the process-wide issuer configured from settings."""
    return TokenIssuer.from_settings()
