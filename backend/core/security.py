"""Password hashing and signed-token primitives."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import HashingError, InvalidHashError, VerificationError

from .config import settings
from .errors import InternalFailureError

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"
REQUIRED_CLAIMS = ("sub", "type", "iat", "exp")

_password_hasher = PasswordHasher()


class InvalidTokenError(ValueError):
    """Raised when a token fails signature, structure, type or expiry checks.

    ``reason`` is meant for diagnostics only; callers must not branch on it
    when answering a client.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid token ({reason})")


def hash_password(password: str) -> str:
    try:
        return _password_hasher.hash(password)
    except HashingError as exc:
        raise InternalFailureError("Failed to hash password") from exc


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return _password_hasher.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def needs_rehash(password_hash: str) -> bool:
    try:
        return _password_hasher.check_needs_rehash(password_hash)
    except InvalidHashError:
        return True


def encode_token(
    subject: str,
    *,
    token_type: str,
    secret: str,
    expires_delta: timedelta,
    now: datetime | None = None,
) -> str:
    issued_at = now or datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": subject,
        "type": token_type,
        "iat": issued_at,
        "exp": issued_at + expires_delta,
        "jti": uuid4().hex,
    }
    try:
        return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)
    except (jwt.PyJWTError, TypeError, ValueError) as exc:
        raise InternalFailureError("Failed to sign token") from exc


def decode_token(
    token: str,
    *,
    secret: str,
    expected_type: str,
    now: datetime | None = None,
) -> dict[str, Any]:
    options: dict[str, Any] = {"require": list(REQUIRED_CLAIMS)}
    if now is not None:
        # Expiry is checked below against the injected clock.
        options["verify_exp"] = False
        options["verify_iat"] = False
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.jwt_algorithm],
            options=options,
        )
    except jwt.ExpiredSignatureError as exc:
        raise InvalidTokenError("expired") from exc
    except jwt.InvalidSignatureError as exc:
        raise InvalidTokenError("signature") from exc
    except jwt.PyJWTError as exc:
        raise InvalidTokenError("malformed") from exc

    if now is not None:
        expires_at = payload.get("exp")
        if not isinstance(expires_at, (int, float)):
            raise InvalidTokenError("malformed")
        if now.timestamp() >= expires_at:
            raise InvalidTokenError("expired")

    if payload.get("type") != expected_type:
        raise InvalidTokenError("type")

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        raise InvalidTokenError("malformed")
    return payload

