"""Session lifecycle: login, logout, refresh-token rotation and password change."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncSession

from core import (
    InternalFailureError,
    InvalidTokenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
    hash_password,
    needs_rehash,
    settings,
    verify_password,
)
from db.errors import store_failures

from .credentials import get_user_by_id, update_password_hash
from .identity_resolution import find_user_by_identifier
from .schemas import LoginResult, PublicUser
from .token_store import (
    clear_refresh_token,
    refresh_token_matches,
    rotate_refresh_token,
    store_refresh_token,
)
from .tokens import TokenIssuer, TokenPair, get_token_issuer

INVALID_CREDENTIALS_DETAIL = "Invalid credentials"
INVALID_REFRESH_TOKEN_DETAIL = "Invalid refresh token"
INVALID_ACCESS_TOKEN_DETAIL = "Invalid access token"
LOGIN_FAILED_DETAIL = "Failed to establish session"
REFRESH_FAILED_DETAIL = "Failed to refresh tokens"
PASSWORD_CHANGE_FAILED_DETAIL = "Failed to change password"
logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AuthContext:
    """Identity of the caller, resolved from a verified access token."""

    user_id: str


@lru_cache
def _timing_decoy_hash() -> str:
    return hash_password("timing-decoy-password")


def authenticate_access_token(
    access_token: str | None,
    *,
    issuer: TokenIssuer | None = None,
) -> AuthContext:
    """Resolve the caller from an access token without touching the store."""
    if not access_token or not access_token.strip():
        raise UnauthorizedError("Missing access token")
    token_issuer = issuer or get_token_issuer()
    try:
        claims = token_issuer.verify_access(access_token)
    except InvalidTokenError as exc:
        logger.info("Access token rejected", extra={"reason": exc.reason})
        raise UnauthorizedError(INVALID_ACCESS_TOKEN_DETAIL) from exc
    return AuthContext(user_id=claims.user_id)


async def login(
    session: AsyncSession,
    *,
    identifier: str,
    password: str,
    issuer: TokenIssuer | None = None,
) -> LoginResult:
    normalized_identifier = (identifier or "").strip()
    if not normalized_identifier or not password or not password.strip():
        raise ValidationError("Username or email and password are required")

    async with store_failures(session, detail=LOGIN_FAILED_DETAIL):
        user = await find_user_by_identifier(session, normalized_identifier)
    if user is None:
        # Spend the same hashing work as a real check so response time does
        # not reveal whether the identifier exists.
        verify_password(password, _timing_decoy_hash())
        logger.info("Login rejected", extra={"reason": "unknown_identifier"})
        raise UnauthorizedError(INVALID_CREDENTIALS_DETAIL)

    if not verify_password(password, user.password_hash):
        logger.info(
            "Login rejected",
            extra={"reason": "password_mismatch", "user_id": user.id},
        )
        raise UnauthorizedError(INVALID_CREDENTIALS_DETAIL)

    if user.id is None:
        raise InternalFailureError("User record is missing an identifier")
    user_id = user.id

    public_user = PublicUser.model_validate(user)
    token_issuer = issuer or get_token_issuer()
    tokens = token_issuer.issue_pair(user_id)

    async with store_failures(session, detail=LOGIN_FAILED_DETAIL):
        if needs_rehash(user.password_hash):
            await update_password_hash(session, user_id, hash_password(password))
        await store_refresh_token(session, user_id, tokens.refresh_token)
        await session.commit()

    logger.info("User logged in", extra={"user_id": user_id})
    return LoginResult(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        user=public_user,
    )


async def logout(session: AsyncSession, context: AuthContext) -> None:
    """Drop the caller's refresh token; safe to repeat."""
    async with store_failures(session, detail="Failed to end session"):
        await clear_refresh_token(session, context.user_id)
        await session.commit()
    logger.info("User logged out", extra={"user_id": context.user_id})


async def refresh(
    session: AsyncSession,
    refresh_token: str | None,
    *,
    issuer: TokenIssuer | None = None,
) -> TokenPair:
    """Exchange the current refresh token for a new pair, retiring the old one."""
    if not refresh_token or not refresh_token.strip():
        raise UnauthorizedError("Missing refresh token")
    presented = refresh_token.strip()

    token_issuer = issuer or get_token_issuer()
    try:
        claims = token_issuer.verify_refresh(presented)
    except InvalidTokenError as exc:
        logger.info("Refresh token rejected", extra={"reason": exc.reason})
        raise UnauthorizedError(INVALID_REFRESH_TOKEN_DETAIL) from exc

    async with store_failures(session, detail=REFRESH_FAILED_DETAIL):
        user = await get_user_by_id(session, claims.user_id)
    if user is None:
        logger.info(
            "Refresh token rejected",
            extra={"reason": "unknown_user", "user_id": claims.user_id},
        )
        raise UnauthorizedError(INVALID_REFRESH_TOKEN_DETAIL)

    if not refresh_token_matches(user, presented):
        logger.warning(
            "Refresh token rejected",
            extra={"reason": "not_current", "user_id": claims.user_id},
        )
        raise UnauthorizedError(INVALID_REFRESH_TOKEN_DETAIL)

    tokens = token_issuer.issue_pair(claims.user_id)
    async with store_failures(session, detail=REFRESH_FAILED_DETAIL):
        rotated = await rotate_refresh_token(
            session,
            claims.user_id,
            previous_token=presented,
            new_token=tokens.refresh_token,
        )
        if not rotated:
            await session.rollback()
        else:
            await session.commit()
    if not rotated:
        logger.warning(
            "Refresh token rejected",
            extra={"reason": "rotation_race", "user_id": claims.user_id},
        )
        raise UnauthorizedError(INVALID_REFRESH_TOKEN_DETAIL)
    return tokens


async def change_password(
    session: AsyncSession,
    context: AuthContext,
    *,
    old_password: str,
    new_password: str,
    revoke_sessions: bool | None = None,
) -> None:
    if not new_password or not new_password.strip():
        raise ValidationError("New password is required")

    async with store_failures(session, detail=PASSWORD_CHANGE_FAILED_DETAIL):
        user = await get_user_by_id(session, context.user_id)
    if user is None:
        raise NotFoundError("User not found")

    if not verify_password(old_password or "", user.password_hash):
        logger.info(
            "Password change rejected",
            extra={"reason": "password_mismatch", "user_id": context.user_id},
        )
        raise UnauthorizedError("Invalid old password")

    should_revoke = (
        settings.revoke_sessions_on_password_change
        if revoke_sessions is None
        else revoke_sessions
    )
    async with store_failures(session, detail=PASSWORD_CHANGE_FAILED_DETAIL):
        await update_password_hash(
            session,
            context.user_id,
            hash_password(new_password),
            revoke_refresh_token=should_revoke,
        )
        await session.commit()
    logger.info(
        "Password changed",
        extra={"user_id": context.user_id, "sessions_revoked": should_revoke},
    )
