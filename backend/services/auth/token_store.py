"""Refresh-token persistence and rotation helpers."""

from __future__ import annotations

import hashlib
import hmac
from typing import Any, cast

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from models import User


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def hash_refresh_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def refresh_token_matches(user: User, token: str) -> bool:
    """Return True when ``token`` is the user's single active refresh token."""
    stored_hash = user.refresh_token_hash
    if not stored_hash:
        return False
    return hmac.compare_digest(stored_hash, hash_refresh_token(token))


async def store_refresh_token(session: AsyncSession, user_id: str, token: str) -> None:
    """Unconditionally make ``token`` the user's active refresh token."""
    await session.execute(
        update(User)
        .where(_eq(User.id, user_id))
        .values(refresh_token_hash=hash_refresh_token(token))
        .execution_options(synchronize_session=False)
    )


async def rotate_refresh_token(
    session: AsyncSession,
    user_id: str,
    *,
    previous_token: str,
    new_token: str,
) -> bool:
    """Swap the active refresh token only if it still equals ``previous_token``.

    Returns False when another rotation or a logout won the race.
    """
    result = await session.execute(
        update(User)
        .where(
            _eq(User.id, user_id),
            _eq(User.refresh_token_hash, hash_refresh_token(previous_token)),
        )
        .values(refresh_token_hash=hash_refresh_token(new_token))
        .execution_options(synchronize_session=False)
    )
    return cast(Any, result).rowcount == 1


async def clear_refresh_token(session: AsyncSession, user_id: str) -> None:
    await session.execute(
        update(User)
        .where(_eq(User.id, user_id))
        .values(refresh_token_hash=None)
        .execution_options(synchronize_session=False)
    )
