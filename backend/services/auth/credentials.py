"""User record creation and credential updates."""

from __future__ import annotations

import logging
from typing import Any, cast

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core import ConflictError
from db.errors import conflicting_columns, is_unique_violation
from models import User

DUPLICATE_ACCOUNT_DETAIL = "User with that username or email already exists"
logger = logging.getLogger(__name__)


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


async def get_user_by_id(session: AsyncSession, user_id: str) -> User | None:
    result = await session.execute(
        select(User).where(_eq(User.id, user_id)).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    *,
    username: str,
    email: str,
    full_name: str,
    password_hash: str,
    avatar_url: str,
    cover_image_url: str | None = None,
) -> User:
    """Insert and commit a new user, mapping unique violations to a conflict."""
    user = User(
        username=username,
        email=email,
        full_name=full_name,
        password_hash=password_hash,
        avatar_url=avatar_url,
        cover_image_url=cover_image_url,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_unique_violation(exc):
            logger.info(
                "Registration lost uniqueness race",
                extra={"username": username, "columns": list(conflicting_columns(exc))},
            )
            raise ConflictError(DUPLICATE_ACCOUNT_DETAIL) from exc
        raise
    await session.refresh(user)
    return user


async def update_password_hash(
    session: AsyncSession,
    user_id: str,
    password_hash: str,
    *,
    revoke_refresh_token: bool = False,
) -> None:
    values: dict[str, Any] = {"password_hash": password_hash}
    if revoke_refresh_token:
        values["refresh_token_hash"] = None
    await session.execute(
        update(User)
        .where(_eq(User.id, user_id))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
