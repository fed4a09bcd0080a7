"""Identity normalization and login-user resolution helpers."""

from __future__ import annotations

from typing import Any, cast

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from models import User


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def normalize_email(value: str) -> str:
    return value.strip().lower()


def normalize_username(value: str) -> str:
    return value.strip().lower()


def is_email_identifier(identifier: str) -> bool:
    return "@" in identifier


async def registration_conflict_exists(
    session: AsyncSession,
    *,
    username: str,
    normalized_email: str,
) -> bool:
    lowered_email_column = cast(Any, func.lower(cast(Any, User.email)))
    lowered_username_column = cast(Any, func.lower(cast(Any, User.username)))
    existing = await session.execute(
        select(User)
        .where(
            or_(
                _eq(lowered_username_column, normalize_username(username)),
                _eq(lowered_email_column, normalized_email),
            )
        )
        .limit(1)
    )
    return existing.scalar_one_or_none() is not None


async def find_user_by_identifier(
    session: AsyncSession,
    identifier: str,
) -> User | None:
    """Look up a user by username, or by email when the identifier has an '@'."""
    normalized = identifier.strip()
    if not normalized:
        return None

    if is_email_identifier(normalized):
        lowered_email_column = cast(Any, func.lower(cast(Any, User.email)))
        result = await session.execute(
            select(User)
            .where(_eq(lowered_email_column, normalize_email(normalized)))
            .limit(1)
            .execution_options(populate_existing=True)
        )
    else:
        result = await session.execute(
            select(User)
            .where(_eq(User.username, normalize_username(normalized)))
            .limit(1)
            .execution_options(populate_existing=True)
        )
    return result.scalar_one_or_none()
