"""Database error helpers."""

from __future__ import annotations

import logging
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core import InternalFailureError

_SQLITE_UNIQUE_PREFIX = "unique constraint failed:"
_POSTGRES_KEY_PATTERN = re.compile(r"key \(([^)]+)\)=")
logger = logging.getLogger(__name__)


def _original_message(error: IntegrityError) -> str:
    original = getattr(error, "orig", None)
    return str(original or error).lower()


def is_unique_violation(error: IntegrityError) -> bool:
    """Return True when the IntegrityError comes from a unique index or constraint."""
    original = getattr(error, "orig", None)
    sqlstate = getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)
    if sqlstate == "23505":
        return True
    message = _original_message(error)
    return "duplicate key" in message or "unique constraint" in message


def conflicting_columns(error: IntegrityError) -> tuple[str, ...]:
    """Best-effort list of the columns named by a unique violation message."""
    message = _original_message(error)
    if _SQLITE_UNIQUE_PREFIX in message:
        # sqlite: "UNIQUE constraint failed: users.username, users.email"
        tail = message.split(_SQLITE_UNIQUE_PREFIX, 1)[1].splitlines()[0]
        return tuple(
            part.strip().rsplit(".", 1)[-1] for part in tail.split(",") if part.strip()
        )
    match = _POSTGRES_KEY_PATTERN.search(message)
    if match:
        return tuple(column.strip() for column in match.group(1).split(","))
    return ()


@asynccontextmanager
async def store_failures(session: AsyncSession, *, detail: str) -> AsyncIterator[None]:
    """Roll back and raise InternalFailureError when the block hits a database error."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Store operation failed", extra={"detail": detail}, exc_info=exc)
        try:
            await session.rollback()
        except SQLAlchemyError as rollback_error:
            logger.warning("Rollback after store failure failed", exc_info=rollback_error)
        raise InternalFailureError(detail) from exc


__all__ = ["conflicting_columns", "is_unique_violation", "store_failures"]
