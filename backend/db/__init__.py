"""Database helpers."""

from .errors import conflicting_columns, is_unique_violation, store_failures
from .session import AsyncSessionMaker, async_engine, get_session

__all__ = [
    "AsyncSessionMaker",
    "async_engine",
    "get_session",
    "conflicting_columns",
    "is_unique_violation",
    "store_failures",
]
