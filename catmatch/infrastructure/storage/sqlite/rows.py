"""Shared helpers for the SQLite stores."""

import functools
import uuid
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import ParamSpec, TypeVar

import aiosqlite

from catmatch.core.exceptions import DatabaseError

P = ParamSpec("P")
T = TypeVar("T")


def generate_id() -> str:
    """Generate a new UUID text ID."""
    return str(uuid.uuid4())


def to_db_time(value: datetime | None) -> str | None:
    """
    Serialize a timestamp for storage.

    Always UTC with microseconds so stored values compare correctly as text.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def from_db_time(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def now_db_time() -> str:
    return to_db_time(datetime.now(UTC))


def db_operation(operation: str) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Re-raise driver errors from a store method as DatabaseError."""

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except aiosqlite.Error as e:
                raise DatabaseError(operation, str(e)) from e

        return wrapper

    return decorator
