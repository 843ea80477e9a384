"""
Bounded retry with exponential backoff for remote-store calls.

Only transient failures are retried: dropped connections, lock timeouts
and serialization conflicts surface as ``OperationalError`` /
``InterfaceError`` (or a ``DBAPIError`` flagged ``connection_invalidated``).
Constraint violations and programming errors are raised at once.

Callers retry a whole unit of work, never a single statement, so every
attempt re-reads fresh state and re-runs its validations.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    backoff_seconds: float = 0.1,
    label: str = "store call",
) -> T:
    """Await *operation*, retrying transient failures up to *attempts* times."""
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except DBAPIError as exc:
            if attempt == attempts or not is_transient(exc):
                raise
            delay = backoff_seconds * 2 ** (attempt - 1)
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.2fs: %s",
                label, attempt, attempts, delay, exc.orig,
            )
            await asyncio.sleep(delay)
    raise AssertionError("unreachable")
