"""
Unit of work shared by the service layer.

``UnitOfWork.run`` opens a session, runs the callable inside ONE
transaction and commits.  The callable also receives an *outbox* list;
notification drafts appended to it are returned to the caller only once
the transaction has committed, so side effects never escape a rolled-back
operation.  Transient store failures retry the whole callable.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orbitride.config import settings
from orbitride.domain.entities import NotificationDraft
from orbitride.domain.exceptions import RemoteStoreError
from orbitride.infrastructure.retry import run_with_retry

logger = logging.getLogger(__name__)

T = TypeVar("T")
Outbox = list[NotificationDraft]


class UnitOfWork:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        retry_attempts: int | None = None,
        retry_backoff_seconds: float | None = None,
    ):
        self.session_factory = session_factory
        self.retry_attempts = (
            settings.store_retry_attempts if retry_attempts is None else retry_attempts
        )
        self.retry_backoff_seconds = (
            settings.store_retry_backoff_seconds
            if retry_backoff_seconds is None
            else retry_backoff_seconds
        )

    async def run(
        self,
        work: Callable[[AsyncSession, Outbox], Awaitable[T]],
        *,
        label: str = "unit of work",
    ) -> tuple[T, Outbox]:
        outbox: Outbox = []

        async def attempt() -> T:
            outbox.clear()
            async with self.session_factory() as session:
                async with session.begin():
                    return await work(session, outbox)

        try:
            result = await run_with_retry(
                attempt,
                attempts=self.retry_attempts,
                backoff_seconds=self.retry_backoff_seconds,
                label=label,
            )
        except SQLAlchemyError as exc:
            logger.exception("%s failed against the store", label)
            raise RemoteStoreError() from exc
        return result, list(outbox)
