"""
Notification dispatch and the per-user inbox.

``NotificationDispatcher`` is the post-commit half of the outbox: the
booking workflow hands it drafts after its transaction commits and does
not wait.  Each draft is persisted in its own short transaction with
bounded retry; a failure is logged and dropped, never reported back to
the operation that produced it.

Persisted rows are then pushed to Redis by the notification relay
worker (``orbitride.workers.notification_relay``).
"""

from __future__ import annotations

import asyncio
import functools
import logging
import uuid
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orbitride.domain.entities import NotificationDraft
from orbitride.domain.exceptions import Forbidden, NotFound
from orbitride.infrastructure.models import NotificationModel
from orbitride.infrastructure.repositories import NotificationRepository
from orbitride.infrastructure.retry import run_with_retry

from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        retry_attempts: int = 3,
        retry_backoff_seconds: float = 0.1,
    ):
        self.session_factory = session_factory
        self.retry_attempts = retry_attempts
        self.retry_backoff_seconds = retry_backoff_seconds
        self._tasks: set[asyncio.Task] = set()

    def enqueue(self, drafts: Iterable[NotificationDraft]) -> None:
        """Schedule delivery of *drafts* and return immediately."""
        drafts = list(drafts)
        if not drafts:
            return
        task = asyncio.create_task(self.deliver(drafts))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def deliver(self, drafts: list[NotificationDraft]) -> int:
        """Persist each draft; returns how many were stored."""
        delivered = 0
        for draft in drafts:
            try:
                await run_with_retry(
                    functools.partial(self._store, draft),
                    attempts=self.retry_attempts,
                    backoff_seconds=self.retry_backoff_seconds,
                    label="notification insert",
                )
            except Exception:
                logger.exception(
                    "Dropping %s notification for user %s",
                    draft.notification_type.value,
                    draft.user_id,
                )
                continue
            delivered += 1
        return delivered

    async def _store(self, draft: NotificationDraft) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                await NotificationRepository(session).add(draft)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every scheduled delivery (shutdown, tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class NotificationInbox:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def list_for_user(self, actor_id: uuid.UUID) -> list[NotificationModel]:
        async def work(session, _outbox):
            return await NotificationRepository(session).list_for_user(actor_id)

        notifications, _ = await self.uow.run(work, label="list notifications")
        return notifications

    async def mark_read(
        self, actor_id: uuid.UUID, notification_id: uuid.UUID
    ) -> NotificationModel:
        async def work(session, _outbox):
            notification = await NotificationRepository(session).get_by_id(
                notification_id
            )
            if notification is None:
                raise NotFound("Notification not found")
            if notification.user_id != actor_id:
                raise Forbidden("You can only update your own notifications")
            notification.read = True
            return notification

        notification, _ = await self.uow.run(work, label="mark notification read")
        return notification

    async def mark_all_read(self, actor_id: uuid.UUID) -> int:
        async def work(session, _outbox):
            return await NotificationRepository(session).mark_all_read(actor_id)

        count, _ = await self.uow.run(work, label="mark all notifications read")
        return count
