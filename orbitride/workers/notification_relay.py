"""
Notification Relay Worker
=========================

Runs every ``RELAY_INTERVAL_SECONDS`` (default 2 s).

The ``notifications`` table doubles as an outbox: rows are written by the
``NotificationDispatcher`` after a workflow transaction commits, and this
worker pushes each one to the recipient's Redis channel
(``notifications:<user_id>``), which is what connected clients listen on.
Direct messages are relayed the same way to ``messages:<receiver_id>``.

Concurrency safety
------------------
* **Redis distributed lock** ensures only one instance relays at a time.
* **SELECT … FOR UPDATE SKIP LOCKED** on unpublished rows keeps a second
  relay (e.g. after the lock expired mid-cycle) off the same rows.

A row is stamped ``published_at`` only after its publish call returned,
so a crash mid-batch republishes rather than drops.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from orbitride.config import settings
from orbitride.infrastructure.database import async_session_factory
from orbitride.infrastructure.locks import DistributedLock
from orbitride.infrastructure.redis_client import (
    get_redis,
    message_channel,
    publish_json,
    user_channel,
)
from orbitride.infrastructure.repositories import (
    MessageRepository,
    NotificationRepository,
)

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_relay_loop() -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop())
    logger.info(
        "Notification relay started (interval=%ds)", settings.relay_interval_seconds
    )


async def stop_relay_loop() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    logger.info("Notification relay stopped")


# ── Internals ─────────────────────────────────────────────────────────


async def _loop() -> None:
    """Periodic loop: relay one batch then sleep."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await run_relay_cycle()
        except Exception:
            logger.exception("Unhandled error in relay cycle")
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.relay_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass  # next cycle


def _payload(notification) -> dict:
    return {
        "id": str(notification.id),
        "user_id": str(notification.user_id),
        "title": notification.title,
        "content": notification.content,
        "notification_type": notification.notification_type.value,
        "reference_id": (
            str(notification.reference_id) if notification.reference_id else None
        ),
        "read": notification.read,
        "created_at": notification.created_at,
    }


def _message_payload(message) -> dict:
    return {
        "id": str(message.id),
        "sender_id": str(message.sender_id),
        "receiver_id": str(message.receiver_id),
        "content": message.content,
        "read": message.read,
        "created_at": message.created_at,
    }


async def _publish_batch(redis, rows, channel_for, payload_for, kind: str) -> list:
    """Publish *rows* in order, stopping at the first failure.  Returns ids sent."""
    published = []
    for row in rows:
        try:
            await publish_json(redis, channel_for(row), payload_for(row))
        except Exception:
            logger.exception(
                "Publishing %s %s failed; retrying next cycle", kind, row.id
            )
            break
        published.append(row.id)
    return published


async def run_relay_cycle(session_factory=None, redis=None) -> int:
    """
    Publish one batch of unpublished notifications and one of messages.

    Returns how many rows were published in total.
    """
    session_factory = session_factory or async_session_factory
    redis = redis or await get_redis()
    lock = DistributedLock(redis, "notification_relay", ttl_seconds=30)

    if not await lock.acquire():
        logger.debug("Relay lock held by another worker – skipping cycle")
        return 0

    notified: list = []
    messaged: list = []
    try:
        async with session_factory() as session:
            async with session.begin():
                now = datetime.now(timezone.utc)
                notifications = NotificationRepository(session)
                notified = await _publish_batch(
                    redis,
                    await notifications.get_unpublished_for_update(
                        limit=settings.relay_batch_size
                    ),
                    lambda n: user_channel(n.user_id),
                    _payload,
                    "notification",
                )
                await notifications.mark_published(notified, now)

                messages = MessageRepository(session)
                messaged = await _publish_batch(
                    redis,
                    await messages.get_unpublished_for_update(
                        limit=settings.relay_batch_size
                    ),
                    lambda m: message_channel(m.receiver_id),
                    _message_payload,
                    "message",
                )
                await messages.mark_published(messaged, now)
        if notified or messaged:
            logger.info(
                "Relay cycle: %d notifications, %d messages published",
                len(notified),
                len(messaged),
            )
    except Exception:
        logger.exception("Error in relay cycle")
    finally:
        await lock.release()

    return len(notified) + len(messaged)
