"""Redis async connection pool and realtime channel helpers."""

import json
import uuid

import redis.asyncio as aioredis

from orbitride.config import settings

_pool = aioredis.ConnectionPool.from_url(
    settings.redis_url, decode_responses=True
)


async def get_redis() -> aioredis.Redis:
    """Return a Redis client backed by the shared connection pool."""
    return aioredis.Redis(connection_pool=_pool)


def user_channel(user_id: uuid.UUID | str) -> str:
    """Pub/sub channel a client subscribes to for its own notifications."""
    return f"{settings.notification_channel_prefix}:{user_id}"


async def publish_json(client: aioredis.Redis, channel: str, payload: dict) -> int:
    """Publish *payload* as JSON; returns the number of receiving subscribers."""
    return await client.publish(channel, json.dumps(payload, default=str))


def message_channel(user_id: uuid.UUID | str) -> str:
    """Pub/sub channel a client subscribes to for direct messages it receives."""
    return f"{settings.message_channel_prefix}:{user_id}"
