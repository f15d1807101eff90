"""Redis-backed key-value store for client-local state (pinned rooms)."""
from __future__ import annotations

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from chat_client.application.exceptions import StorageError


class RedisKeyValueStore:
    """Implements application.ports.storage.KeyValueStore."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def get(self, key: str) -> str | None:
        try:
            return await self._redis.get(key)
        except RedisError as exc:
            raise StorageError(f"read {key}: {exc}") from exc

    async def set(self, key: str, value: str) -> None:
        try:
            await self._redis.set(key, value)
        except RedisError as exc:
            raise StorageError(f"write {key}: {exc}") from exc
