from __future__ import annotations

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from chat_client.application.exceptions import StorageError
from chat_client.infrastructure.storage.redis_store import RedisKeyValueStore


class UnreachableRedis:
    async def get(self, key):
        raise RedisConnectionError("Error 111 connecting to localhost:6379")

    async def set(self, key, value):
        raise RedisConnectionError("Error 111 connecting to localhost:6379")


class DictRedis:
    def __init__(self) -> None:
        self.values: dict[str, str] = {}

    async def get(self, key):
        return self.values.get(key)

    async def set(self, key, value):
        self.values[key] = value


@pytest.mark.asyncio
async def test_round_trips_values():
    store = RedisKeyValueStore(DictRedis())

    await store.set("chat:pinned_rooms", "[1]")

    assert await store.get("chat:pinned_rooms") == "[1]"
    assert await store.get("missing") is None


@pytest.mark.asyncio
async def test_redis_errors_become_storage_errors():
    store = RedisKeyValueStore(UnreachableRedis())

    with pytest.raises(StorageError, match="read chat:pinned_rooms"):
        await store.get("chat:pinned_rooms")
    with pytest.raises(StorageError, match="write chat:pinned_rooms"):
        await store.set("chat:pinned_rooms", "[]")
