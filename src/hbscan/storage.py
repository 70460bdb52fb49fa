from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Protocol


class KeyValueStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> str | None:
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> None:
        raise NotImplementedError


class RedisLikeClient(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> Any: ...

    async def delete(self, *keys: str) -> int: ...


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._items.get(key)

    async def set(self, key: str, value: str) -> None:
        self._items[key] = value

    async def delete(self, key: str) -> None:
        self._items.pop(key, None)


class RedisKeyValueStore(KeyValueStore):
    def __init__(self, client: RedisLikeClient, namespace: str = "hbscan:") -> None:
        self._client = client
        self._namespace = namespace

    async def get(self, key: str) -> str | None:
        raw = await self._client.get(self._namespace + key)
        if raw is None:
            return None
        if isinstance(raw, bytes):
            return raw.decode("utf-8")
        return raw

    async def set(self, key: str, value: str) -> None:
        await self._client.set(self._namespace + key, value)

    async def delete(self, key: str) -> None:
        await self._client.delete(self._namespace + key)


def create_redis_client(url: str | None) -> Any | None:
    if not url:
        return None
    import redis.asyncio as redis

    return redis.from_url(
        url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )


def create_key_value_store(redis_url: str | None) -> KeyValueStore:
    client = create_redis_client(redis_url)
    if client is None:
        return InMemoryKeyValueStore()
    return RedisKeyValueStore(client)
