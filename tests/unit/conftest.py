"""Shared fixtures for queue router unit tests."""

import asyncio
from collections import deque
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from queue_router.queue.factory import QueueServiceFactory


class FakeRedis:
    """In-memory stand-in for the list commands of redis.asyncio.Redis."""

    def __init__(self):
        self.lists: dict[str, deque] = {}
        self.closed = False

    async def lpush(self, key: str, *values: str) -> int:
        items = self.lists.setdefault(key, deque())
        for value in values:
            items.appendleft(value)
        return len(items)

    async def rpop(self, key: str) -> Optional[str]:
        items = self.lists.get(key)
        if not items:
            return None
        value = items.pop()
        if not items:
            del self.lists[key]
        return value

    async def brpop(self, keys: list[str], timeout: float = 0) -> Optional[tuple[str, str]]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            for key in keys:
                value = await self.rpop(key)
                if value is not None:
                    return key, value
            if loop.time() >= deadline:
                return None
            await asyncio.sleep(0.01)

    async def llen(self, key: str) -> int:
        return len(self.lists.get(key, ()))

    async def delete(self, *keys: str) -> int:
        return sum(1 for key in keys if self.lists.pop(key, None) is not None)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_redis():
    """Create an empty fake Redis client."""
    return FakeRedis()


@pytest.fixture
def amqp_queue():
    """Create a mock aio-pika queue that is empty unless a test says otherwise."""
    queue = MagicMock()
    queue.get = AsyncMock(return_value=None)
    return queue


@pytest.fixture
def amqp_exchange():
    """Create a mock aio-pika exchange."""
    exchange = MagicMock()
    exchange.publish = AsyncMock(return_value=None)
    return exchange


@pytest.fixture
def amqp_channel(amqp_exchange, amqp_queue):
    """Create a mock aio-pika channel wired to the mock exchange and queue."""
    channel = MagicMock()
    channel.get_exchange = AsyncMock(return_value=amqp_exchange)
    channel.get_queue = AsyncMock(return_value=amqp_queue)
    return channel


@pytest.fixture
def factory(fake_redis, amqp_channel):
    """Create a factory with every backend configured."""
    return QueueServiceFactory(
        redis_client=fake_redis,
        amqp_channel=amqp_channel,
        receive_timeout=0.05,
    )
