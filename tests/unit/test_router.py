"""
Unit tests for the queue router.

Covers switching between queue identities, service reuse, forwarding of
every data operation, and the results reported when the current
selection has no service yet.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from queue_router.config.settings import AppSettings
from queue_router.errors import InvalidQueueArgumentError, QueueBackendUnavailableError
from queue_router.models.message import QueueMessage
from queue_router.queue.factory import QueueServiceFactory
from queue_router.queue.memory_queue import MemoryQueueService
from queue_router.queue.redis_queue import RedisQueueService
from queue_router.queue.router import QueueRouter
from queue_router.queue.types import QueueIdentity, QueueType


def _message(message_id: str, content: str = "payload") -> QueueMessage:
    return QueueMessage.create(message_id, content, "TEST")


@pytest.fixture
def router(factory):
    """Create a router with every backend configured."""
    return QueueRouter(factory)


class TestInitialState:
    """Test the router before any switch."""

    def test_defaults(self, router):
        assert router.get_current_queue_type() is QueueType.JAVA
        assert router.get_current_queue_name() == "default"
        assert router.get_current_queue() == QueueIdentity(QueueType.JAVA, "default")
        assert len(router.get_all_queue_services()) == 0

    def test_custom_defaults(self, factory):
        router = QueueRouter(factory, default_type=QueueType.REDIS, default_name="orders")

        assert router.get_current_queue_type() is QueueType.REDIS
        assert router.get_current_queue_name() == "orders"

    async def test_operations_without_service_report_failure(self, router):
        message = _message("orphan")

        assert await router.send_message(message) is False
        assert await router.send_message_async(message) is False
        assert await router.send_messages([message]) == 0
        assert await router.receive_message() is None
        assert await router.receive_message(timeout_seconds=1) is None
        assert await router.receive_messages(5) == []
        assert await router.get_queue_size() == 0
        assert await router.clear_queue() is False
        assert await router.is_empty() is True

    async def test_missing_service_does_not_create_one(self, router):
        await router.send_message(_message("orphan"))

        assert len(router.get_all_queue_services()) == 0


class TestSwitchQueue:
    """Test selecting queue identities."""

    async def test_switch_creates_service(self, router):
        await router.switch_queue(QueueType.REDIS, "orders")

        assert router.get_current_queue_type() is QueueType.REDIS
        assert router.get_current_queue_name() == "orders"
        services = router.get_all_queue_services()
        assert list(services) == ["redis:orders"]
        assert isinstance(services["redis:orders"], RedisQueueService)

    async def test_switch_with_string_type(self, router):
        await router.switch_queue("RabbitMQ", "events")

        assert router.get_current_queue_type() is QueueType.RABBITMQ
        assert "rabbitmq:events" in router.get_all_queue_services()

    async def test_unknown_string_type_selects_in_process(self, router):
        await router.switch_queue("bogus", "misc")

        assert router.get_current_queue_type() is QueueType.JAVA
        assert isinstance(router.get_all_queue_services()["java:misc"], MemoryQueueService)

    async def test_switch_idempotent_preserves_messages(self, router):
        await router.switch_queue(QueueType.JAVA, "jobs")
        first = router.get_all_queue_services()["java:jobs"]
        await router.send_message(_message("kept"))

        await router.switch_queue(QueueType.JAVA, "jobs")

        assert router.get_all_queue_services()["java:jobs"] is first
        received = await router.receive_message()
        assert received.message_id == "kept"

    async def test_switching_back_reuses_instance(self, router):
        await router.switch_queue(QueueType.JAVA, "a")
        await router.send_message(_message("in-a"))
        await router.switch_queue(QueueType.JAVA, "b")

        assert await router.receive_message() is None

        await router.switch_queue(QueueType.JAVA, "a")
        assert (await router.receive_message()).message_id == "in-a"

    async def test_same_name_different_types_are_distinct(self, router):
        await router.switch_queue(QueueType.JAVA, "shared")
        await router.send_message(_message("java-side"))
        await router.switch_queue(QueueType.REDIS, "shared")

        assert await router.receive_message() is None
        assert set(router.get_all_queue_services()) == {"java:shared", "redis:shared"}

    async def test_factory_called_once_per_identity(self, router, factory):
        with patch.object(factory, "create", wraps=factory.create) as create:
            await router.switch_queue(QueueType.JAVA, "jobs")
            await router.switch_queue(QueueType.JAVA, "jobs")
            await router.switch_queue("java", "jobs")

        create.assert_called_once_with("jobs", QueueType.JAVA)

    @pytest.mark.parametrize("queue_type,name", [
        (None, "jobs"),
        (QueueType.JAVA, None),
        (QueueType.JAVA, ""),
        ("redis", "   "),
    ])
    async def test_invalid_arguments_rejected(self, router, queue_type, name):
        with pytest.raises(InvalidQueueArgumentError):
            await router.switch_queue(queue_type, name)

        assert router.get_current_queue() == QueueIdentity(QueueType.JAVA, "default")

    async def test_unavailable_backend_keeps_selection(self):
        router = QueueRouter(QueueServiceFactory())
        await router.switch_queue(QueueType.JAVA, "jobs")

        with pytest.raises(QueueBackendUnavailableError):
            await router.switch_queue(QueueType.REDIS, "jobs")

        assert router.get_current_queue() == QueueIdentity(QueueType.JAVA, "jobs")
        assert "redis:jobs" not in router.get_all_queue_services()

    async def test_concurrent_first_use_caches_one_instance(self, router):
        await asyncio.gather(*(router.switch_queue(QueueType.JAVA, "hot") for _ in range(20)))

        services = router.get_all_queue_services()
        assert list(services) == ["java:hot"]

    async def test_services_snapshot_is_read_only(self, router):
        await router.switch_queue(QueueType.JAVA, "jobs")
        snapshot = router.get_all_queue_services()

        with pytest.raises(TypeError):
            snapshot["java:other"] = MemoryQueueService("other")

        await router.switch_queue(QueueType.JAVA, "later")
        assert "java:later" not in snapshot


class TestForwarding:
    """Test that data operations reach the current service."""

    @pytest.fixture(params=[QueueType.JAVA, QueueType.REDIS])
    async def switched_router(self, request, router):
        await router.switch_queue(request.param, "work")
        return router

    async def test_round_trip(self, switched_router):
        sent = _message("rt", "hello")

        assert await switched_router.send_message(sent) is True
        received = await switched_router.receive_message()

        assert (received.message_id, received.content, received.message_type) == ("rt", "hello", "TEST")

    async def test_fifo(self, switched_router):
        await switched_router.send_messages([_message("m1"), _message("m2"), _message("m3")])

        received = await switched_router.receive_messages(3)

        assert [m.message_id for m in received] == ["m1", "m2", "m3"]

    async def test_empty_queue_contract(self, switched_router):
        assert await switched_router.receive_message() is None
        assert await switched_router.is_empty() is True
        assert await switched_router.get_queue_size() == 0

    async def test_partial_failure_batch(self, switched_router):
        assert await switched_router.send_messages([_message("a"), None, _message("c")]) == 2
        assert await switched_router.get_queue_size() == 2

    async def test_clear(self, switched_router):
        await switched_router.send_messages([_message(f"c{i}") for i in range(5)])

        assert await switched_router.clear_queue() is True

        assert await switched_router.is_empty() is True
        assert await switched_router.get_queue_size() == 0

    async def test_async_send(self, switched_router):
        future = switched_router.send_message_async(_message("async"))

        assert await future is True
        assert (await switched_router.receive_message()).message_id == "async"

    async def test_timed_receive(self, switched_router):
        waiter = asyncio.create_task(switched_router.receive_message(timeout_seconds=2))
        await asyncio.sleep(0.05)
        await switched_router.send_message(_message("waited"))

        assert (await waiter).message_id == "waited"

    async def test_operations_follow_switch(self, router):
        await router.switch_queue(QueueType.JAVA, "first")
        await router.send_message(_message("one"))
        await router.switch_queue(QueueType.REDIS, "second")
        await router.send_message(_message("two"))

        assert await router.get_queue_size() == 1
        assert (await router.receive_message()).message_id == "two"

        await router.switch_queue(QueueType.JAVA, "first")
        assert (await router.receive_message()).message_id == "one"

    async def test_forwards_to_custom_backend(self, factory):
        service = MemoryQueueService("custom")
        service.send_message = AsyncMock(return_value=True)
        factory.register(QueueType.RABBITMQ, lambda name: service)
        router = QueueRouter(factory)
        message = _message("custom")

        await router.switch_queue(QueueType.RABBITMQ, "custom")
        assert await router.send_message(message) is True

        service.send_message.assert_awaited_once_with(message)


class TestFromSettings:
    """Test building a router from configuration."""

    async def test_starts_on_configured_default(self, monkeypatch):
        monkeypatch.delenv("REDIS_URL", raising=False)
        monkeypatch.delenv("RABBITMQ_URL", raising=False)
        settings = AppSettings(_env_file=None, default_queue_type="JAVA", default_queue_name="boot")

        router = await QueueRouter.from_settings(settings)

        assert router.get_current_queue() == QueueIdentity(QueueType.JAVA, "boot")
        assert await router.send_message(_message("ready")) is True
        await router.close()

    async def test_logs_configuration_summary(self, monkeypatch):
        monkeypatch.delenv("REDIS_URL", raising=False)
        monkeypatch.delenv("RABBITMQ_URL", raising=False)
        settings = AppSettings(_env_file=None)

        with patch.object(AppSettings, "log_configuration_summary") as summary:
            router = await QueueRouter.from_settings(settings)

        summary.assert_called_once_with()
        await router.close()

    async def test_default_backend_unavailable(self, monkeypatch):
        monkeypatch.delenv("REDIS_URL", raising=False)
        monkeypatch.delenv("RABBITMQ_URL", raising=False)
        settings = AppSettings(_env_file=None, default_queue_type="redis")

        with pytest.raises(QueueBackendUnavailableError):
            await QueueRouter.from_settings(settings)
