"""
Queue service factory.

The factory builds a queue service for a (name, type) pair from the
native clients it was given. A backend whose client is missing is a
configuration error and is reported as such; the factory never silently
substitutes the in-process queue for a configured type.
"""

from typing import Any, Awaitable, Callable, Optional, Union

import aio_pika
import redis.asyncio as redis
from aio_pika.abc import AbstractChannel, AbstractRobustConnection
from aio_pika.exceptions import AMQPError
from redis.asyncio import Redis
from redis.exceptions import RedisError
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from queue_router.config.settings import AppSettings
from queue_router.errors import InvalidQueueArgumentError, QueueBackendUnavailableError
from queue_router.queue.base import QueueService
from queue_router.queue.memory_queue import MemoryQueueService
from queue_router.queue.rabbitmq_queue import (
    DEFAULT_EXCHANGE,
    DEFAULT_RECEIVE_TIMEOUT,
    RabbitMQQueueService,
)
from queue_router.queue.redis_queue import RedisQueueService
from queue_router.queue.types import QueueType
from queue_router.utils.logging import get_logger

logger = get_logger(__name__)

QueueServiceBuilder = Callable[[str], QueueService]


class QueueServiceFactory:
    """Creates queue services for each supported backend type."""

    def __init__(
        self,
        redis_client: Optional[Redis] = None,
        amqp_channel: Optional[AbstractChannel] = None,
        exchange_name: str = DEFAULT_EXCHANGE,
        receive_timeout: float = DEFAULT_RECEIVE_TIMEOUT,
    ):
        """
        Initialize the factory.

        Args:
            redis_client: Client for Redis queues (None = Redis unavailable)
            amqp_channel: Channel for RabbitMQ queues (None = RabbitMQ unavailable)
            exchange_name: Exchange RabbitMQ queues publish to
            receive_timeout: Poll window for untimed RabbitMQ receives
        """
        self.redis_client = redis_client
        self.amqp_channel = amqp_channel
        self.exchange_name = exchange_name
        self.receive_timeout = receive_timeout
        self._amqp_connection: Optional[AbstractRobustConnection] = None
        self._owns_redis = False

        self._builders: dict[QueueType, QueueServiceBuilder] = {
            QueueType.JAVA: MemoryQueueService,
            QueueType.REDIS: self._build_redis,
            QueueType.RABBITMQ: self._build_rabbitmq,
        }

    def register(self, queue_type: QueueType, builder: QueueServiceBuilder) -> None:
        """
        Register (or replace) the builder used for a backend type.

        Args:
            queue_type: Backend type the builder handles
            builder: Callable taking a queue name and returning a QueueService
        """
        self._builders[queue_type] = builder
        logger.info("queue_builder_registered", queue_type=queue_type.value)

    def create(self, name: Optional[str], queue_type: Union[QueueType, str, None]) -> QueueService:
        """
        Create a queue service.

        Args:
            name: Queue name
            queue_type: Backend type; strings are parsed case-insensitively

        Returns:
            New queue service instance

        Raises:
            InvalidQueueArgumentError: If name is blank
            QueueBackendUnavailableError: If the backend's client is not configured
        """
        if name is None or not name.strip():
            raise InvalidQueueArgumentError("Queue name must not be blank")

        if queue_type is None or (isinstance(queue_type, str) and not isinstance(queue_type, QueueType)):
            queue_type = QueueType.from_string(queue_type)

        builder = self._builders.get(queue_type) if isinstance(queue_type, QueueType) else None
        if builder is None:
            logger.warning("queue_type_unknown", queue_type=str(queue_type), fallback=QueueType.JAVA.value)
            builder = MemoryQueueService

        service = builder(name)
        logger.info("queue_service_created", queue_name=name, queue_type=service.get_queue_type())
        return service

    def _build_redis(self, name: str) -> QueueService:
        if self.redis_client is None:
            raise QueueBackendUnavailableError(
                QueueType.REDIS.value,
                "Redis client is not configured; cannot create a Redis queue",
            )
        return RedisQueueService(name, self.redis_client)

    def _build_rabbitmq(self, name: str) -> QueueService:
        if self.amqp_channel is None:
            raise QueueBackendUnavailableError(
                QueueType.RABBITMQ.value,
                "RabbitMQ channel is not configured; cannot create a RabbitMQ queue",
            )
        return RabbitMQQueueService(
            name,
            self.amqp_channel,
            exchange_name=self.exchange_name,
            receive_timeout=self.receive_timeout,
        )

    @classmethod
    async def from_settings(cls, settings: AppSettings) -> "QueueServiceFactory":
        """
        Create a factory, connecting every backend that has a URL configured.

        Connection attempts are retried with exponential backoff. Backends
        without a URL are left unconfigured.

        Raises:
            QueueBackendUnavailableError: If a configured backend stays unreachable
        """
        factory = cls(
            exchange_name=settings.rabbitmq_exchange,
            receive_timeout=settings.rabbitmq_receive_timeout,
        )

        try:
            if settings.redis_url:
                factory.redis_client = await _connect_with_retry(
                    QueueType.REDIS, _connect_redis, settings.redis_url, settings.connect_retry_attempts
                )
                factory._owns_redis = True

            if settings.rabbitmq_url:
                connection = await _connect_with_retry(
                    QueueType.RABBITMQ, aio_pika.connect_robust, settings.rabbitmq_url, settings.connect_retry_attempts
                )
                factory._amqp_connection = connection
                factory.amqp_channel = await _open_channel(connection, settings.rabbitmq_url)
        except QueueBackendUnavailableError:
            await factory.close()
            raise

        return factory

    async def close(self) -> None:
        """Close connections this factory opened itself."""
        if self._amqp_connection is not None:
            await self._amqp_connection.close()
            self._amqp_connection = None
            self.amqp_channel = None

        if self._owns_redis and self.redis_client is not None:
            await self.redis_client.aclose()
            self.redis_client = None
            self._owns_redis = False


async def _connect_with_retry(
    queue_type: QueueType,
    connect: Callable[[str], Awaitable[Any]],
    url: str,
    attempts: int,
) -> Any:
    """Run a connect coroutine with exponential backoff, mapping exhaustion to an unavailable backend."""
    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=10),
        retry=retry_if_exception_type((RedisError, AMQPError, OSError)),
    )
    try:
        client = await retrying(connect, url)
    except RetryError as e:
        cause = e.last_attempt.exception()
        logger.error("queue_backend_unreachable", queue_type=queue_type.value, url=url, error=str(cause))
        raise QueueBackendUnavailableError(
            queue_type.value,
            f"Failed to connect to {queue_type.value} at {url}: {cause}",
        ) from cause

    logger.info("queue_backend_connected", queue_type=queue_type.value, url=url)
    return client


async def _open_channel(connection: AbstractRobustConnection, url: str) -> AbstractChannel:
    try:
        return await connection.channel()
    except (AMQPError, OSError) as e:
        logger.error("queue_channel_open_failed", queue_type=QueueType.RABBITMQ.value, url=url, error=str(e))
        raise QueueBackendUnavailableError(
            QueueType.RABBITMQ.value,
            f"Failed to open a channel on {url}: {e}",
        ) from e


async def _connect_redis(redis_url: str) -> Redis:
    """Open a Redis client and verify it answers PING."""
    client = redis.from_url(redis_url, encoding="utf-8", decode_responses=True)
    try:
        await client.ping()
    except Exception:
        await client.aclose()
        raise
    return client
