"""
Queue router supporting runtime switching between queue backends.

The router keeps one queue service per (type, name) identity, created
lazily through the factory and never evicted, and a "current" identity
that every data operation is forwarded to. Switching back to a queue that
was used before reuses the same service, so anything still queued
in-process is preserved.
"""

import asyncio
from types import MappingProxyType
from typing import Mapping, Optional, Union

from queue_router.config.settings import AppSettings
from queue_router.errors import InvalidQueueArgumentError
from queue_router.models.message import QueueMessage
from queue_router.queue.base import QueueService
from queue_router.queue.factory import QueueServiceFactory
from queue_router.queue.types import QueueIdentity, QueueType
from queue_router.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_QUEUE_NAME = "default"


class QueueRouter:
    """Routes queue operations to the currently selected queue service."""

    def __init__(
        self,
        factory: QueueServiceFactory,
        default_type: QueueType = QueueType.JAVA,
        default_name: str = DEFAULT_QUEUE_NAME,
    ):
        """
        Initialize the router.

        No service is created until the first switch_queue call.

        Args:
            factory: Factory used to create queue services on first use
            default_type: Initially selected backend type
            default_name: Initially selected queue name
        """
        self._factory = factory
        self._services: dict[str, QueueService] = {}
        # Replaced as a whole so type and name always change together
        self._current = QueueIdentity(default_type, default_name)

    @classmethod
    async def from_settings(cls, settings: AppSettings) -> "QueueRouter":
        """
        Create a router with backends connected from settings, switched to the configured default queue.

        Raises:
            QueueBackendUnavailableError: If a configured backend is unreachable
        """
        settings.log_configuration_summary()
        factory = await QueueServiceFactory.from_settings(settings)
        router = cls(
            factory,
            default_type=settings.default_queue_type,
            default_name=settings.default_queue_name,
        )
        try:
            await router.switch_queue(settings.default_queue_type, settings.default_queue_name)
        except Exception:
            await factory.close()
            raise
        return router

    @property
    def factory(self) -> QueueServiceFactory:
        return self._factory

    async def switch_queue(self, queue_type: Union[QueueType, str, None], queue_name: Optional[str]) -> None:
        """
        Select the queue that subsequent operations are routed to.

        The service is created on first use and reused afterwards.

        Args:
            queue_type: Backend type; strings are parsed case-insensitively
            queue_name: Queue name within the backend

        Raises:
            InvalidQueueArgumentError: If the type is None or the name is blank
            QueueBackendUnavailableError: If the backend's client is not configured
        """
        if queue_type is None or queue_name is None or not queue_name.strip():
            raise InvalidQueueArgumentError("Queue type and name must not be empty")

        if not isinstance(queue_type, QueueType):
            queue_type = QueueType.from_string(queue_type)

        identity = QueueIdentity(queue_type, queue_name)
        if identity.key not in self._services:
            service = self._factory.create(queue_name, queue_type)
            # Concurrent first use of one identity keeps whichever service landed first
            self._services.setdefault(identity.key, service)

        self._current = identity
        logger.info("queue_switched", queue_type=queue_type.value, queue_name=queue_name)

    def _resolve(self) -> tuple[QueueIdentity, Optional[QueueService]]:
        identity = self._current
        service = self._services.get(identity.key)
        if service is None:
            logger.error(
                "queue_service_missing",
                queue_type=identity.queue_type.value,
                queue_name=identity.queue_name,
            )
        return identity, service

    async def send_message(self, message: Optional[QueueMessage]) -> bool:
        """Send a message to the current queue."""
        identity, service = self._resolve()
        if service is None:
            return False

        logger.info(
            "queue_message_sending",
            queue_type=identity.queue_type.value,
            message_id=message.message_id if message else None,
        )
        return await service.send_message(message)

    def send_message_async(self, message: Optional[QueueMessage]) -> "asyncio.Future[bool]":
        """Schedule a send to the current queue without waiting for it."""
        identity, service = self._resolve()
        if service is None:
            future: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
            future.set_result(False)
            return future

        logger.info(
            "queue_message_sending_async",
            queue_type=identity.queue_type.value,
            message_id=message.message_id if message else None,
        )
        return service.send_message_async(message)

    async def send_messages(self, messages: Optional[list[Optional[QueueMessage]]]) -> int:
        """Send a batch of messages to the current queue; returns the success count."""
        identity, service = self._resolve()
        if service is None:
            return 0

        logger.info(
            "queue_batch_sending",
            queue_type=identity.queue_type.value,
            count=len(messages) if messages else 0,
        )
        return await service.send_messages(messages)

    async def receive_message(self, timeout_seconds: Optional[float] = None) -> Optional[QueueMessage]:
        """
        Receive a message from the current queue.

        Args:
            timeout_seconds: How long to wait for a message (None = non-blocking)

        Returns:
            Message if available, None otherwise
        """
        identity, service = self._resolve()
        if service is None:
            return None

        message = await service.receive_message(timeout_seconds)
        if message is not None:
            logger.info(
                "queue_message_received",
                queue_type=identity.queue_type.value,
                message_id=message.message_id,
                timeout_seconds=timeout_seconds,
            )
        return message

    async def receive_messages(self, max_messages: int) -> list[QueueMessage]:
        """Receive up to max_messages from the current queue without waiting."""
        identity, service = self._resolve()
        if service is None:
            return []

        messages = await service.receive_messages(max_messages)
        logger.info("queue_batch_received", queue_type=identity.queue_type.value, count=len(messages))
        return messages

    async def get_queue_size(self) -> int:
        """Get the number of messages in the current queue."""
        _, service = self._resolve()
        if service is None:
            return 0
        return await service.get_queue_size()

    async def clear_queue(self) -> bool:
        """Clear the current queue."""
        identity, service = self._resolve()
        if service is None:
            return False

        logger.info("queue_clearing", queue_type=identity.queue_type.value, queue_name=identity.queue_name)
        return await service.clear_queue()

    async def is_empty(self) -> bool:
        """Check whether the current queue is empty."""
        _, service = self._resolve()
        if service is None:
            return True
        return await service.is_empty()

    def get_current_queue_type(self) -> QueueType:
        return self._current.queue_type

    def get_current_queue_name(self) -> str:
        return self._current.queue_name

    def get_current_queue(self) -> QueueIdentity:
        """Return the current (type, name) selection as one consistent pair."""
        return self._current

    def get_all_queue_services(self) -> Mapping[str, QueueService]:
        """
        Get a read-only snapshot of every created queue service.

        Returns:
            Mapping of "<type>:<name>" to queue service
        """
        return MappingProxyType(dict(self._services))

    async def close(self) -> None:
        """Release connections opened by the factory."""
        await self._factory.close()
