"""
Queue service contract and shared behavior.

This module defines the interface that every queue backend must follow,
allowing the router to swap between the in-process queue, Redis and
RabbitMQ at runtime. ``QueueService`` is the protocol the router and
factory depend on; ``BaseQueueService`` supplies the batch, async and
derived operations on top of a backend's single-item primitives.

Every method on the contract reports expected failures as a result value
(False, None, 0) rather than raising.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional, Protocol, runtime_checkable

from queue_router.models.message import QueueMessage
from queue_router.queue.types import QueueType
from queue_router.utils.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class QueueService(Protocol):
    """Capabilities every queue backend provides."""

    @property
    def queue_name(self) -> str: ...

    @property
    def queue_type(self) -> QueueType: ...

    async def send_message(self, message: Optional[QueueMessage]) -> bool: ...

    def send_message_async(self, message: Optional[QueueMessage]) -> "asyncio.Future[bool]": ...

    async def send_messages(self, messages: Optional[list[Optional[QueueMessage]]]) -> int: ...

    async def receive_message(self, timeout_seconds: Optional[float] = None) -> Optional[QueueMessage]: ...

    async def receive_messages(self, max_messages: int) -> list[QueueMessage]: ...

    async def get_queue_size(self) -> int: ...

    async def clear_queue(self) -> bool: ...

    async def is_empty(self) -> bool: ...

    def get_queue_type(self) -> str: ...


class BaseQueueService(ABC):
    """Abstract base class for queue backends."""

    def __init__(self, queue_name: str, queue_type: QueueType):
        """
        Initialize the shared service state.

        Args:
            queue_name: Name of the queue within its backend
            queue_type: Backend type tag, fixed for the life of the instance
        """
        self._queue_name = queue_name
        self._queue_type = queue_type
        self._pending_sends: set[asyncio.Task] = set()
        self._logger = logger.bind(queue_name=queue_name, queue_type=queue_type.value)

    @property
    def queue_name(self) -> str:
        return self._queue_name

    @property
    def queue_type(self) -> QueueType:
        return self._queue_type

    def get_queue_type(self) -> str:
        """Return the backend type tag (e.g. "redis")."""
        return self._queue_type.value

    def __repr__(self) -> str:
        return f"{type(self).__name__}(queue_name={self._queue_name!r})"

    # ------------------------------------------------------------------
    # Backend primitives
    # ------------------------------------------------------------------

    @abstractmethod
    async def send_message(self, message: Optional[QueueMessage]) -> bool:
        """
        Add a message to the queue.

        Args:
            message: Message to enqueue

        Returns:
            True if successful, False otherwise (including a None message)
        """
        pass

    @abstractmethod
    async def _receive(self) -> Optional[QueueMessage]:
        """Remove and return a message without waiting, or None if empty."""
        pass

    @abstractmethod
    async def _receive_with_timeout(self, timeout_seconds: float) -> Optional[QueueMessage]:
        """Wait up to timeout_seconds for a message, or None on expiry."""
        pass

    @abstractmethod
    async def get_queue_size(self) -> int:
        """
        Get number of messages waiting in the queue.

        Returns:
            Number of messages, or 0 if the backend cannot report it
        """
        pass

    @abstractmethod
    async def clear_queue(self) -> bool:
        """
        Remove every message from the queue.

        Returns:
            True if the queue was cleared (or clearing is a no-op), False otherwise
        """
        pass

    # ------------------------------------------------------------------
    # Derived operations
    # ------------------------------------------------------------------

    async def receive_message(self, timeout_seconds: Optional[float] = None) -> Optional[QueueMessage]:
        """
        Remove and return a message from the queue.

        Args:
            timeout_seconds: How long to wait for a message (None or <= 0 = non-blocking)

        Returns:
            Message if available, None otherwise. Cancelling a receive that
            is waiting (a timed wait, or a backend whose untimed receive
            polls) also returns None; the task's cancellation request is
            left pending so the caller can still observe it.
        """
        try:
            if timeout_seconds is None or timeout_seconds <= 0:
                return await self._receive()
            return await self._receive_with_timeout(timeout_seconds)
        except asyncio.CancelledError:
            self._logger.warning("queue_receive_interrupted", timeout_seconds=timeout_seconds)
            return None

    def send_message_async(self, message: Optional[QueueMessage]) -> "asyncio.Task[bool]":
        """
        Schedule a send on the running event loop without waiting for it.

        No ordering is guaranteed between two async sends.

        Returns:
            Task resolving to the send result (False if the send raised)
        """
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._send_guarded(message))
        # Keep a strong reference until the task finishes
        self._pending_sends.add(task)
        task.add_done_callback(self._pending_sends.discard)
        return task

    async def _send_guarded(self, message: Optional[QueueMessage]) -> bool:
        try:
            return await self.send_message(message)
        except Exception as e:
            self._logger.error("queue_async_send_failed", error=str(e), exc_info=True)
            return False

    async def send_messages(self, messages: Optional[list[Optional[QueueMessage]]]) -> int:
        """
        Send each message in order, continuing past failures.

        Returns:
            Number of messages sent successfully
        """
        if not messages:
            return 0

        success_count = 0
        for message in messages:
            try:
                if await self.send_message(message):
                    success_count += 1
            except Exception as e:
                self._logger.error("queue_batch_send_item_failed", error=str(e), exc_info=True)

        self._logger.info(
            "queue_batch_send_completed",
            succeeded=success_count,
            total=len(messages),
        )
        return success_count

    async def receive_messages(self, max_messages: int) -> list[QueueMessage]:
        """
        Receive up to max_messages without waiting for more to arrive.

        Returns:
            Between 0 and max_messages messages, in dequeue order
        """
        messages: list[QueueMessage] = []
        for _ in range(max(max_messages, 0)):
            message = await self.receive_message()
            if message is None:
                break
            messages.append(message)
        return messages

    async def is_empty(self) -> bool:
        """Check whether the queue reports no waiting messages."""
        return await self.get_queue_size() == 0

    def _log_operation(self, operation: str, **details) -> None:
        """Record a completed queue operation."""
        self._logger.info("queue_operation", operation=operation, **details)
