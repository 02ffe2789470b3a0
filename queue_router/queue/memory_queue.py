"""
In-process message queue implementation.

This module provides an unbounded FIFO queue living in the event loop's
process. Messages are stored as objects, without serialization, and are
lost when the process exits.
"""

import asyncio
from typing import Optional

from queue_router.models.message import QueueMessage
from queue_router.queue.base import BaseQueueService
from queue_router.queue.types import QueueType


class MemoryQueueService(BaseQueueService):
    """In-memory implementation of a queue service."""

    def __init__(self, queue_name: str):
        """
        Initialize in-memory queue.

        Args:
            queue_name: Name for the queue (for logging)
        """
        super().__init__(queue_name, QueueType.JAVA)
        self._queue: asyncio.Queue[QueueMessage] = asyncio.Queue()
        self._logger.info("queue_initialized")

    async def send_message(self, message: Optional[QueueMessage]) -> bool:
        """Add a message to the tail of the queue."""
        if message is None:
            self._logger.warning("queue_message_missing")
            return False

        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            self._logger.warning("queue_full", message_id=message.message_id)
            return False

        self._log_operation("send", message_id=message.message_id)
        return True

    async def _receive(self) -> Optional[QueueMessage]:
        try:
            message = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

        self._log_operation("receive", message_id=message.message_id)
        return message

    async def _receive_with_timeout(self, timeout_seconds: float) -> Optional[QueueMessage]:
        try:
            message = await asyncio.wait_for(self._queue.get(), timeout=timeout_seconds)
        except asyncio.TimeoutError:
            return None

        self._log_operation("receive", message_id=message.message_id, timeout_seconds=timeout_seconds)
        return message

    async def get_queue_size(self) -> int:
        """Get number of messages waiting in queue."""
        return self._queue.qsize()

    async def clear_queue(self) -> bool:
        """Drop every waiting message."""
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break

        self._log_operation("clear")
        return True
