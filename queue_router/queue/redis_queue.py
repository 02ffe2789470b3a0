"""
Redis-based message queue implementation.

Each queue is a Redis list stored under ``queue:<name>``. Messages are
pushed on the left and popped from the right, which gives FIFO order
across any number of producers and consumers sharing the same server.
"""

from typing import Optional, Union

from redis.asyncio import Redis
from redis.exceptions import RedisError

from queue_router.errors import MessageSerializationError
from queue_router.models.message import QueueMessage
from queue_router.queue.base import BaseQueueService
from queue_router.queue.types import QueueType

KEY_PREFIX = "queue:"


class RedisQueueService(BaseQueueService):
    """Redis list implementation of a queue service."""

    def __init__(self, queue_name: str, redis_client: Redis):
        """
        Initialize Redis queue.

        Args:
            queue_name: Name of the queue; the list key is derived from it
            redis_client: Connected asyncio Redis client (owned by the caller)
        """
        super().__init__(queue_name, QueueType.REDIS)
        self._redis = redis_client
        self.queue_key = f"{KEY_PREFIX}{queue_name}"
        self._logger.info("queue_initialized", queue_key=self.queue_key)

    async def send_message(self, message: Optional[QueueMessage]) -> bool:
        """Push a serialized message onto the head of the list."""
        if message is None:
            self._logger.warning("queue_message_missing")
            return False

        try:
            payload = message.to_json()
            length = await self._redis.lpush(self.queue_key, payload)
        except MessageSerializationError as e:
            self._logger.error("queue_message_serialize_failed", message_id=message.message_id, error=str(e))
            return False
        except (RedisError, OSError) as e:
            self._logger.error("queue_send_failed", message_id=message.message_id, error=str(e))
            return False

        if not length:
            self._logger.warning("queue_send_rejected", message_id=message.message_id)
            return False

        self._log_operation("send", message_id=message.message_id)
        return True

    async def _receive(self) -> Optional[QueueMessage]:
        try:
            payload = await self._redis.rpop(self.queue_key)
        except (RedisError, OSError) as e:
            self._logger.error("queue_receive_failed", error=str(e))
            return None

        if payload is None:
            return None
        return self._decode(payload)

    async def _receive_with_timeout(self, timeout_seconds: float) -> Optional[QueueMessage]:
        try:
            result = await self._redis.brpop([self.queue_key], timeout=timeout_seconds)
        except (RedisError, OSError) as e:
            self._logger.error("queue_receive_failed", error=str(e), timeout_seconds=timeout_seconds)
            return None

        if not result:
            return None

        # BRPOP returns a (key, value) pair
        _, payload = result
        return self._decode(payload, timeout_seconds=timeout_seconds)

    def _decode(self, payload: Union[str, bytes], **details) -> Optional[QueueMessage]:
        try:
            message = QueueMessage.from_json(payload)
        except MessageSerializationError as e:
            self._logger.error("queue_message_deserialize_failed", error=str(e))
            return None

        self._log_operation("receive", message_id=message.message_id, **details)
        return message

    async def get_queue_size(self) -> int:
        """Get the length of the backing list."""
        try:
            size = await self._redis.llen(self.queue_key)
            return size or 0
        except (RedisError, OSError) as e:
            self._logger.error("queue_size_failed", error=str(e))
            return 0

    async def clear_queue(self) -> bool:
        """
        Delete the backing list.

        Clearing a queue that is already empty also succeeds.

        Returns:
            True unless the DEL command failed
        """
        try:
            deleted = await self._redis.delete(self.queue_key)
        except (RedisError, OSError) as e:
            self._logger.error("queue_clear_failed", error=str(e))
            return False

        self._log_operation("clear", deleted=deleted)
        return True
