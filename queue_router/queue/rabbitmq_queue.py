"""
RabbitMQ-based message queue implementation.

Messages are published to a pre-provisioned direct exchange with the
queue name as routing key, and consumed by polling the broker queue of
the same name. Exchange, queue and binding must already exist; this
module never declares them.

Queue size and purge need the broker's management API, which this
integration does not use. ``get_queue_size`` always reports 0 and
``clear_queue`` is an acknowledged no-op.
"""

import asyncio
from typing import Optional

import aio_pika
from aio_pika.abc import AbstractChannel, AbstractExchange, AbstractIncomingMessage, AbstractQueue
from aio_pika.exceptions import AMQPError

from queue_router.errors import MessageSerializationError
from queue_router.models.message import QueueMessage
from queue_router.queue.base import BaseQueueService
from queue_router.queue.types import QueueType

DEFAULT_EXCHANGE = "queue.exchange"
DEFAULT_RECEIVE_TIMEOUT = 1.0
POLL_INTERVAL = 0.1

# AMQP basic.properties priority is a single octet
MIN_PRIORITY = 0
MAX_PRIORITY = 255


class RabbitMQQueueService(BaseQueueService):
    """RabbitMQ implementation of a queue service."""

    def __init__(
        self,
        queue_name: str,
        channel: AbstractChannel,
        exchange_name: str = DEFAULT_EXCHANGE,
        receive_timeout: float = DEFAULT_RECEIVE_TIMEOUT,
    ):
        """
        Initialize RabbitMQ queue.

        Args:
            queue_name: Broker queue to consume from; also the routing key
            channel: Open aio-pika channel (owned by the caller)
            exchange_name: Exchange messages are published to
            receive_timeout: Poll window in seconds for an untimed receive
        """
        super().__init__(queue_name, QueueType.RABBITMQ)
        self._channel = channel
        self.exchange_name = exchange_name
        self.routing_key = queue_name
        self.receive_timeout = receive_timeout
        self._exchange: Optional[AbstractExchange] = None
        self._queue: Optional[AbstractQueue] = None
        self._logger.info("queue_initialized", exchange=exchange_name)

    async def _get_exchange(self) -> AbstractExchange:
        if self._exchange is None:
            self._exchange = await self._channel.get_exchange(self.exchange_name)
        return self._exchange

    async def _get_queue(self) -> AbstractQueue:
        if self._queue is None:
            self._queue = await self._channel.get_queue(self.queue_name)
        return self._queue

    async def send_message(self, message: Optional[QueueMessage]) -> bool:
        """Publish a serialized message to the exchange."""
        if message is None:
            self._logger.warning("queue_message_missing")
            return False

        if message.priority is not None and not MIN_PRIORITY <= message.priority <= MAX_PRIORITY:
            self._logger.error(
                "queue_send_failed",
                message_id=message.message_id,
                error=f"priority {message.priority} outside {MIN_PRIORITY}..{MAX_PRIORITY}",
            )
            return False

        try:
            body = message.to_json().encode("utf-8")
            amqp_message = aio_pika.Message(
                body=body,
                content_type="application/json",
                message_id=message.message_id,
                priority=message.priority,
            )
            exchange = await self._get_exchange()
            await exchange.publish(amqp_message, routing_key=self.routing_key)
        except MessageSerializationError as e:
            self._logger.error("queue_message_serialize_failed", message_id=message.message_id, error=str(e))
            return False
        except (AMQPError, OSError, asyncio.TimeoutError) as e:
            self._exchange = None
            self._logger.error("queue_send_failed", message_id=message.message_id, error=str(e))
            return False

        self._log_operation("send", message_id=message.message_id)
        return True

    async def _receive(self) -> Optional[QueueMessage]:
        return await self._poll(self.receive_timeout)

    async def _receive_with_timeout(self, timeout_seconds: float) -> Optional[QueueMessage]:
        return await self._poll(timeout_seconds, timeout_seconds=timeout_seconds)

    async def _poll(self, wait_seconds: float, **details) -> Optional[QueueMessage]:
        """Poll the broker queue until a message arrives or wait_seconds elapse."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + wait_seconds

        try:
            queue = await self._get_queue()
            while True:
                incoming = await queue.get(no_ack=True, fail=False)
                if incoming is not None:
                    return self._decode(incoming, **details)

                remaining = deadline - loop.time()
                if remaining <= 0:
                    return None
                await asyncio.sleep(min(POLL_INTERVAL, remaining))
        except (AMQPError, OSError, asyncio.TimeoutError) as e:
            self._queue = None
            self._logger.error("queue_receive_failed", error=str(e))
            return None

    def _decode(self, incoming: AbstractIncomingMessage, **details) -> Optional[QueueMessage]:
        try:
            message = QueueMessage.from_json(incoming.body)
        except MessageSerializationError as e:
            self._logger.error("queue_message_deserialize_failed", amqp_message_id=incoming.message_id, error=str(e))
            return None

        self._log_operation("receive", message_id=message.message_id, **details)
        return message

    async def get_queue_size(self) -> int:
        """Queue depth is not available without the management API; always 0."""
        self._logger.warning("queue_size_unsupported")
        return 0

    async def clear_queue(self) -> bool:
        """Purging is not available without the management API; acknowledged as a no-op."""
        self._logger.warning("queue_clear_unsupported")
        self._log_operation("clear", purged=False)
        return True
