"""
Message queue router.

Send and receive messages through an in-process queue, Redis or RabbitMQ,
and switch between backends and named queues at runtime.
"""

from queue_router.errors import (
    InvalidQueueArgumentError,
    MessageSerializationError,
    QueueBackendUnavailableError,
    QueueError,
)
from queue_router.models.message import QueueMessage
from queue_router.queue import (
    QueueIdentity,
    QueueRouter,
    QueueService,
    QueueServiceFactory,
    QueueType,
)

__version__ = "0.1.0"

__all__ = [
    "InvalidQueueArgumentError",
    "MessageSerializationError",
    "QueueBackendUnavailableError",
    "QueueError",
    "QueueIdentity",
    "QueueMessage",
    "QueueRouter",
    "QueueService",
    "QueueServiceFactory",
    "QueueType",
]
