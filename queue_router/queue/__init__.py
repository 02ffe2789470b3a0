"""Queue service contract, backends, factory and router."""

from .types import QueueIdentity, QueueType
from .base import BaseQueueService, QueueService
from .memory_queue import MemoryQueueService
from .redis_queue import RedisQueueService
from .rabbitmq_queue import RabbitMQQueueService
from .factory import QueueServiceFactory
from .router import QueueRouter

__all__ = [
    "BaseQueueService",
    "MemoryQueueService",
    "QueueIdentity",
    "QueueRouter",
    "QueueService",
    "QueueServiceFactory",
    "QueueType",
    "RabbitMQQueueService",
    "RedisQueueService",
]
