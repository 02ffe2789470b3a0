"""Backend type enumeration and queue identity."""

from enum import Enum
from typing import NamedTuple, Optional, Union


class QueueType(str, Enum):
    """Supported queue backend types."""

    JAVA = "java"
    """In-process FIFO queue."""
    REDIS = "redis"
    """Remote list-based store."""
    RABBITMQ = "rabbitmq"
    """AMQP broker."""

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_string(cls, value: Optional[Union[str, "QueueType"]]) -> "QueueType":
        """
        Parse a backend type, case-insensitively.

        Absent or unrecognized input resolves to the in-process type;
        this never raises.
        """
        if isinstance(value, cls):
            return value
        if not value:
            return cls.JAVA

        normalized = str(value).strip().lower()
        for queue_type in cls:
            if queue_type.value == normalized:
                return queue_type

        return cls.JAVA


class QueueIdentity(NamedTuple):
    """A (backend type, queue name) pair selecting one queue service."""

    queue_type: QueueType
    queue_name: str

    @property
    def key(self) -> str:
        """Cache key in the form ``<type>:<name>``."""
        return f"{self.queue_type.value}:{self.queue_name}"
