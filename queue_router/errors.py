"""
Exceptions raised across the queue abstraction boundary.

Only caller misuse and misconfiguration are raised to callers of the
router and factory. Transient backend failures are absorbed by each
queue service and reported as False/None/0 results instead.
"""


class QueueError(Exception):
    """Base exception for queue router errors."""

    pass


class InvalidQueueArgumentError(QueueError, ValueError):
    """Raised when a queue name is blank or a queue type is missing."""

    pass


class QueueBackendUnavailableError(QueueError, RuntimeError):
    """Raised when a backend is requested whose native client is not configured."""

    def __init__(self, queue_type: str, message: str):
        self.queue_type = queue_type
        super().__init__(message)


class MessageSerializationError(QueueError, ValueError):
    """Raised when a message cannot be encoded to or decoded from its wire form."""

    pass
