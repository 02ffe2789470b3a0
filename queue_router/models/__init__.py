"""Data models for the queue router."""

from queue_router.models.message import QueueMessage

__all__ = ["QueueMessage"]
