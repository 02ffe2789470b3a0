"""
Queue message model.

A QueueMessage is the value object carried by every backend. The
in-process backend stores instances directly; the Redis and RabbitMQ
backends move them over the wire as JSON with camelCase field names.
"""

import json
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union

from queue_router.errors import MessageSerializationError


@dataclass
class QueueMessage:
    """
    A message sent through a queue service.

    The all-field constructor stores exactly what it is given, so
    ``QueueMessage()`` leaves every field as None. Use ``create()`` to get
    a message with create_time, priority and delay_seconds filled in.
    """

    message_id: Optional[str] = None
    content: Optional[str] = None
    message_type: Optional[str] = None
    create_time: Optional[datetime] = None
    priority: Optional[int] = None
    delay_seconds: Optional[int] = None
    """Advisory only; no backend delays delivery."""

    @classmethod
    def create(
        cls,
        message_id: str,
        content: str,
        message_type: Optional[str] = None,
    ) -> "QueueMessage":
        """
        Build a message with default metadata.

        Args:
            message_id: Unique identifier for the message
            content: Message payload
            message_type: Free-form classification tag

        Returns:
            Message stamped with the current time, priority 0 and no delay
        """
        return cls(
            message_id=message_id,
            content=content,
            message_type=message_type,
            create_time=datetime.now(),
            priority=0,
            delay_seconds=0,
        )

    @staticmethod
    def new_id() -> str:
        """Generate a unique message id."""
        return uuid.uuid4().hex

    def to_dict(self) -> dict[str, Any]:
        """Serialize message to its wire dictionary."""
        return {
            "messageId": self.message_id,
            "content": self.content,
            "messageType": self.message_type,
            "createTime": self.create_time.isoformat() if self.create_time else None,
            "priority": self.priority,
            "delaySeconds": self.delay_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QueueMessage":
        """
        Deserialize message from its wire dictionary.

        Missing fields become None.

        Raises:
            MessageSerializationError: If a field has an unparseable value
        """
        if not isinstance(data, dict):
            raise MessageSerializationError(
                f"Expected a JSON object, got {type(data).__name__}"
            )

        try:
            create_time = data.get("createTime")
            priority = data.get("priority")
            delay_seconds = data.get("delaySeconds")
            return cls(
                message_id=data.get("messageId"),
                content=data.get("content"),
                message_type=data.get("messageType"),
                create_time=datetime.fromisoformat(create_time) if create_time else None,
                priority=int(priority) if priority is not None else None,
                delay_seconds=int(delay_seconds) if delay_seconds is not None else None,
            )
        except (TypeError, ValueError) as e:
            raise MessageSerializationError(f"Invalid message payload: {e}") from e

    def to_json(self) -> str:
        """Serialize message to a JSON string."""
        try:
            return json.dumps(self.to_dict(), ensure_ascii=False)
        except (AttributeError, TypeError, ValueError) as e:
            raise MessageSerializationError(f"Message is not serializable: {e}") from e

    @classmethod
    def from_json(cls, raw: Union[str, bytes]) -> "QueueMessage":
        """Deserialize message from a JSON string or bytes."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise MessageSerializationError(f"Malformed message JSON: {e}") from e
        return cls.from_dict(data)
