"""
Configuration management for the queue router.

This module provides environment-based configuration using Pydantic Settings.
Supports loading from .env files and environment variables, and provides
validation with clear error messages.
"""

from functools import lru_cache
from typing import Any, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from queue_router.queue.types import QueueType
from queue_router.utils.logging import get_logger, redact_url

logger = get_logger(__name__)


class AppSettings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or a .env file.
    Priority: Environment variables > .env file > defaults
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown environment variables
    )

    # ======================
    # Redis Configuration
    # ======================
    redis_url: Optional[str] = None
    """Redis connection URL; Redis queues are unavailable when unset."""

    # ======================
    # RabbitMQ Configuration
    # ======================
    rabbitmq_url: Optional[str] = None
    """AMQP connection URL; RabbitMQ queues are unavailable when unset."""
    rabbitmq_exchange: str = "queue.exchange"
    """Pre-provisioned exchange that messages are published to."""
    rabbitmq_receive_timeout: float = 1.0
    """Seconds an untimed RabbitMQ receive polls before giving up."""

    connect_retry_attempts: int = 3
    """Connection attempts per backend at startup."""

    # ======================
    # Router Defaults
    # ======================
    default_queue_type: QueueType = QueueType.JAVA
    """Backend selected when the router starts."""
    default_queue_name: str = "default"
    """Queue name selected when the router starts."""

    # ======================
    # Application Settings
    # ======================
    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR)."""
    environment: str = "development"
    """Application environment (development, staging, production)."""

    # ======================
    # Validators
    # ======================
    @field_validator("default_queue_type", mode="before")
    @classmethod
    def parse_default_queue_type(cls, v: Any) -> QueueType:
        """Parse the backend type leniently; unknown values select the in-process queue."""
        return QueueType.from_string(v)

    @field_validator("default_queue_name")
    @classmethod
    def validate_default_queue_name(cls, v: str) -> str:
        """Validate that the default queue name is not blank."""
        if not v.strip():
            raise ValueError("default_queue_name must not be blank")
        return v

    @field_validator("rabbitmq_receive_timeout")
    @classmethod
    def validate_rabbitmq_receive_timeout(cls, v: float) -> float:
        """Validate receive timeout is positive."""
        if v <= 0:
            raise ValueError(f"rabbitmq_receive_timeout must be positive, got {v}")
        return v

    @field_validator("connect_retry_attempts")
    @classmethod
    def validate_connect_retry_attempts(cls, v: int) -> int:
        """Validate at least one connection attempt is made."""
        if v < 1:
            raise ValueError(f"connect_retry_attempts must be at least 1, got {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log level is a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: {', '.join(sorted(valid_levels))}"
            )
        return upper_v

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment name."""
        valid_envs = {"development", "staging", "production"}
        lower_v = v.lower()
        if lower_v not in valid_envs:
            raise ValueError(
                f"Invalid environment '{v}'. Must be one of: {', '.join(sorted(valid_envs))}"
            )
        return lower_v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def available_queue_types(self) -> list[str]:
        """Backend types that can be created with this configuration."""
        queue_types = [QueueType.JAVA.value]
        if self.redis_url:
            queue_types.append(QueueType.REDIS.value)
        if self.rabbitmq_url:
            queue_types.append(QueueType.RABBITMQ.value)
        return queue_types

    def log_configuration_summary(self) -> None:
        """Log a summary of the current configuration (connection passwords are redacted)."""
        logger.info(
            "configuration_summary",
            environment=self.environment,
            log_level=self.log_level,
            redis_url=redact_url(self.redis_url),
            rabbitmq_url=redact_url(self.rabbitmq_url),
            rabbitmq_exchange=self.rabbitmq_exchange,
            default_queue_type=self.default_queue_type.value,
            default_queue_name=self.default_queue_name,
            available_queue_types=self.available_queue_types,
        )


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get the global application settings (cached).

    Returns:
        AppSettings: The configured application settings.
    """
    return AppSettings()
