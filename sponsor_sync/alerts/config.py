"""Notification configuration.

Controls dispatch concurrency and message personalisation. All settings
can be overridden via ``NOTIFICATIONS_*`` environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class NotificationConfig(BaseSettings):
    """Configuration for change notification dispatch."""

    model_config = SettingsConfigDict(
        env_prefix="NOTIFICATIONS_",
        case_sensitive=False,
        extra="ignore",
    )

    max_concurrency: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum notifications being sent at the same time",
    )
    recipient_name: str = Field(
        default="Subscriber",
        description="Greeting name used in every message",
    )
