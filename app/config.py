"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./notifications.db",
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    app_timezone: str = Field(
        default="UTC",
        description="Timezone used to store and report timestamps",
    )
    api_key: str | None = Field(
        default=None,
        description="Shared key event producers must send in the X-API-Key header",
    )

    sendgrid_api_key: str | None = Field(
        default=None,
        description="SendGrid API key used for sending transactional emails via the REST API",
    )
    sendgrid_sender: str | None = Field(
        default=None,
        description="Email address that will appear as the sender of transactional messages",
        min_length=3,
    )
    twilio_account_sid: str | None = Field(
        default=None, description="Twilio account SID used for SMS delivery"
    )
    twilio_auth_token: str | None = Field(
        default=None, description="Twilio auth token used for SMS delivery"
    )
    twilio_from_number: str | None = Field(
        default=None, description="Sender phone number registered in Twilio"
    )
    push_gateway_url: str | None = Field(
        default=None, description="HTTP endpoint of the push notification gateway"
    )
    push_server_key: str | None = Field(
        default=None, description="Server key sent to the push gateway"
    )

    provider_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Upper bound for a single provider call before it counts as a transient failure",
    )
    default_max_retries: int = Field(
        default=3, ge=0, description="Retry budget assigned to new notifications"
    )
    retry_min_delay_seconds: float = Field(
        default=1.0, gt=0, description="Lower bound for the first retry delay"
    )
    retry_max_delay_seconds: float = Field(
        default=3600.0, gt=0, description="Ceiling applied to every retry delay"
    )
    retry_backoff_divisor: int = Field(
        default=16,
        ge=1,
        description="Priority max delay is divided by this value to seed the backoff",
    )
    preference_opt_in_required: bool = Field(
        default=True,
        description="Deny optional notification types when the user has no preference record",
    )
    default_language: str = Field(
        default="en", min_length=2, description="Fallback template language"
    )
    dispatch_lock_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Time a dispatch waits for another in-flight dispatch of the same notification",
    )
    batch_max_workers: int = Field(
        default=4, ge=1, description="Parallel dispatches used by batch submissions"
    )

    worker_enabled: bool = Field(
        default=False,
        description="Start the schedule queue worker together with the API",
    )
    worker_poll_interval_seconds: float = Field(default=1.0, gt=0)
    worker_batch_size: int = Field(default=50, ge=1)
    queue_claim_timeout_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Claims older than this are considered abandoned and released",
    )

    @model_validator(mode="after")
    def _validate_sendgrid_pair(self) -> "Settings":
        if bool(self.sendgrid_api_key) ^ bool(self.sendgrid_sender):
            raise ValueError(
                "SENDGRID_API_KEY and SENDGRID_SENDER must both be provided to enable email"
            )
        if self.sendgrid_sender and "@" not in self.sendgrid_sender:
            raise ValueError("SENDGRID_SENDER must be a valid email address")
        return self

    @model_validator(mode="after")
    def _validate_retry_bounds(self) -> "Settings":
        if self.retry_min_delay_seconds > self.retry_max_delay_seconds:
            raise ValueError(
                "RETRY_MIN_DELAY_SECONDS cannot be greater than RETRY_MAX_DELAY_SECONDS"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
