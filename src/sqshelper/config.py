from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MESSAGE_SIZE_THRESHOLD = 256 * 1000
SQS_MAX_MESSAGE_BYTES = 256 * 1024


class HelperSettings(BaseSettings):
    """Helper settings loaded from ``SQS_HELPER_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SQS_HELPER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # AWS identity
    aws_access_key_id: str | None = Field(
        default=None, description="Optional access key (otherwise use IAM role)."
    )
    aws_secret_access_key: str | None = Field(
        default=None, description="Optional secret access key."
    )
    aws_session_token: str | None = Field(
        default=None, description="Optional session token for assumed roles."
    )
    region_name: str = Field("us-east-1", description="AWS region hosting queue and bucket.")
    account_id: str | None = Field(
        default=None, description="Queue owner account id, used to resolve queue URLs."
    )

    # Large payload handling
    payload_bucket_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "SQS_HELPER_PAYLOAD_BUCKET_NAME", "SQS_LARGE_PAYLOAD_S3_BUCKET_NAME"
        ),
        description="S3 bucket receiving offloaded message bodies.",
    )
    size_threshold_bytes: int = Field(
        DEFAULT_MESSAGE_SIZE_THRESHOLD,
        ge=1,
        le=SQS_MAX_MESSAGE_BYTES,
        description="Body + attributes size above which the body is offloaded.",
    )
    delete_from_store: bool = Field(
        False,
        description="Delete offloaded payloads from S3 when their message is deleted.",
    )

    # Polling
    wait_time_seconds: int = Field(
        20,
        ge=0,
        le=20,
        description="SQS long-poll duration used when a receive request omits it.",
    )
    receiver_sleep_ms: int = Field(
        5000,
        ge=0,
        validation_alias=AliasChoices("SQS_HELPER_RECEIVER_SLEEP_MS", "RECEIVER_SLEEP_DURATION"),
        description="Consumer sleep after an empty poll, in milliseconds.",
    )

    # Observability
    log_level: str = Field("INFO", description="Root logging level (DEBUG, INFO, etc.).")
    service_name: str = Field("sqshelper", description="Service name injected in log records.")


@lru_cache(maxsize=1)
def get_settings() -> HelperSettings:
    """Return cached settings (loads env on first call)."""
    return HelperSettings()


def reset_settings_cache() -> None:
    """Clear cached settings (useful for tests)."""
    get_settings.cache_clear()
