"""
Environment-driven configuration for the key-item store client.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_IDENTITY_TABLE,
    DEFAULT_OPENAI_CACHE_TABLE,
    DEFAULT_OPENAI_CACHE_TTL,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_POLL_MAX_ATTEMPTS,
    DEFAULT_QUESTION_SETS_SNIPPET_GSI,
    DEFAULT_QUESTION_SETS_TABLE,
    DEFAULT_REGION,
)


class StoreSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore", populate_by_name=True)

    # Mode
    in_memory: bool = Field(default=False, validation_alias="DYNAMODB_IN_MEMORY")

    # Transport / auth
    endpoint: str | None = Field(default=None, validation_alias="DYNAMODB_ENDPOINT")
    region: str = Field(default=DEFAULT_REGION, validation_alias="AWS_REGION")
    profile: str | None = Field(default=None, validation_alias="AWS_PROFILE")
    access_key_id: str | None = Field(default=None, validation_alias="AWS_ACCESS_KEY_ID")
    secret_access_key: str | None = Field(
        default=None, validation_alias="AWS_SECRET_ACCESS_KEY"
    )
    session_token: str | None = Field(default=None, validation_alias="AWS_SESSION_TOKEN")

    # Table names
    identity_table_name: str = Field(
        default=DEFAULT_IDENTITY_TABLE, validation_alias="IDENTITY_TABLE_NAME"
    )
    question_sets_table_name: str = Field(
        default=DEFAULT_QUESTION_SETS_TABLE, validation_alias="QUESTION_SETS_TABLE_NAME"
    )
    question_sets_snippet_gsi_name: str = Field(
        default=DEFAULT_QUESTION_SETS_SNIPPET_GSI,
        validation_alias="QUESTION_SETS_SNIPPET_GSI_NAME",
    )
    openai_cache_table_name: str = Field(
        default=DEFAULT_OPENAI_CACHE_TABLE, validation_alias="OPENAI_CACHE_TABLE_NAME"
    )
    openai_cache_ttl_seconds: int = Field(
        default=DEFAULT_OPENAI_CACHE_TTL, validation_alias="OPENAI_CACHE_TTL_SECONDS"
    )

    # Control-plane polling
    poll_interval_seconds: float = Field(
        default=DEFAULT_POLL_INTERVAL, validation_alias="DYNAMODB_POLL_INTERVAL_SECONDS"
    )
    poll_max_attempts: int = Field(
        default=DEFAULT_POLL_MAX_ATTEMPTS, validation_alias="DYNAMODB_POLL_MAX_ATTEMPTS"
    )

    @field_validator("openai_cache_ttl_seconds", mode="before")
    @classmethod
    def _positive_ttl(cls, value: Any) -> int:
        # Anything unusable falls back to the default instead of failing startup.
        try:
            parsed = int(float(value))
        except (TypeError, ValueError, OverflowError):
            return DEFAULT_OPENAI_CACHE_TTL
        return parsed if parsed > 0 else DEFAULT_OPENAI_CACHE_TTL

    @field_validator("endpoint", "profile", "access_key_id", "secret_access_key", "session_token")
    @classmethod
    def _blank_is_none(cls, value: str | None) -> str | None:
        return value or None

    @property
    def resolved_endpoint(self) -> str:
        return self.endpoint or f"https://dynamodb.{self.region}.amazonaws.com"

    @property
    def host(self) -> str:
        return urlsplit(self.resolved_endpoint).netloc


def load_settings(**overrides: Any) -> StoreSettings:
    """Build settings from the environment; non-None overrides win."""
    return StoreSettings(**{k: v for k, v in overrides.items() if v is not None})
