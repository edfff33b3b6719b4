"""Client settings using Pydantic. No side effects at import time."""

from functools import lru_cache
from typing import Annotated, Any

from pydantic import Field, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from secapi.core.errors import ConfigurationError

from .constants import (
    API_KEY_PLACEHOLDER,
    DEFAULT_BASE_URL,
    DEFAULT_QUEUE_WAIT,
    DEFAULT_QUEUE_WAIT_WARNING_THRESHOLD,
    DEFAULT_RATE_LIMIT_THRESHOLD,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_BACKOFF_FACTOR,
    DEFAULT_RETRY_INITIAL_DELAY,
    DEFAULT_RETRY_MAX_ATTEMPTS,
    DEFAULT_RETRY_MAX_DELAY,
    ENV_PREFIX,
    MIN_API_KEY_LENGTH,
    MIN_RETRY_BACKOFF_FACTOR,
)


class ClientSettings(BaseSettings):
    """Client settings with validation.

    Settings are loaded from SECAPI_* environment variables and .env file.
    Keyword arguments override both.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra env vars
    )

    # === API ===
    api_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    request_timeout: Annotated[float, Field(gt=0)] = DEFAULT_REQUEST_TIMEOUT

    # === Retry ===
    retry_max_attempts: Annotated[int, Field(gt=0)] = DEFAULT_RETRY_MAX_ATTEMPTS
    retry_initial_delay: Annotated[float, Field(gt=0)] = DEFAULT_RETRY_INITIAL_DELAY
    retry_max_delay: Annotated[float, Field(gt=0)] = DEFAULT_RETRY_MAX_DELAY
    retry_backoff_factor: Annotated[float, Field(ge=MIN_RETRY_BACKOFF_FACTOR)] = (
        DEFAULT_RETRY_BACKOFF_FACTOR
    )

    # === Rate Limits ===
    rate_limit_threshold: Annotated[float, Field(ge=0, le=1)] = DEFAULT_RATE_LIMIT_THRESHOLD
    queue_default_wait: Annotated[float, Field(gt=0)] = DEFAULT_QUEUE_WAIT
    queue_wait_warning_threshold: Annotated[float, Field(gt=0)] = (
        DEFAULT_QUEUE_WAIT_WARNING_THRESHOLD
    )

    @model_validator(mode="after")
    def _check_consistency(self) -> "ClientSettings":
        if not self.api_key:
            raise ValueError(
                "api_key is required. Set SECAPI_API_KEY or pass api_key explicitly."
            )
        if API_KEY_PLACEHOLDER in self.api_key:
            raise ValueError("api_key still contains the placeholder value.")
        if len(self.api_key) < MIN_API_KEY_LENGTH:
            raise ValueError(
                f"api_key is too short (minimum {MIN_API_KEY_LENGTH} characters)."
            )
        if self.retry_max_delay < self.retry_initial_delay:
            raise ValueError("retry_max_delay must be >= retry_initial_delay.")
        return self

    def masked_api_key(self) -> str:
        """API key with all but the last four characters hidden."""
        key = self.api_key or ""
        return "*" * max(len(key) - 4, 0) + key[-4:]


def load_settings(**overrides: Any) -> ClientSettings:
    """Build settings from the environment plus explicit overrides.

    Raises:
        ConfigurationError: If any value is missing or invalid
    """
    try:
        return ClientSettings(**overrides)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'settings'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(f"Invalid client configuration: {problems}") from e


@lru_cache
def get_settings() -> ClientSettings:
    """Get cached settings instance built from the environment.

    This is the recommended way to access settings to avoid
    repeated .env file parsing.
    """
    return load_settings()
