"""Configuration for Telegram delivery using pydantic-settings."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.paths import PROJECT_ROOT

_ENV_FILE = PROJECT_ROOT / ".env"


class TelegramConfig(BaseSettings):
    """Configuration for Telegram delivery.

    All settings are loaded from environment variables with the TELEGRAM_ prefix.

    :param bot_token: Telegram bot token from @BotFather.
    :param request_timeout: Timeout in seconds for each API request.
    :param poll_timeout: Timeout in seconds for long polling button presses.
    :param error_retry_delay: Delay in seconds between retries after a polling error.
    :param max_consecutive_errors: Maximum consecutive errors before backing off.
    :param backoff_delay: Delay in seconds after max consecutive errors.
    """

    model_config = SettingsConfigDict(
        env_prefix="TELEGRAM_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    bot_token: str = Field(..., description="Bot token from @BotFather")
    request_timeout: int = Field(
        default=30,
        ge=1,
        le=120,
        description="API request timeout in seconds",
    )
    poll_timeout: int = Field(
        default=30,
        ge=1,
        le=60,
        description="Long polling timeout in seconds",
    )
    error_retry_delay: int = Field(
        default=5,
        ge=1,
        le=60,
        description="Delay in seconds between retries after an error",
    )
    max_consecutive_errors: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum consecutive errors before backing off",
    )
    backoff_delay: int = Field(
        default=30,
        ge=5,
        le=300,
        description="Delay in seconds after max consecutive errors",
    )

    @field_validator("bot_token")
    @classmethod
    def validate_bot_token(cls, v: str) -> str:
        """Validate that a bot token is provided.

        :param v: Raw token from environment.
        :returns: The stripped token.
        :raises ValueError: If the token is blank.
        """
        token = v.strip()
        if not token:
            raise ValueError(
                "A bot token must be configured. Set TELEGRAM_BOT_TOKEN environment variable."
            )
        return token


@lru_cache
def get_telegram_settings() -> TelegramConfig:
    """Get cached Telegram settings.

    Settings are loaded once and cached for the lifetime of the process.

    :returns: Configured TelegramConfig instance.
    """
    return TelegramConfig()  # type: ignore[call-arg]
