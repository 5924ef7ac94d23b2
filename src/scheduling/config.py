"""Configuration for the reminder scheduling engine using pydantic-settings."""

from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.paths import PROJECT_ROOT

_ENV_FILE = PROJECT_ROOT / ".env"


class SchedulerSettings(BaseSettings):
    """Configuration for the scheduling engine.

    All settings are loaded from environment variables with the REMINDER_ prefix.

    :param default_timezone: Timezone used for reminders that do not carry one.
    :param overdue_threshold_minutes: Minutes after sending before a log counts as overdue.
    :param stuck_pending_minutes: Minutes a log may stay pending before it counts as stuck.
    :param max_workers: Size of the thread pool running fired reminders.
    :param max_instances_per_job: Concurrent executions allowed for a single reminder.
    :param misfire_grace_seconds: How late a firing may run before it is dropped.
    :param due_sweep_interval_seconds: Interval of the delayed-occurrence sweep (0 disables).
    :param pause_sweep_interval_seconds: Interval of the expired-pause sweep (0 disables).
    :param follow_up_interval_minutes: Interval of the follow-up sweep (0 disables).
    :param max_follow_ups: Follow-ups sent before a log is marked overdue.
    """

    model_config = SettingsConfigDict(
        env_prefix="REMINDER_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_timezone: str = Field(
        default="Asia/Shanghai",
        description="Timezone for reminders without their own",
    )
    overdue_threshold_minutes: int = Field(
        default=60,
        ge=1,
        description="Minutes after sending before a log is overdue",
    )
    stuck_pending_minutes: int = Field(
        default=30,
        ge=1,
        description="Minutes a log may stay pending before it is stuck",
    )
    max_workers: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Thread pool size for fired reminders",
    )
    max_instances_per_job: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Concurrent executions allowed per reminder",
    )
    misfire_grace_seconds: int = Field(
        default=60,
        ge=1,
        description="Seconds a late firing may still run",
    )
    due_sweep_interval_seconds: int = Field(
        default=60,
        ge=0,
        description="Delayed-occurrence sweep interval, 0 disables",
    )
    pause_sweep_interval_seconds: int = Field(
        default=300,
        ge=0,
        description="Expired-pause sweep interval, 0 disables",
    )
    follow_up_interval_minutes: int = Field(
        default=30,
        ge=0,
        description="Follow-up sweep interval, 0 disables",
    )
    max_follow_ups: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Follow-ups sent before a log is marked overdue",
    )

    @field_validator("default_timezone")
    @classmethod
    def validate_default_timezone(cls, v: str) -> str:
        """Validate that the timezone is a known IANA name.

        :param v: Raw timezone name from environment.
        :returns: The validated name.
        :raises ValueError: If the timezone is unknown.
        """
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v


@lru_cache
def get_scheduler_settings() -> SchedulerSettings:
    """Get cached scheduler settings.

    Settings are loaded once and cached for the lifetime of the process.

    :returns: Configured SchedulerSettings instance.
    """
    return SchedulerSettings()
