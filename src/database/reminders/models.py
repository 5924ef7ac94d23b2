"""SQLAlchemy ORM models for users, reminders and reminder logs."""

from __future__ import annotations

import uuid as uuid_module
from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.core import Base, UTCDateTime

# Maximum length of title to show in repr
REPR_TITLE_MAX_LENGTH = 50

DEFAULT_TIMEZONE = "Asia/Shanghai"

WEEKLY_PREFIX = "weekly:"
MONTHLY_PREFIX = "monthly:"
ONCE_PREFIX = "once:"


class ReminderKind(StrEnum):
    """Kind of reminder."""

    HABIT = "habit"  # Recurring habit, never auto-deactivated
    TASK = "task"  # Single-occurrence task by convention


class ReminderStatus(StrEnum):
    """Status of a reminder log (one occurrence of a reminder firing)."""

    PENDING = "pending"  # Created, not yet delivered
    SENT = "sent"  # Delivered, awaiting a response
    COMPLETED = "completed"  # User marked it done
    SKIPPED = "skipped"  # User skipped it, or it was superseded by a delay
    OVERDUE = "overdue"  # Sent but never answered
    CANCELLED = "cancelled"  # Cancelled from outside the engine


TERMINAL_STATUSES = frozenset(
    {
        ReminderStatus.COMPLETED,
        ReminderStatus.SKIPPED,
        ReminderStatus.OVERDUE,
        ReminderStatus.CANCELLED,
    }
)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class User(Base):
    """ORM model for a chat user who owns reminders."""

    __tablename__ = "users"

    id: Mapped[uuid_module.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid_module.uuid4,
    )
    telegram_id: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        unique=True,
    )
    username: Mapped[str | None] = mapped_column(String(100), nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    timezone: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=DEFAULT_TIMEZONE,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=_utc_now,
    )

    reminders: Mapped[list[Reminder]] = relationship(
        "Reminder",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        """Return string representation of the user."""
        return f"<User(id={self.id}, telegram_id={self.telegram_id})>"


class Reminder(Base):
    """ORM model for reminders.

    A standing intent to be notified on a schedule. The schedule is encoded
    in ``schedule_pattern`` (``daily``, ``weekly:1,3,5``, ``monthly:1,15`` or
    ``once:2025-10-01``) and fires at ``target_time`` (``HH:MM[:SS]``) in the
    reminder's timezone. Each firing creates a ReminderLog.
    """

    __tablename__ = "reminders"

    id: Mapped[uuid_module.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid_module.uuid4,
    )
    user_id: Mapped[uuid_module.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    kind: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ReminderKind.HABIT.value,
    )
    schedule_pattern: Mapped[str] = mapped_column(String(100), nullable=False)
    target_time: Mapped[str] = mapped_column(String(8), nullable=False)
    timezone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )
    paused_until: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    pause_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=_utc_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=_utc_now,
        onupdate=_utc_now,
    )

    user: Mapped[User] = relationship("User", back_populates="reminders")
    logs: Mapped[list[ReminderLog]] = relationship(
        "ReminderLog",
        back_populates="reminder",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_reminders_user_id", "user_id"),
        Index("idx_reminders_active_paused", "is_active", "paused_until"),
    )

    @property
    def is_daily(self) -> bool:
        """Check if this reminder fires every day."""
        return self.schedule_pattern == "daily"

    @property
    def is_weekly(self) -> bool:
        """Check if this reminder fires on a set of weekdays."""
        return self.schedule_pattern.startswith(WEEKLY_PREFIX) and len(
            self.schedule_pattern
        ) > len(WEEKLY_PREFIX)

    @property
    def is_monthly(self) -> bool:
        """Check if this reminder fires on a set of days of the month."""
        return self.schedule_pattern.startswith(MONTHLY_PREFIX) and len(
            self.schedule_pattern
        ) > len(MONTHLY_PREFIX)

    @property
    def is_once(self) -> bool:
        """Check if this is a one-off reminder."""
        return self.schedule_pattern.startswith(ONCE_PREFIX) and len(self.schedule_pattern) > len(
            ONCE_PREFIX
        )

    def is_paused(self, now: datetime | None = None) -> bool:
        """Check if the reminder is paused at the given moment.

        :param now: Moment to check against (defaults to now).
        :returns: True if ``paused_until`` is set and still in the future.
        """
        if self.paused_until is None:
            return False
        if now is None:
            now = _utc_now()
        return now < self.paused_until

    def __repr__(self) -> str:
        """Return string representation of the reminder."""
        if len(self.title) > REPR_TITLE_MAX_LENGTH:
            title_preview = self.title[:REPR_TITLE_MAX_LENGTH] + "..."
        else:
            title_preview = self.title
        return (
            f"<Reminder(id={self.id}, title={title_preview!r}, "
            f"schedule={self.schedule_pattern}@{self.target_time}, active={self.is_active})>"
        )


class ReminderLog(Base):
    """ORM model for reminder logs.

    One concrete occurrence of a reminder firing. Moves through
    pending -> sent -> completed/skipped/overdue. A delay forces the current
    log to skipped and creates a new pending log pointing back at it.
    """

    __tablename__ = "reminder_logs"

    id: Mapped[uuid_module.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid_module.uuid4,
    )
    reminder_id: Mapped[uuid_module.UUID] = mapped_column(
        Uuid,
        ForeignKey("reminders.id", ondelete="CASCADE"),
        nullable=False,
    )
    scheduled_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    sent_time: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ReminderStatus.PENDING.value,
    )
    user_response: Mapped[str | None] = mapped_column(Text, nullable=True)
    response_time: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    follow_up_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    delayed_from_id: Mapped[uuid_module.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("reminder_logs.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=_utc_now,
    )

    reminder: Mapped[Reminder] = relationship("Reminder", back_populates="logs")

    __table_args__ = (
        Index("idx_reminder_logs_status_scheduled", "status", "scheduled_time"),
        Index("idx_reminder_logs_reminder_id", "reminder_id"),
    )

    @property
    def is_terminal(self) -> bool:
        """Check if the log can no longer change state."""
        return self.status in TERMINAL_STATUSES

    def __repr__(self) -> str:
        """Return string representation of the log."""
        return (
            f"<ReminderLog(id={self.id}, reminder_id={self.reminder_id}, "
            f"status={self.status}, follow_ups={self.follow_up_count})>"
        )
