"""Shared helpers for tests that need a real database or engine settings."""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.database.connection import SessionFactory, session_scope
from src.database.core import Base
from src.database.reminders import Reminder, ReminderLog, User, create_reminder, create_user
from src.scheduling.config import SchedulerSettings

# A Wednesday, used as the fixed "now" across tests
FIXED_NOW = datetime(2025, 1, 8, 12, 0, 0, tzinfo=UTC)


class InMemoryDatabase:
    """SQLite in-memory database shared across threads and sessions."""

    def __init__(self) -> None:
        """Create the engine and all tables."""
        self.engine: Engine = create_engine(
            "sqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        Base.metadata.create_all(self.engine)
        self._factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        self.session_factory: SessionFactory = session_scope(self._factory)

    def session(self) -> Session:
        """Open a plain session for assertions; the caller closes it."""
        return self._factory()

    def dispose(self) -> None:
        """Drop all tables and release the engine."""
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()

    def add_user(self, telegram_id: int = 12345, timezone: str = "UTC") -> User:
        """Create a user."""
        with self.session_factory() as session:
            return create_user(session, telegram_id=telegram_id, first_name="Alex", timezone=timezone)

    def add_reminder(self, user: User, **kwargs: Any) -> Reminder:
        """Create a reminder for a user, defaulting to a daily 08:00 habit in UTC."""
        params: dict[str, Any] = {
            "title": "Drink water",
            "schedule_pattern": "daily",
            "target_time": "08:00",
            "timezone": "UTC",
        }
        params.update(kwargs)
        with self.session_factory() as session:
            return create_reminder(session, user_id=user.id, **params)

    def get_reminder(self, reminder_id: Any) -> Reminder:
        """Reload a reminder."""
        with self.session() as session:
            reminder = session.get(Reminder, reminder_id)
            assert reminder is not None
            return reminder

    def get_log(self, log_id: Any) -> ReminderLog:
        """Reload a reminder log."""
        with self.session() as session:
            log = session.get(ReminderLog, log_id)
            assert log is not None
            return log

    def logs_for(self, reminder_id: Any) -> list[ReminderLog]:
        """List every log of a reminder, oldest first."""
        with self.session() as session:
            return (
                session.query(ReminderLog)
                .filter(ReminderLog.reminder_id == reminder_id)
                .order_by(ReminderLog.created_at)
                .all()
            )


def build_settings(**overrides: Any) -> SchedulerSettings:
    """Build scheduler settings that ignore the environment's .env file."""
    return SchedulerSettings(_env_file=None, **overrides)  # type: ignore[call-arg]
