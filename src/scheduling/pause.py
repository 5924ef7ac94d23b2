"""Pause and resume reminders without losing their schedule."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from src.database.connection import SessionFactory, get_session
from src.database.reminders import clear_reminder_pause, get_reminder_by_id, set_reminder_pause
from src.scheduling.exceptions import NotRegisteredError, ReminderNotFoundError, SchedulingError

if TYPE_CHECKING:
    from uuid import UUID

    from src.scheduling.registry import TriggerRegistry

logger = logging.getLogger(__name__)


class PauseResumeController:
    """Temporarily removes and reinstates reminder triggers.

    Pausing keeps the reminder's schedule and active flag untouched; only
    ``paused_until`` and ``pause_reason`` change, and the live trigger is
    dropped. Occurrences already in flight are left alone.
    """

    def __init__(
        self,
        registry: TriggerRegistry,
        session_factory: SessionFactory = get_session,
    ) -> None:
        """Initialise the controller.

        :param registry: Trigger registry holding live triggers.
        :param session_factory: Transactional session scope.
        """
        self._registry = registry
        self._session_factory = session_factory

    def pause(
        self,
        reminder_id: UUID,
        duration: timedelta,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> datetime:
        """Pause a reminder for a period of time.

        :param reminder_id: The reminder to pause.
        :param duration: How long to pause for. Must be positive.
        :param reason: Optional reason, e.g. ``"trip"``.
        :param now: Current time (defaults to now).
        :returns: When the pause ends.
        :raises ValueError: If the duration is not positive.
        :raises ReminderNotFoundError: If the reminder does not exist.
        """
        if duration <= timedelta(0):
            raise ValueError(f"Pause duration must be positive, got {duration}")
        if now is None:
            now = datetime.now(UTC)

        paused_until = now + duration
        with self._session_factory() as session:
            reminder = get_reminder_by_id(session, reminder_id)
            if reminder is None:
                raise ReminderNotFoundError(reminder_id)
            set_reminder_pause(session, reminder, paused_until, reason)

        try:
            self._registry.remove_reminder(reminder_id)
        except NotRegisteredError:
            # Inactive or already-paused reminders have no trigger to drop
            logger.debug(f"Paused reminder had no live trigger: id={reminder_id}")

        logger.info(f"Paused reminder: id={reminder_id}, until={paused_until}, reason={reason!r}")
        return paused_until

    def resume(self, reminder_id: UUID, now: datetime | None = None) -> bool:
        """Clear a reminder's pause and re-register its trigger.

        An inactive reminder is never re-activated; only its pause fields are
        cleared. Registration failures are logged rather than raised.

        :param reminder_id: The reminder to resume.
        :param now: Current time (defaults to now).
        :returns: True if the reminder has a live trigger afterwards.
        :raises ReminderNotFoundError: If the reminder does not exist.
        """
        with self._session_factory() as session:
            reminder = get_reminder_by_id(session, reminder_id)
            if reminder is None:
                raise ReminderNotFoundError(reminder_id)
            clear_reminder_pause(session, reminder)

        if not reminder.is_active:
            logger.info(f"Resumed inactive reminder, not registering: id={reminder_id}")
            return False

        try:
            self._registry.add_reminder(reminder, now=now)
        except SchedulingError as e:
            logger.error(f"Failed to re-register resumed reminder {reminder_id}: {e}")
            return False

        logger.info(f"Resumed reminder: id={reminder_id}")
        return True
