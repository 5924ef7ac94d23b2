"""Execute a fired reminder: log the occurrence, notify, and record delivery."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from src.database.connection import SessionFactory, get_session
from src.database.reminders import (
    ReminderStatus,
    create_reminder_log,
    deactivate_reminder,
    get_reminder_by_id,
    get_reminder_log_by_id,
    mark_log_sent,
)
from src.messaging.base import NotificationError
from src.scheduling.exceptions import ExecutionError, NotRegisteredError
from src.scheduling.lifecycle import ensure_transition

if TYPE_CHECKING:
    from uuid import UUID

    from src.database.reminders import ReminderLog
    from src.messaging.base import Notifier
    from src.scheduling.registry import TriggerRegistry

logger = logging.getLogger(__name__)


class ExecutionOutcome(StrEnum):
    """How a single firing ended."""

    SENT = "sent"  # Occurrence delivered and marked sent
    SKIPPED_INACTIVE = "skipped_inactive"  # Reminder missing or disabled, nothing created
    DISPATCH_FAILED = "dispatch_failed"  # Occurrence left pending
    FAILED = "failed"  # Storage error before or after dispatch


class OccurrenceExecutor:
    """Runs on the trigger engine's worker threads each time a reminder fires.

    The executor is handed a reminder ID, never a snapshot, and always
    re-reads the reminder so edits made since registration take effect.
    """

    def __init__(
        self,
        notifier: Notifier,
        registry: TriggerRegistry,
        session_factory: SessionFactory = get_session,
    ) -> None:
        """Initialise the executor.

        :param notifier: Notification collaborator.
        :param registry: Trigger registry, used to drop fired one-off reminders.
        :param session_factory: Transactional session scope.
        """
        self._notifier = notifier
        self._registry = registry
        self._session_factory = session_factory

    def execute(self, reminder_id: UUID) -> ExecutionOutcome:
        """Run one firing of a reminder.

        Never raises: failures are logged and end this firing only.

        :param reminder_id: The reminder that fired.
        :returns: How the firing ended.
        """
        logger.debug(f"Executing reminder: id={reminder_id}")
        try:
            return self._run(reminder_id)
        except ExecutionError as e:
            logger.error(str(e))
            return ExecutionOutcome.FAILED
        except Exception:
            logger.exception(f"Unexpected error executing reminder {reminder_id}")
            return ExecutionOutcome.FAILED

    def _run(self, reminder_id: UUID) -> ExecutionOutcome:
        now = datetime.now(UTC)

        try:
            with self._session_factory() as session:
                reminder = get_reminder_by_id(session, reminder_id)
                if reminder is None or not reminder.is_active:
                    logger.warning(f"Reminder missing or inactive, skipping: id={reminder_id}")
                    return ExecutionOutcome.SKIPPED_INACTIVE

                log_id = create_reminder_log(session, reminder.id, scheduled_time=now).id
                is_once = reminder.is_once
        except Exception as e:
            raise ExecutionError(reminder_id, "create log", str(e)) from e

        # The notifier needs the reminder and its user, so reload with both attached
        log = self._load_log(reminder_id, log_id)

        try:
            self._notifier.send_reminder(log)
        except NotificationError as e:
            logger.error(f"Failed to send reminder {reminder_id} (log {log_id}): {e}")
            return ExecutionOutcome.DISPATCH_FAILED

        self._mark_sent(reminder_id, log_id)

        if is_once:
            self._finish_once(reminder_id)

        logger.info(f"Reminder sent: id={reminder_id}, log_id={log_id}")
        return ExecutionOutcome.SENT

    def _load_log(self, reminder_id: UUID, log_id: UUID) -> ReminderLog:
        try:
            with self._session_factory() as session:
                log = get_reminder_log_by_id(session, log_id, with_reminder=True)
        except Exception as e:
            raise ExecutionError(reminder_id, "load log", str(e)) from e

        if log is None:
            raise ExecutionError(reminder_id, "load log", f"log {log_id} not found")
        return log

    def _mark_sent(self, reminder_id: UUID, log_id: UUID) -> None:
        try:
            with self._session_factory() as session:
                log = get_reminder_log_by_id(session, log_id)
                if log is None:
                    raise ExecutionError(reminder_id, "mark sent", f"log {log_id} not found")
                ensure_transition(log, ReminderStatus.SENT)
                mark_log_sent(session, log)
        except ExecutionError:
            raise
        except Exception as e:
            raise ExecutionError(reminder_id, "mark sent", str(e)) from e

    def _finish_once(self, reminder_id: UUID) -> None:
        try:
            with self._session_factory() as session:
                reminder = get_reminder_by_id(session, reminder_id)
                if reminder is not None:
                    deactivate_reminder(session, reminder)
        except Exception as e:
            raise ExecutionError(reminder_id, "deactivate once reminder", str(e)) from e

        try:
            self._registry.remove_reminder(reminder_id)
        except NotRegisteredError:
            logger.warning(f"One-off reminder had no live trigger to remove: id={reminder_id}")

        logger.info(f"One-off reminder completed and deactivated: id={reminder_id}")
