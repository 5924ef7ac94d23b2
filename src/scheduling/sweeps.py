"""Periodic housekeeping jobs run alongside reminder triggers.

Each sweep reads a batch from storage and processes items one at a time; a
failure on one item is logged and counted, never allowed to stop the batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from src.database.connection import SessionFactory, get_session
from src.database.reminders import (
    ReminderStatus,
    get_due_delayed_logs,
    get_reminder_log_by_id,
    get_reminders_with_expired_pause,
)
from src.messaging.base import NotificationError
from src.scheduling.config import SchedulerSettings, get_scheduler_settings

if TYPE_CHECKING:
    from uuid import UUID

    from src.messaging.base import Notifier
    from src.scheduling.lifecycle import OccurrenceLifecycle
    from src.scheduling.pause import PauseResumeController

logger = logging.getLogger(__name__)


@dataclass
class DueSweepResult:
    """Outcome of a delayed-occurrence sweep."""

    due: int = 0
    sent: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class PauseSweepResult:
    """Outcome of an expired-pause sweep."""

    expired: int = 0
    resumed: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class FollowUpSweepResult:
    """Outcome of a follow-up sweep."""

    overdue: int = 0
    followed_up: int = 0
    marked_overdue: int = 0
    errors: list[str] = field(default_factory=list)


class OccurrenceSweeper:
    """Runs the housekeeping sweeps over reminder logs and paused reminders."""

    def __init__(
        self,
        notifier: Notifier,
        lifecycle: OccurrenceLifecycle,
        controller: PauseResumeController,
        session_factory: SessionFactory = get_session,
        settings: SchedulerSettings | None = None,
    ) -> None:
        """Initialise the sweeper.

        :param notifier: Notification collaborator.
        :param lifecycle: Occurrence lifecycle service.
        :param controller: Pause/resume controller used for expired pauses.
        :param session_factory: Transactional session scope.
        :param settings: Scheduler settings. If not provided, loads from env.
        """
        self._notifier = notifier
        self._lifecycle = lifecycle
        self._controller = controller
        self._session_factory = session_factory
        self._settings = settings or get_scheduler_settings()

    def dispatch_due_occurrences(self, now: datetime | None = None) -> DueSweepResult:
        """Deliver delayed occurrences whose new time has arrived.

        :param now: Current time (defaults to now).
        :returns: Sweep statistics.
        """
        if now is None:
            now = datetime.now(UTC)

        with self._session_factory() as session:
            log_ids = [log.id for log in get_due_delayed_logs(session, now)]

        result = DueSweepResult(due=len(log_ids))
        for log_id in log_ids:
            try:
                if self._dispatch_one(log_id, now):
                    result.sent += 1
            except NotificationError as e:
                # Stays pending and is retried on the next sweep
                error_msg = f"Failed to send delayed log {log_id}: {e}"
                logger.error(error_msg)
                result.errors.append(error_msg)
            except Exception as e:
                error_msg = f"Failed to process delayed log {log_id}: {e}"
                logger.exception(error_msg)
                result.errors.append(error_msg)

        if result.due:
            logger.info(
                f"Due sweep complete: due={result.due}, sent={result.sent}, "
                f"errors={len(result.errors)}"
            )
        return result

    def resume_expired_pauses(self, now: datetime | None = None) -> PauseSweepResult:
        """Resume active reminders whose pause has run out.

        :param now: Current time (defaults to now).
        :returns: Sweep statistics.
        """
        if now is None:
            now = datetime.now(UTC)

        with self._session_factory() as session:
            reminder_ids = [r.id for r in get_reminders_with_expired_pause(session, now)]

        result = PauseSweepResult(expired=len(reminder_ids))
        for reminder_id in reminder_ids:
            try:
                if self._controller.resume(reminder_id, now=now):
                    result.resumed += 1
                else:
                    result.errors.append(f"Reminder {reminder_id} resumed without a trigger")
            except Exception as e:
                error_msg = f"Failed to resume reminder {reminder_id}: {e}"
                logger.exception(error_msg)
                result.errors.append(error_msg)

        if result.expired:
            logger.info(
                f"Pause sweep complete: expired={result.expired}, resumed={result.resumed}"
            )
        return result

    def send_follow_ups(self, now: datetime | None = None) -> FollowUpSweepResult:
        """Nudge users about unanswered occurrences, giving up after a cap.

        :param now: Current time (defaults to now).
        :returns: Sweep statistics.
        """
        overdue_logs = self._lifecycle.detect_overdue(now)
        result = FollowUpSweepResult(overdue=len(overdue_logs))

        for log in overdue_logs:
            try:
                if log.follow_up_count >= self._settings.max_follow_ups:
                    self._lifecycle.mark_overdue(log.id)
                    result.marked_overdue += 1
                    continue

                self._notifier.send_follow_up(log)
                self._lifecycle.increment_follow_up(log.id)
                result.followed_up += 1
            except NotificationError as e:
                error_msg = f"Failed to send follow-up for log {log.id}: {e}"
                logger.error(error_msg)
                result.errors.append(error_msg)
            except Exception as e:
                error_msg = f"Failed to process overdue log {log.id}: {e}"
                logger.exception(error_msg)
                result.errors.append(error_msg)

        if result.overdue:
            logger.info(
                f"Follow-up sweep complete: overdue={result.overdue}, "
                f"followed_up={result.followed_up}, marked_overdue={result.marked_overdue}"
            )
        return result

    def _dispatch_one(self, log_id: UUID, now: datetime) -> bool:
        with self._session_factory() as session:
            log = get_reminder_log_by_id(session, log_id, with_reminder=True)

        if log is None or log.status != ReminderStatus.PENDING.value:
            logger.debug(f"Delayed log no longer pending, skipping: id={log_id}")
            return False

        self._notifier.send_reminder(log)
        self._lifecycle.mark_sent(log_id, now)
        logger.info(f"Delayed reminder sent: log_id={log_id}")
        return True
