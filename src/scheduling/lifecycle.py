"""State machine and operations for reminder logs (occurrences).

States::

    pending -> sent -> completed | skipped | overdue
    pending | sent -> skipped      (superseded by a delay)
    pending | sent -> cancelled    (external cancellation)

completed, skipped, overdue and cancelled are terminal.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from src.database.connection import SessionFactory, get_session
from src.database.reminders import (
    ReminderLog,
    ReminderStatus,
    create_reminder_log,
    get_pending_logs,
    get_reminder_log_by_id,
    increment_log_follow_up,
    mark_log_sent,
    record_log_response,
    set_log_status,
)
from src.scheduling.config import SchedulerSettings, get_scheduler_settings
from src.scheduling.exceptions import InvalidTransitionError, OccurrenceNotFoundError

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

# Template for the response recorded on a log superseded by a delay
DELAY_RESPONSE_TEMPLATE = "Delayed by {label}"

ALLOWED_TRANSITIONS: dict[ReminderStatus, frozenset[ReminderStatus]] = {
    ReminderStatus.PENDING: frozenset(
        {
            ReminderStatus.SENT,
            ReminderStatus.COMPLETED,
            ReminderStatus.SKIPPED,
            ReminderStatus.CANCELLED,
        }
    ),
    ReminderStatus.SENT: frozenset(
        {
            ReminderStatus.COMPLETED,
            ReminderStatus.SKIPPED,
            ReminderStatus.OVERDUE,
            ReminderStatus.CANCELLED,
        }
    ),
}


def can_transition(current: str, target: ReminderStatus) -> bool:
    """Check if a log may move from one status to another.

    :param current: The log's current status.
    :param target: The requested status.
    :returns: True if the transition is allowed.
    """
    return target in ALLOWED_TRANSITIONS.get(ReminderStatus(current), frozenset())


def ensure_transition(log: ReminderLog, target: ReminderStatus) -> None:
    """Raise unless a log may move to the target status.

    :param log: The log being changed.
    :param target: The requested status.
    :raises InvalidTransitionError: If the transition is not allowed.
    """
    if not can_transition(log.status, target):
        raise InvalidTransitionError(log.id, log.status, target.value)


class OccurrenceLifecycle:
    """Queries and mutations over reminder logs.

    Every operation runs in its own transaction and re-reads the log first,
    so concurrent edits of the same log resolve as last writer wins.
    """

    def __init__(
        self,
        session_factory: SessionFactory = get_session,
        settings: SchedulerSettings | None = None,
    ) -> None:
        """Initialise the lifecycle service.

        :param session_factory: Transactional session scope.
        :param settings: Scheduler settings. If not provided, loads from env.
        """
        self._session_factory = session_factory
        self._settings = settings or get_scheduler_settings()

    @property
    def overdue_threshold(self) -> timedelta:
        """Get how long a sent log may go unanswered before it is overdue."""
        return timedelta(minutes=self._settings.overdue_threshold_minutes)

    def get(self, log_id: UUID) -> ReminderLog:
        """Get a log with its reminder and user loaded.

        :param log_id: Log ID.
        :returns: The log.
        :raises OccurrenceNotFoundError: If the log does not exist.
        """
        with self._session_factory() as session:
            return self._require(session, log_id, with_reminder=True)

    def mark_sent(self, log_id: UUID, now: datetime | None = None) -> ReminderLog:
        """Record that a pending log was delivered.

        :param log_id: Log ID.
        :param now: Current time (defaults to now).
        :returns: The updated log.
        :raises OccurrenceNotFoundError: If the log does not exist.
        :raises InvalidTransitionError: If the log is not pending.
        """
        with self._session_factory() as session:
            log = self._require(session, log_id)
            ensure_transition(log, ReminderStatus.SENT)
            mark_log_sent(session, log, now)
            return log

    def mark_completed(
        self,
        log_id: UUID,
        response: str,
        now: datetime | None = None,
    ) -> ReminderLog:
        """Record that the user completed an occurrence.

        :param log_id: Log ID.
        :param response: The user's response text.
        :param now: Current time (defaults to now).
        :returns: The updated log.
        :raises OccurrenceNotFoundError: If the log does not exist.
        :raises InvalidTransitionError: If the log is already terminal.
        """
        return self._respond(log_id, ReminderStatus.COMPLETED, response, now)

    def mark_skipped(
        self,
        log_id: UUID,
        response: str,
        now: datetime | None = None,
    ) -> ReminderLog:
        """Record that the user skipped an occurrence.

        :param log_id: Log ID.
        :param response: The user's response text.
        :param now: Current time (defaults to now).
        :returns: The updated log.
        :raises OccurrenceNotFoundError: If the log does not exist.
        :raises InvalidTransitionError: If the log is already terminal.
        """
        return self._respond(log_id, ReminderStatus.SKIPPED, response, now)

    def mark_overdue(self, log_id: UUID) -> ReminderLog:
        """Give up on a sent log that was never answered.

        :param log_id: Log ID.
        :returns: The updated log.
        :raises OccurrenceNotFoundError: If the log does not exist.
        :raises InvalidTransitionError: If the log is not sent.
        """
        return self._set_status(log_id, ReminderStatus.OVERDUE)

    def cancel(self, log_id: UUID) -> ReminderLog:
        """Cancel an open log on behalf of an external caller.

        :param log_id: Log ID.
        :returns: The updated log.
        :raises OccurrenceNotFoundError: If the log does not exist.
        :raises InvalidTransitionError: If the log is already terminal.
        """
        return self._set_status(log_id, ReminderStatus.CANCELLED)

    def create_delayed_occurrence(
        self,
        original_id: UUID,
        new_scheduled_time: datetime,
        hours_label: str,
        now: datetime | None = None,
    ) -> ReminderLog:
        """Supersede a log with a new pending one at a later time.

        The original is forced to skipped with a response recording the
        delay. The new log is only data: it is delivered by the due
        occurrence sweep, not by a trigger of its own.

        :param original_id: The log being delayed.
        :param new_scheduled_time: When the new occurrence is due.
        :param hours_label: Human-readable delay length, e.g. ``"1 hour"``.
        :param now: Current time (defaults to now).
        :returns: The new pending log.
        :raises OccurrenceNotFoundError: If the original log does not exist.
        :raises InvalidTransitionError: If the original log is already terminal.
        """
        with self._session_factory() as session:
            original = self._require(session, original_id)
            ensure_transition(original, ReminderStatus.SKIPPED)

            record_log_response(
                session,
                original,
                ReminderStatus.SKIPPED,
                DELAY_RESPONSE_TEMPLATE.format(label=hours_label),
                now,
            )
            delayed = create_reminder_log(
                session,
                reminder_id=original.reminder_id,
                scheduled_time=new_scheduled_time,
                delayed_from_id=original.id,
            )

        logger.info(
            f"Delayed reminder log: original={original_id}, new={delayed.id}, "
            f"scheduled_time={new_scheduled_time}"
        )
        return delayed

    def detect_overdue(self, now: datetime | None = None) -> list[ReminderLog]:
        """Find sent logs left unanswered past the overdue threshold.

        Pure read; deciding whether to nudge the user is up to the caller.

        :param now: Current time (defaults to now).
        :returns: Overdue logs with reminder and user loaded.
        """
        if now is None:
            now = datetime.now(UTC)
        cutoff = now - self.overdue_threshold

        with self._session_factory() as session:
            open_logs = get_pending_logs(session)

        return [
            log
            for log in open_logs
            if log.status == ReminderStatus.SENT.value
            and log.sent_time is not None
            and log.sent_time < cutoff
        ]

    def detect_stuck_pending(self, now: datetime | None = None) -> list[ReminderLog]:
        """Find logs that never left pending after they were due.

        These are occurrences whose notification failed to dispatch.

        :param now: Current time (defaults to now).
        :returns: Stuck pending logs with reminder and user loaded.
        """
        if now is None:
            now = datetime.now(UTC)
        cutoff = now - timedelta(minutes=self._settings.stuck_pending_minutes)

        with self._session_factory() as session:
            open_logs = get_pending_logs(session)

        return [
            log
            for log in open_logs
            if log.status == ReminderStatus.PENDING.value and log.scheduled_time < cutoff
        ]

    def increment_follow_up(self, log_id: UUID) -> int:
        """Count one follow-up sent for a log.

        Call once per follow-up actually delivered.

        :param log_id: Log ID.
        :returns: The new follow-up count.
        :raises OccurrenceNotFoundError: If the log does not exist.
        """
        with self._session_factory() as session:
            log = self._require(session, log_id)
            return increment_log_follow_up(session, log)

    def _respond(
        self,
        log_id: UUID,
        status: ReminderStatus,
        response: str,
        now: datetime | None,
    ) -> ReminderLog:
        with self._session_factory() as session:
            log = self._require(session, log_id)
            ensure_transition(log, status)
            record_log_response(session, log, status, response, now)
            return log

    def _set_status(self, log_id: UUID, status: ReminderStatus) -> ReminderLog:
        with self._session_factory() as session:
            log = self._require(session, log_id)
            ensure_transition(log, status)
            set_log_status(session, log, status)
            return log

    @staticmethod
    def _require(session: Session, log_id: UUID, with_reminder: bool = False) -> ReminderLog:
        log = get_reminder_log_by_id(session, log_id, with_reminder=with_reminder)
        if log is None:
            raise OccurrenceNotFoundError(log_id)
        return log
