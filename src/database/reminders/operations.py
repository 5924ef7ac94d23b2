"""Database operations for users, reminders and reminder logs."""

from __future__ import annotations

import logging
import uuid as uuid_module
from datetime import UTC, datetime

from sqlalchemy.orm import Session, joinedload

from src.database.reminders.models import (
    DEFAULT_TIMEZONE,
    Reminder,
    ReminderKind,
    ReminderLog,
    ReminderStatus,
    User,
)

logger = logging.getLogger(__name__)

# Statuses that still await delivery or a response
OPEN_STATUSES = (ReminderStatus.PENDING.value, ReminderStatus.SENT.value)


def create_user(
    session: Session,
    telegram_id: int,
    username: str | None = None,
    first_name: str | None = None,
    timezone: str = DEFAULT_TIMEZONE,
) -> User:
    """Create a new user.

    :param session: Database session.
    :param telegram_id: Telegram user ID.
    :param username: Optional Telegram username.
    :param first_name: Optional first name.
    :param timezone: IANA timezone used for the user's reminders.
    :returns: The created user.
    """
    user = User(
        telegram_id=telegram_id,
        username=username,
        first_name=first_name,
        timezone=timezone,
    )
    session.add(user)
    session.flush()
    logger.info(f"Created user: id={user.id}, telegram_id={telegram_id}")
    return user


def get_user_by_id(session: Session, user_id: uuid_module.UUID) -> User | None:
    """Get a user by ID.

    :param session: Database session.
    :param user_id: User ID.
    :returns: The user or None if not found.
    """
    return session.query(User).filter(User.id == user_id).first()


def get_user_by_telegram_id(session: Session, telegram_id: int) -> User | None:
    """Get a user by Telegram ID.

    :param session: Database session.
    :param telegram_id: Telegram user ID.
    :returns: The user or None if not found.
    """
    return session.query(User).filter(User.telegram_id == telegram_id).first()


def create_reminder(  # noqa: PLR0913
    session: Session,
    user_id: uuid_module.UUID,
    title: str,
    schedule_pattern: str,
    target_time: str,
    kind: ReminderKind = ReminderKind.HABIT,
    description: str | None = None,
    timezone: str | None = None,
    is_active: bool = True,
) -> Reminder:
    """Create a new reminder.

    The schedule is not validated here; registering the reminder with the
    trigger registry compiles it and reports any problem.

    :param session: Database session.
    :param user_id: Owning user ID.
    :param title: Reminder title.
    :param schedule_pattern: Schedule description (daily, weekly:..., monthly:..., once:...).
    :param target_time: Time of day in HH:MM[:SS] format.
    :param kind: Habit or task.
    :param description: Optional free text.
    :param timezone: Optional IANA timezone overriding the default.
    :param is_active: Whether the reminder starts active.
    :returns: The created reminder.
    """
    reminder = Reminder(
        user_id=user_id,
        title=title,
        description=description,
        kind=kind.value,
        schedule_pattern=schedule_pattern,
        target_time=target_time,
        timezone=timezone,
        is_active=is_active,
    )
    session.add(reminder)
    session.flush()
    logger.info(
        f"Created reminder: id={reminder.id}, schedule={schedule_pattern}, "
        f"target_time={target_time}"
    )
    return reminder


def get_reminder_by_id(
    session: Session,
    reminder_id: uuid_module.UUID,
) -> Reminder | None:
    """Get a reminder by ID.

    :param session: Database session.
    :param reminder_id: Reminder ID.
    :returns: The reminder, with its owner loaded, or None if not found.
    """
    return (
        session.query(Reminder)
        .options(joinedload(Reminder.user))
        .filter(Reminder.id == reminder_id)
        .first()
    )


def list_reminders_for_user(
    session: Session,
    user_id: uuid_module.UUID,
    include_inactive: bool = False,
) -> list[Reminder]:
    """List reminders owned by a user.

    :param session: Database session.
    :param user_id: Owning user ID.
    :param include_inactive: Whether to include deactivated reminders.
    :returns: List of reminders, oldest first.
    """
    query = session.query(Reminder).filter(Reminder.user_id == user_id)

    if not include_inactive:
        query = query.filter(Reminder.is_active.is_(True))

    return query.order_by(Reminder.created_at).all()


def get_active_reminders(session: Session) -> list[Reminder]:
    """Get every active reminder, paused or not.

    :param session: Database session.
    :returns: List of active reminders with their owners loaded.
    """
    return (
        session.query(Reminder)
        .options(joinedload(Reminder.user))
        .filter(Reminder.is_active.is_(True))
        .all()
    )


def get_reminders_with_expired_pause(
    session: Session,
    now: datetime | None = None,
) -> list[Reminder]:
    """Get active reminders whose pause has run out but was never cleared.

    :param session: Database session.
    :param now: Current time (defaults to now).
    :returns: List of reminders ready to be resumed.
    """
    if now is None:
        now = datetime.now(UTC)

    return (
        session.query(Reminder)
        .filter(
            Reminder.is_active.is_(True),
            Reminder.paused_until.is_not(None),
            Reminder.paused_until <= now,
        )
        .all()
    )


def deactivate_reminder(session: Session, reminder: Reminder) -> None:
    """Deactivate a reminder so it is never registered again.

    :param session: Database session.
    :param reminder: The reminder to deactivate.
    """
    reminder.is_active = False
    session.flush()
    logger.info(f"Deactivated reminder: id={reminder.id}")


def set_reminder_pause(
    session: Session,
    reminder: Reminder,
    paused_until: datetime,
    reason: str | None,
) -> None:
    """Pause a reminder until a given moment.

    :param session: Database session.
    :param reminder: The reminder to pause.
    :param paused_until: When the pause ends.
    :param reason: Optional reason for the pause.
    """
    reminder.paused_until = paused_until
    reminder.pause_reason = reason
    session.flush()
    logger.info(f"Paused reminder: id={reminder.id}, until={paused_until}")


def clear_reminder_pause(session: Session, reminder: Reminder) -> None:
    """Clear a reminder's pause fields.

    :param session: Database session.
    :param reminder: The reminder to resume.
    """
    reminder.paused_until = None
    reminder.pause_reason = None
    session.flush()
    logger.info(f"Cleared pause on reminder: id={reminder.id}")


def delete_reminder(session: Session, reminder_id: uuid_module.UUID) -> bool:
    """Delete a reminder together with its logs.

    :param session: Database session.
    :param reminder_id: Reminder ID to delete.
    :returns: True if a reminder was deleted.
    """
    reminder = get_reminder_by_id(session, reminder_id)
    if reminder is None:
        return False

    session.delete(reminder)
    session.flush()
    logger.info(f"Deleted reminder: id={reminder_id}")
    return True


def create_reminder_log(
    session: Session,
    reminder_id: uuid_module.UUID,
    scheduled_time: datetime,
    delayed_from_id: uuid_module.UUID | None = None,
) -> ReminderLog:
    """Create a pending reminder log.

    :param session: Database session.
    :param reminder_id: The reminder that fired.
    :param scheduled_time: When the occurrence is due.
    :param delayed_from_id: The log this one replaces, for delayed occurrences.
    :returns: The created log.
    """
    log = ReminderLog(
        reminder_id=reminder_id,
        scheduled_time=scheduled_time,
        status=ReminderStatus.PENDING.value,
        follow_up_count=0,
        delayed_from_id=delayed_from_id,
    )
    session.add(log)
    session.flush()
    logger.info(f"Created reminder log: id={log.id}, reminder_id={reminder_id}")
    return log


def get_reminder_log_by_id(
    session: Session,
    log_id: uuid_module.UUID,
    with_reminder: bool = False,
) -> ReminderLog | None:
    """Get a reminder log by ID.

    :param session: Database session.
    :param log_id: Log ID.
    :param with_reminder: Eagerly load the reminder and its user, for use
        after the session closes (e.g. by a notifier).
    :returns: The log or None if not found.
    """
    query = session.query(ReminderLog)
    if with_reminder:
        query = query.options(joinedload(ReminderLog.reminder).joinedload(Reminder.user))
    return query.filter(ReminderLog.id == log_id).first()


def get_logs_for_reminder(
    session: Session,
    reminder_id: uuid_module.UUID,
    limit: int | None = None,
    offset: int = 0,
) -> list[ReminderLog]:
    """List logs for a reminder, newest first.

    :param session: Database session.
    :param reminder_id: Reminder ID.
    :param limit: Maximum number of logs to return (None for all).
    :param offset: Number of logs to skip.
    :returns: List of logs.
    """
    query = (
        session.query(ReminderLog)
        .filter(ReminderLog.reminder_id == reminder_id)
        .order_by(ReminderLog.scheduled_time.desc())
        .offset(offset)
    )
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def get_pending_logs(session: Session) -> list[ReminderLog]:
    """Get every log that is still pending or awaiting a response.

    Reminders and users are eagerly loaded so callers can notify without
    another round trip.

    :param session: Database session.
    :returns: List of pending or sent logs.
    """
    return (
        session.query(ReminderLog)
        .options(joinedload(ReminderLog.reminder).joinedload(Reminder.user))
        .filter(ReminderLog.status.in_(OPEN_STATUSES))
        .all()
    )


def get_due_delayed_logs(
    session: Session,
    now: datetime | None = None,
) -> list[ReminderLog]:
    """Get delayed logs whose new scheduled time has arrived.

    :param session: Database session.
    :param now: Current time (defaults to now).
    :returns: List of pending delayed logs, oldest first.
    """
    if now is None:
        now = datetime.now(UTC)

    return (
        session.query(ReminderLog)
        .filter(
            ReminderLog.status == ReminderStatus.PENDING.value,
            ReminderLog.delayed_from_id.is_not(None),
            ReminderLog.scheduled_time <= now,
        )
        .order_by(ReminderLog.scheduled_time)
        .all()
    )


def get_responded_logs_for_user(
    session: Session,
    user_id: uuid_module.UUID,
    since: datetime,
) -> list[ReminderLog]:
    """Get logs of a user's reminders answered at or after a moment.

    :param session: Database session.
    :param user_id: Owning user ID.
    :param since: Earliest response time to include.
    :returns: List of logs with a response time.
    """
    return (
        session.query(ReminderLog)
        .join(Reminder, ReminderLog.reminder_id == Reminder.id)
        .filter(
            Reminder.user_id == user_id,
            ReminderLog.response_time.is_not(None),
            ReminderLog.response_time >= since,
        )
        .all()
    )


def mark_log_sent(
    session: Session,
    log: ReminderLog,
    now: datetime | None = None,
) -> None:
    """Mark a log as delivered.

    :param session: Database session.
    :param log: The log that was sent.
    :param now: Current time (defaults to now).
    """
    if now is None:
        now = datetime.now(UTC)

    log.status = ReminderStatus.SENT.value
    log.sent_time = now
    session.flush()
    logger.info(f"Marked log sent: id={log.id}")


def record_log_response(
    session: Session,
    log: ReminderLog,
    status: ReminderStatus,
    response: str,
    now: datetime | None = None,
) -> None:
    """Record a user's response on a log.

    :param session: Database session.
    :param log: The log being answered.
    :param status: Resulting status (completed or skipped).
    :param response: Response text.
    :param now: Current time (defaults to now).
    """
    if now is None:
        now = datetime.now(UTC)

    log.status = status.value
    log.user_response = response
    log.response_time = now
    session.flush()
    logger.info(f"Recorded log response: id={log.id}, status={status}")


def set_log_status(session: Session, log: ReminderLog, status: ReminderStatus) -> None:
    """Set a log's status without touching response fields.

    :param session: Database session.
    :param log: The log to update.
    :param status: The new status.
    """
    log.status = status.value
    session.flush()
    logger.info(f"Set log status: id={log.id}, status={status}")


def increment_log_follow_up(session: Session, log: ReminderLog) -> int:
    """Increment a log's follow-up counter.

    :param session: Database session.
    :param log: The log that was followed up.
    :returns: The new follow-up count.
    """
    log.follow_up_count += 1
    session.flush()
    logger.debug(f"Incremented follow-up: id={log.id}, count={log.follow_up_count}")
    return log.follow_up_count
