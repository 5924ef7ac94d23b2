"""Per-user completion statistics over reminder logs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from src.database.connection import SessionFactory, get_session
from src.database.reminders import (
    ReminderStatus,
    get_responded_logs_for_user,
    get_user_by_id,
    list_reminders_for_user,
)
from src.scheduling.exceptions import SchedulingError

if TYPE_CHECKING:
    from uuid import UUID

    from src.database.reminders import ReminderLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserStatistics:
    """Counts of a user's reminders and answered occurrences."""

    total_reminders: int
    active_reminders: int
    completed_today: int
    completed_this_week: int
    completed_this_month: int
    skipped_today: int
    completion_rate: int  # Percent of this month's answered logs that were completed


def _count(logs: list[ReminderLog], status: ReminderStatus, since: datetime) -> int:
    return sum(
        1
        for log in logs
        if log.status == status.value
        and log.response_time is not None
        and log.response_time >= since
    )


def get_user_statistics(
    user_id: UUID,
    now: datetime | None = None,
    session_factory: SessionFactory = get_session,
) -> UserStatistics:
    """Compute a user's reminder statistics.

    Day, week and month boundaries are taken in the user's own timezone;
    weeks start on Monday.

    :param user_id: The user to report on.
    :param now: Current time (defaults to now).
    :param session_factory: Transactional session scope.
    :returns: The user's statistics.
    :raises SchedulingError: If the user does not exist.
    """
    if now is None:
        now = datetime.now(UTC)

    with session_factory() as session:
        user = get_user_by_id(session, user_id)
        if user is None:
            raise SchedulingError(f"User not found: {user_id}")

        local_now = now.astimezone(ZoneInfo(user.timezone))
        today_start = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
        week_start = today_start - timedelta(days=today_start.weekday())
        month_start = today_start.replace(day=1)

        reminders = list_reminders_for_user(session, user_id, include_inactive=True)
        logs = get_responded_logs_for_user(session, user_id, since=min(week_start, month_start))

    completed_month = _count(logs, ReminderStatus.COMPLETED, month_start)
    skipped_month = _count(logs, ReminderStatus.SKIPPED, month_start)
    answered = completed_month + skipped_month
    rate = completed_month * 100 // answered if answered else 0

    stats = UserStatistics(
        total_reminders=len(reminders),
        active_reminders=sum(1 for r in reminders if r.is_active),
        completed_today=_count(logs, ReminderStatus.COMPLETED, today_start),
        completed_this_week=_count(logs, ReminderStatus.COMPLETED, week_start),
        completed_this_month=completed_month,
        skipped_today=_count(logs, ReminderStatus.SKIPPED, today_start),
        completion_rate=rate,
    )
    logger.debug(f"Computed statistics for user {user_id}: {stats}")
    return stats
