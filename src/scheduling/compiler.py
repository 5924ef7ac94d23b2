"""Compile reminder schedule descriptions into triggers.

A schedule description is one of::

    daily
    weekly:<d1,d2,...>     weekdays 0-7, 0 and 7 are both Sunday
    monthly:<d1,d2,...>    days of the month 1-31
    once:<YYYY-MM-DD>

and is combined with a ``HH:MM[:SS]`` target time in the reminder's timezone.
Compilation is pure: the only input besides the description is ``now``,
which the one-off future check needs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime, time
from enum import StrEnum
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from croniter import croniter

from src.database.reminders.models import MONTHLY_PREFIX, ONCE_PREFIX, WEEKLY_PREFIX
from src.scheduling.exceptions import (
    CompileError,
    InvalidDateError,
    InvalidMonthDayError,
    InvalidTimeError,
    InvalidWeekdayError,
    PastScheduleError,
    UnsupportedPatternError,
)

if TYPE_CHECKING:
    from apscheduler.triggers.base import BaseTrigger

    from src.database.reminders.models import Reminder

TARGET_TIME_PATTERN = re.compile(r"^([0-9]{1,2}):([0-9]{1,2})(?::([0-9]{1,2}))?$")
# ASCII digits only
NUMBER_PATTERN = re.compile(r"[0-9]+")

# Cron weekday numbering: 0 (and 7) is Sunday
WEEKDAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")
MAX_WEEKDAY = 7
MAX_HOUR = 23
MAX_MINUTE = 59
MAX_MONTH_DAY = 31


class ScheduleKind(StrEnum):
    """Shape of a compiled schedule."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ONCE = "once"


@dataclass(frozen=True)
class CompiledSchedule:
    """A validated schedule ready to be registered with the trigger engine."""

    kind: ScheduleKind
    hour: int
    minute: int
    second: int
    timezone: str
    weekdays: tuple[int, ...] = field(default=())
    month_days: tuple[int, ...] = field(default=())
    run_at: datetime | None = None

    @property
    def is_recurring(self) -> bool:
        """Check if the schedule fires more than once."""
        return self.kind != ScheduleKind.ONCE

    @property
    def cron_expression(self) -> str:
        """Standard 5-field cron expression for recurring schedules.

        :raises CompileError: For one-off schedules, which have no cron form.
        """
        if self.kind == ScheduleKind.DAILY:
            return f"{self.minute} {self.hour} * * *"
        if self.kind == ScheduleKind.WEEKLY:
            days = ",".join(str(day) for day in self.weekdays)
            return f"{self.minute} {self.hour} * * {days}"
        if self.kind == ScheduleKind.MONTHLY:
            days = ",".join(str(day) for day in self.month_days)
            return f"{self.minute} {self.hour} {days} * *"
        raise CompileError("One-off schedules have no cron expression")

    @property
    def expression(self) -> str:
        """Deterministic trigger expression.

        Recurring schedules render as cron (with croniter's trailing seconds
        field when the target time has seconds); one-off schedules render as
        the ISO-8601 run instant.
        """
        if self.kind == ScheduleKind.ONCE:
            return self._one_off_run_at().isoformat()
        if self.second:
            return f"{self.cron_expression} {self.second}"
        return self.cron_expression

    def build_trigger(self) -> BaseTrigger:
        """Build the APScheduler trigger for this schedule.

        Weekdays are passed by name because APScheduler numbers Monday as 0.

        :returns: A CronTrigger for recurring schedules, a DateTrigger otherwise.
        """
        if self.kind == ScheduleKind.ONCE:
            return DateTrigger(run_date=self._one_off_run_at(), timezone=self.timezone)

        day = "*"
        day_of_week = "*"
        if self.kind == ScheduleKind.WEEKLY:
            day_of_week = ",".join(WEEKDAY_NAMES[d] for d in self.weekdays)
        elif self.kind == ScheduleKind.MONTHLY:
            day = ",".join(str(d) for d in self.month_days)

        return CronTrigger(
            day=day,
            day_of_week=day_of_week,
            hour=self.hour,
            minute=self.minute,
            second=self.second,
            timezone=self.timezone,
        )

    def next_fire_time(self, after: datetime | None = None) -> datetime | None:
        """Calculate the next moment this schedule fires.

        :param after: Calculate the next firing strictly after this moment. Defaults to now.
        :returns: The next firing in the schedule's timezone, or None if a
            one-off schedule has already fired.
        """
        if after is None:
            after = datetime.now(UTC)
        zone = ZoneInfo(self.timezone)

        if self.kind == ScheduleKind.ONCE:
            run_at = self._one_off_run_at()
            return run_at if run_at > after else None

        cron = croniter(self.expression, after.astimezone(zone))
        next_time: datetime = cron.get_next(datetime)
        if next_time.tzinfo is None:
            next_time = next_time.replace(tzinfo=zone)
        return next_time

    def _one_off_run_at(self) -> datetime:
        if self.run_at is None:
            raise CompileError("One-off schedule has no run time")
        return self.run_at


def parse_target_time(target_time: str) -> time:
    """Parse a ``HH:MM[:SS]`` target time.

    :param target_time: The time of day to parse.
    :returns: The parsed time.
    :raises InvalidTimeError: If the format or any component is out of range.
    """
    match = TARGET_TIME_PATTERN.match(target_time.strip())
    if match is None:
        raise InvalidTimeError(target_time, "expected HH:MM or HH:MM:SS")

    hour = int(match.group(1))
    minute = int(match.group(2))
    second = int(match.group(3)) if match.group(3) else 0

    if hour > MAX_HOUR:
        raise InvalidTimeError(target_time, f"hour {hour} out of range 0-{MAX_HOUR}")
    if minute > MAX_MINUTE:
        raise InvalidTimeError(target_time, f"minute {minute} out of range 0-{MAX_MINUTE}")
    if second > MAX_MINUTE:
        raise InvalidTimeError(target_time, f"second {second} out of range 0-{MAX_MINUTE}")

    return time(hour, minute, second)


def _parse_number_list(
    raw: str,
    minimum: int,
    maximum: int,
    error: type[InvalidWeekdayError | InvalidMonthDayError],
) -> list[int]:
    values = []
    for token in raw.split(","):
        token = token.strip()
        if not NUMBER_PATTERN.fullmatch(token):
            raise error(token)
        value = int(token)
        if value < minimum or value > maximum:
            raise error(token)
        values.append(value)
    return values


def parse_weekdays(raw: str) -> tuple[int, ...]:
    """Parse the day list of a weekly pattern.

    :param raw: Comma-separated weekday numbers (0-7).
    :returns: Sorted, de-duplicated weekdays with Sunday normalised to 0.
    :raises InvalidWeekdayError: If any value is missing or out of range.
    """
    days = _parse_number_list(raw, 0, MAX_WEEKDAY, InvalidWeekdayError)
    return tuple(sorted({day % MAX_WEEKDAY for day in days}))


def parse_month_days(raw: str) -> tuple[int, ...]:
    """Parse the day list of a monthly pattern.

    :param raw: Comma-separated days of the month (1-31).
    :returns: Sorted, de-duplicated days.
    :raises InvalidMonthDayError: If any value is missing or out of range.
    """
    return tuple(sorted(set(_parse_number_list(raw, 1, MAX_MONTH_DAY, InvalidMonthDayError))))


def _resolve_zone(timezone: str) -> ZoneInfo:
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise CompileError(f"Unknown timezone: {timezone!r}") from e


def compile_schedule(
    schedule_pattern: str,
    target_time: str,
    timezone: str,
    now: datetime | None = None,
) -> CompiledSchedule:
    """Compile a schedule description and target time.

    :param schedule_pattern: The schedule description.
    :param target_time: Time of day in ``HH:MM[:SS]`` format.
    :param timezone: IANA timezone the target time is expressed in.
    :param now: Current moment for the one-off future check (defaults to now).
    :returns: The compiled schedule.
    :raises CompileError: If the description, time, date or timezone is invalid,
        or a one-off moment is not strictly in the future.
    """
    parsed_time = parse_target_time(target_time)
    zone = _resolve_zone(timezone)
    pattern = schedule_pattern.strip()

    common = {
        "hour": parsed_time.hour,
        "minute": parsed_time.minute,
        "second": parsed_time.second,
        "timezone": timezone,
    }

    if pattern == ScheduleKind.DAILY.value:
        return CompiledSchedule(kind=ScheduleKind.DAILY, **common)

    if pattern.startswith(WEEKLY_PREFIX):
        weekdays = parse_weekdays(pattern.removeprefix(WEEKLY_PREFIX))
        return CompiledSchedule(kind=ScheduleKind.WEEKLY, weekdays=weekdays, **common)

    if pattern.startswith(MONTHLY_PREFIX):
        month_days = parse_month_days(pattern.removeprefix(MONTHLY_PREFIX))
        return CompiledSchedule(kind=ScheduleKind.MONTHLY, month_days=month_days, **common)

    if pattern.startswith(ONCE_PREFIX):
        raw_date = pattern.removeprefix(ONCE_PREFIX).strip()
        try:
            run_date = datetime.strptime(raw_date, "%Y-%m-%d").date()
        except ValueError as e:
            raise InvalidDateError(raw_date) from e

        run_at = datetime.combine(run_date, parsed_time, tzinfo=zone)
        if now is None:
            now = datetime.now(UTC)
        if run_at <= now:
            raise PastScheduleError(run_at)
        return CompiledSchedule(kind=ScheduleKind.ONCE, run_at=run_at, **common)

    raise UnsupportedPatternError(schedule_pattern)


def compile_reminder(
    reminder: Reminder,
    default_timezone: str,
    now: datetime | None = None,
) -> CompiledSchedule:
    """Compile a reminder's schedule in its own timezone.

    A reminder without a timezone follows its owner's, so firings and
    statistics agree on the local day. The owner must be loaded.

    :param reminder: The reminder to compile.
    :param default_timezone: Timezone used when neither the reminder nor its owner has one.
    :param now: Current moment for the one-off future check (defaults to now).
    :returns: The compiled schedule.
    :raises CompileError: If the reminder's schedule is invalid.
    """
    timezone = reminder.timezone
    if not timezone and reminder.user is not None:
        timezone = reminder.user.timezone

    return compile_schedule(
        reminder.schedule_pattern,
        reminder.target_time,
        timezone=timezone or default_timezone,
        now=now,
    )
