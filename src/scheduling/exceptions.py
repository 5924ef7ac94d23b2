"""Custom exceptions for the reminder scheduling engine."""

from uuid import UUID


class SchedulingError(Exception):
    """Base exception for scheduling-related errors."""


class CompileError(SchedulingError):
    """A schedule description or target time cannot be turned into a trigger."""


class InvalidTimeError(CompileError):
    """Raised when a target time is not a valid 24-hour time."""

    def __init__(self, target_time: str, reason: str) -> None:
        """Initialise InvalidTimeError.

        :param target_time: The rejected target time.
        :param reason: What is wrong with it.
        """
        self.target_time = target_time
        super().__init__(f"Invalid target time {target_time!r}: {reason}")


class UnsupportedPatternError(CompileError):
    """Raised when a schedule description has an unknown shape."""

    def __init__(self, pattern: str) -> None:
        """Initialise UnsupportedPatternError.

        :param pattern: The rejected schedule description.
        """
        self.pattern = pattern
        super().__init__(f"Unsupported schedule pattern: {pattern!r}")


class InvalidWeekdayError(CompileError):
    """Raised when a weekly pattern names a weekday outside 0-7."""

    def __init__(self, value: str) -> None:
        """Initialise InvalidWeekdayError.

        :param value: The offending weekday token.
        """
        self.value = value
        super().__init__(f"Invalid weekday: {value!r} (expected 0-7)")


class InvalidMonthDayError(CompileError):
    """Raised when a monthly pattern names a day outside 1-31."""

    def __init__(self, value: str) -> None:
        """Initialise InvalidMonthDayError.

        :param value: The offending day-of-month token.
        """
        self.value = value
        super().__init__(f"Invalid day of month: {value!r} (expected 1-31)")


class InvalidDateError(CompileError):
    """Raised when a once pattern does not carry a YYYY-MM-DD date."""

    def __init__(self, value: str) -> None:
        """Initialise InvalidDateError.

        :param value: The offending date string.
        """
        self.value = value
        super().__init__(f"Invalid date: {value!r} (expected YYYY-MM-DD)")


class PastScheduleError(CompileError):
    """Raised when a one-off reminder's moment is not in the future."""

    def __init__(self, run_at: object) -> None:
        """Initialise PastScheduleError.

        :param run_at: The moment that has already passed.
        """
        self.run_at = run_at
        super().__init__(f"Scheduled time has already passed: {run_at}")


class NotRegisteredError(SchedulingError):
    """Raised when removing a reminder that has no live trigger."""

    def __init__(self, reminder_id: UUID) -> None:
        """Initialise NotRegisteredError.

        :param reminder_id: The reminder that is not registered.
        """
        self.reminder_id = reminder_id
        super().__init__(f"Reminder {reminder_id} has no registered trigger")


class InactiveReminderError(SchedulingError):
    """Raised when registering a reminder that is not active."""

    def __init__(self, reminder_id: UUID) -> None:
        """Initialise InactiveReminderError.

        :param reminder_id: The inactive reminder.
        """
        self.reminder_id = reminder_id
        super().__init__(f"Reminder {reminder_id} is not active")


class ReminderPausedError(SchedulingError):
    """Raised when registering a reminder whose pause has not run out."""

    def __init__(self, reminder_id: UUID, paused_until: object) -> None:
        """Initialise ReminderPausedError.

        :param reminder_id: The paused reminder.
        :param paused_until: When the pause ends.
        """
        self.reminder_id = reminder_id
        self.paused_until = paused_until
        super().__init__(f"Reminder {reminder_id} is paused until {paused_until}")


class ReminderNotFoundError(SchedulingError):
    """Raised when a reminder does not exist."""

    def __init__(self, reminder_id: UUID) -> None:
        """Initialise ReminderNotFoundError.

        :param reminder_id: The missing reminder.
        """
        self.reminder_id = reminder_id
        super().__init__(f"Reminder {reminder_id} not found")


class OccurrenceNotFoundError(SchedulingError):
    """Raised when a reminder log does not exist."""

    def __init__(self, log_id: UUID) -> None:
        """Initialise OccurrenceNotFoundError.

        :param log_id: The missing log.
        """
        self.log_id = log_id
        super().__init__(f"Reminder log {log_id} not found")


class InvalidTransitionError(SchedulingError):
    """Raised when a reminder log cannot move to the requested status."""

    def __init__(self, log_id: UUID, current: str, target: str) -> None:
        """Initialise InvalidTransitionError.

        :param log_id: The log being changed.
        :param current: Its current status.
        :param target: The requested status.
        """
        self.log_id = log_id
        self.current = current
        self.target = target
        super().__init__(f"Reminder log {log_id} cannot move from {current} to {target}")


class ExecutionError(SchedulingError):
    """Raised inside the occurrence executor when one firing cannot complete."""

    def __init__(self, reminder_id: UUID, stage: str, error: str) -> None:
        """Initialise ExecutionError.

        :param reminder_id: The reminder being executed.
        :param stage: The step that failed.
        :param error: Error message from that step.
        """
        self.reminder_id = reminder_id
        self.stage = stage
        self.error = error
        super().__init__(f"Execution of reminder {reminder_id} failed at {stage}: {error}")
