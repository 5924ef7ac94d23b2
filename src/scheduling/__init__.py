"""Reminder scheduling engine.

Compiles reminder schedules into triggers, fires them on a background
scheduler, tracks each occurrence through its lifecycle and supports pausing
and delaying reminders.

Run the engine with: python -m src.scheduling
"""

from src.scheduling.compiler import CompiledSchedule, ScheduleKind, compile_schedule
from src.scheduling.config import SchedulerSettings, get_scheduler_settings
from src.scheduling.engine import ReminderEngine
from src.scheduling.exceptions import (
    CompileError,
    ExecutionError,
    InactiveReminderError,
    InvalidDateError,
    InvalidMonthDayError,
    InvalidTimeError,
    InvalidTransitionError,
    InvalidWeekdayError,
    NotRegisteredError,
    OccurrenceNotFoundError,
    PastScheduleError,
    ReminderNotFoundError,
    ReminderPausedError,
    SchedulingError,
    UnsupportedPatternError,
)
from src.scheduling.executor import ExecutionOutcome, OccurrenceExecutor
from src.scheduling.lifecycle import OccurrenceLifecycle
from src.scheduling.pause import PauseResumeController
from src.scheduling.registry import StartupReport, TriggerRegistry
from src.scheduling.statistics import UserStatistics, get_user_statistics
from src.scheduling.sweeps import OccurrenceSweeper

__all__ = [
    "CompileError",
    "CompiledSchedule",
    "ExecutionError",
    "ExecutionOutcome",
    "InactiveReminderError",
    "InvalidDateError",
    "InvalidMonthDayError",
    "InvalidTimeError",
    "InvalidTransitionError",
    "InvalidWeekdayError",
    "NotRegisteredError",
    "OccurrenceExecutor",
    "OccurrenceLifecycle",
    "OccurrenceNotFoundError",
    "OccurrenceSweeper",
    "PastScheduleError",
    "PauseResumeController",
    "ReminderEngine",
    "ReminderNotFoundError",
    "ReminderPausedError",
    "ScheduleKind",
    "SchedulerSettings",
    "SchedulingError",
    "StartupReport",
    "TriggerRegistry",
    "UnsupportedPatternError",
    "UserStatistics",
    "compile_schedule",
    "get_scheduler_settings",
    "get_user_statistics",
]
