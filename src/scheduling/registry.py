"""Registry of live reminder triggers backed by APScheduler."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from src.database.connection import SessionFactory, get_session
from src.database.reminders import get_active_reminders
from src.scheduling.compiler import CompiledSchedule, compile_reminder
from src.scheduling.config import SchedulerSettings, get_scheduler_settings
from src.scheduling.exceptions import (
    InactiveReminderError,
    NotRegisteredError,
    ReminderPausedError,
    SchedulingError,
)

if TYPE_CHECKING:
    from apscheduler.job import Job

    from src.database.reminders import Reminder

logger = logging.getLogger(__name__)

# Maximum length of title used in job names
JOB_NAME_TITLE_LENGTH = 30

FireCallback = Callable[[UUID], object]


def build_scheduler(settings: SchedulerSettings) -> BackgroundScheduler:
    """Build the background scheduler used as the trigger engine.

    :param settings: Scheduler settings.
    :returns: An unstarted BackgroundScheduler.
    """
    return BackgroundScheduler(
        executors={"default": ThreadPoolExecutor(max_workers=settings.max_workers)},
        job_defaults={
            "coalesce": True,
            "max_instances": settings.max_instances_per_job,
            "misfire_grace_time": settings.misfire_grace_seconds,
        },
        timezone=settings.default_timezone,
    )


@dataclass
class StartupReport:
    """Outcome of loading reminders into the registry."""

    loaded: int = 0
    registered: list[UUID] = field(default_factory=list)
    skipped_paused: list[UUID] = field(default_factory=list)
    failed: dict[UUID, str] = field(default_factory=dict)


class TriggerRegistry:
    """Maps reminder IDs to live scheduler jobs.

    The map is the engine's only shared mutable state. It is touched from the
    owning thread (add/remove/refresh) and from scheduler worker threads
    (firing, one-off removal), so every access goes through one lock.
    """

    def __init__(
        self,
        scheduler: BackgroundScheduler | None = None,
        session_factory: SessionFactory = get_session,
        settings: SchedulerSettings | None = None,
    ) -> None:
        """Initialise the registry.

        :param scheduler: Trigger engine. If not provided, one is built from settings.
        :param session_factory: Transactional session scope for loading reminders.
        :param settings: Scheduler settings. If not provided, loads from env.
        """
        self._settings = settings or get_scheduler_settings()
        self._scheduler = scheduler or build_scheduler(self._settings)
        self._session_factory = session_factory
        self._jobs: dict[UUID, Job] = {}
        self._lock = threading.Lock()
        self._fire_callback: FireCallback | None = None

    @property
    def scheduler(self) -> BackgroundScheduler:
        """Get the underlying trigger engine."""
        return self._scheduler

    def set_fire_callback(self, callback: FireCallback) -> None:
        """Bind the function invoked with a reminder ID when its trigger fires.

        :param callback: Usually ``OccurrenceExecutor.execute``.
        """
        self._fire_callback = callback

    def start(self) -> StartupReport:
        """Start the trigger engine and register every active reminder.

        :returns: Report of registered, paused and failed reminders.
        :raises SchedulingError: If active reminders cannot be read from storage.
        """
        logger.info("Starting trigger registry")
        if not self._scheduler.running:
            self._scheduler.start()

        report = self._load_and_register()
        logger.info(
            f"Trigger registry started: loaded={report.loaded}, "
            f"registered={len(report.registered)}, paused={len(report.skipped_paused)}, "
            f"failed={len(report.failed)}"
        )
        return report

    def stop(self) -> None:
        """Stop the trigger engine and forget every live trigger.

        Executions already running are left to finish on their own.
        """
        logger.info("Stopping trigger registry")
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

        with self._lock:
            self._jobs.clear()
        logger.info("Trigger registry stopped")

    def add_reminder(
        self,
        reminder: Reminder,
        now: datetime | None = None,
    ) -> CompiledSchedule:
        """Compile a reminder's schedule and register its trigger.

        Any trigger already registered for the reminder is replaced.

        :param reminder: The reminder to register. Must be active and not paused.
        :param now: Current moment (defaults to now).
        :returns: The compiled schedule.
        :raises InactiveReminderError: If the reminder is not active.
        :raises ReminderPausedError: If the reminder is paused into the future.
        :raises CompileError: If the schedule cannot be compiled.
        """
        if now is None:
            now = datetime.now(UTC)

        if not reminder.is_active:
            raise InactiveReminderError(reminder.id)
        if reminder.is_paused(now):
            raise ReminderPausedError(reminder.id, reminder.paused_until)

        compiled = compile_reminder(reminder, self._settings.default_timezone, now=now)
        trigger = compiled.build_trigger()

        with self._lock:
            self._unschedule_locked(reminder.id)
            job = self._scheduler.add_job(
                self._fire,
                trigger=trigger,
                args=[reminder.id],
                id=str(reminder.id),
                name=f"reminder:{reminder.title[:JOB_NAME_TITLE_LENGTH]}",
                replace_existing=True,
            )
            self._jobs[reminder.id] = job

        logger.debug(f"Registered reminder: id={reminder.id}, expression={compiled.expression}")
        return compiled

    def remove_reminder(self, reminder_id: UUID) -> None:
        """Unregister a reminder's trigger.

        :param reminder_id: The reminder to unregister.
        :raises NotRegisteredError: If the reminder has no live trigger.
        """
        with self._lock:
            if not self._unschedule_locked(reminder_id):
                raise NotRegisteredError(reminder_id)

        logger.debug(f"Removed reminder trigger: id={reminder_id}")

    def refresh_schedules(self) -> StartupReport:
        """Drop every live trigger and reload active reminders from storage.

        Firings that land mid-refresh may be dropped.

        :returns: Report of the reload.
        :raises SchedulingError: If active reminders cannot be read from storage.
        """
        logger.info("Refreshing all reminder triggers")
        with self._lock:
            for reminder_id in list(self._jobs):
                self._unschedule_locked(reminder_id)

        report = self._load_and_register()
        logger.info(f"Trigger refresh complete: live={len(self)}, failed={len(report.failed)}")
        return report

    def is_registered(self, reminder_id: UUID) -> bool:
        """Check if a reminder has a live trigger.

        :param reminder_id: Reminder ID.
        :returns: True if registered.
        """
        with self._lock:
            return reminder_id in self._jobs

    def registered_ids(self) -> set[UUID]:
        """Get the IDs of every reminder with a live trigger.

        :returns: Snapshot of registered reminder IDs.
        """
        with self._lock:
            return set(self._jobs)

    def next_fire_time(self, reminder_id: UUID) -> datetime | None:
        """Get when a registered reminder fires next.

        :param reminder_id: Reminder ID.
        :returns: The next fire time, or None if unknown or not registered.
        """
        with self._lock:
            job = self._jobs.get(reminder_id)
        if job is None:
            return None
        # Jobs added before the scheduler starts have no computed run time yet
        return getattr(job, "next_run_time", None)

    def add_interval_job(
        self,
        func: Callable[[], object],
        seconds: int,
        job_id: str,
    ) -> None:
        """Register a periodic housekeeping job on the same trigger engine.

        Housekeeping jobs are not reminders and survive ``refresh_schedules``.

        :param func: Zero-argument function to run.
        :param seconds: Interval between runs.
        :param job_id: Stable job ID.
        """
        self._scheduler.add_job(
            func,
            trigger=IntervalTrigger(seconds=seconds),
            id=job_id,
            name=job_id,
            replace_existing=True,
            max_instances=1,
        )
        logger.info(f"Registered housekeeping job: id={job_id}, every={seconds}s")

    def __len__(self) -> int:
        """Return the number of live reminder triggers."""
        with self._lock:
            return len(self._jobs)

    def _load_and_register(self) -> StartupReport:
        now = datetime.now(UTC)
        try:
            with self._session_factory() as session:
                reminders = get_active_reminders(session)
        except Exception as e:
            raise SchedulingError(f"Failed to load active reminders: {e}") from e

        report = StartupReport(loaded=len(reminders))
        for reminder in reminders:
            if reminder.is_paused(now):
                logger.debug(f"Skipping paused reminder: id={reminder.id}")
                report.skipped_paused.append(reminder.id)
                continue

            try:
                self.add_reminder(reminder, now=now)
            except Exception as e:
                logger.error(f"Failed to register reminder {reminder.id}: {e}")
                report.failed[reminder.id] = str(e)
                continue

            report.registered.append(reminder.id)

        return report

    def _unschedule_locked(self, reminder_id: UUID) -> bool:
        job = self._jobs.pop(reminder_id, None)
        if job is None:
            return False

        try:
            self._scheduler.remove_job(job.id)
        except JobLookupError:
            # One-off jobs are dropped by the scheduler once they have fired
            logger.debug(f"Job already gone from scheduler: id={reminder_id}")
        return True

    def _fire(self, reminder_id: UUID) -> None:
        with self._lock:
            job = self._jobs.get(reminder_id)

        if job is None:
            logger.debug(f"Ignoring firing for unregistered reminder: id={reminder_id}")
            return

        try:
            if self._fire_callback is None:
                logger.warning(f"Reminder fired with no executor bound: id={reminder_id}")
                return
            self._fire_callback(reminder_id)
        finally:
            self._forget_if_spent(reminder_id, job)

    def _forget_if_spent(self, reminder_id: UUID, fired_job: Job) -> None:
        """Drop the entry for a job that can never fire again.

        One-off jobs are spent once fired, whatever the execution outcome, and
        the scheduler discards them on its own.
        """
        with self._lock:
            # A replacement registered during the firing is left alone
            if self._jobs.get(reminder_id) is not fired_job:
                return

            spent = isinstance(fired_job.trigger, DateTrigger)
            if not spent and self._scheduler.get_job(fired_job.id) is None:
                spent = True
            if spent:
                self._unschedule_locked(reminder_id)
                logger.debug(f"Forgot spent trigger: id={reminder_id}")
