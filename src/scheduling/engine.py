"""Wiring for the reminder scheduling engine."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.database.connection import SessionFactory, get_session
from src.scheduling.config import SchedulerSettings, get_scheduler_settings
from src.scheduling.executor import OccurrenceExecutor
from src.scheduling.lifecycle import OccurrenceLifecycle
from src.scheduling.pause import PauseResumeController
from src.scheduling.registry import StartupReport, TriggerRegistry
from src.scheduling.sweeps import OccurrenceSweeper

if TYPE_CHECKING:
    from apscheduler.schedulers.background import BackgroundScheduler

    from src.messaging.base import Notifier

logger = logging.getLogger(__name__)

DUE_SWEEP_JOB_ID = "sweep:due-occurrences"
PAUSE_SWEEP_JOB_ID = "sweep:expired-pauses"
FOLLOW_UP_JOB_ID = "sweep:follow-ups"


class ReminderEngine:
    """Owns one trigger engine and every component built around it."""

    def __init__(
        self,
        notifier: Notifier,
        session_factory: SessionFactory = get_session,
        settings: SchedulerSettings | None = None,
        scheduler: BackgroundScheduler | None = None,
    ) -> None:
        """Build the engine components.

        :param notifier: Notification collaborator.
        :param session_factory: Transactional session scope shared by all components.
        :param settings: Scheduler settings. If not provided, loads from env.
        :param scheduler: Trigger engine. If not provided, one is built from settings.
        """
        self._settings = settings or get_scheduler_settings()
        self.registry = TriggerRegistry(
            scheduler=scheduler,
            session_factory=session_factory,
            settings=self._settings,
        )
        self.executor = OccurrenceExecutor(notifier, self.registry, session_factory)
        self.lifecycle = OccurrenceLifecycle(session_factory, self._settings)
        self.controller = PauseResumeController(self.registry, session_factory)
        self.sweeper = OccurrenceSweeper(
            notifier,
            self.lifecycle,
            self.controller,
            session_factory=session_factory,
            settings=self._settings,
        )
        self.registry.set_fire_callback(self.executor.execute)

    def start(self) -> StartupReport:
        """Start the trigger engine, register reminders and schedule the sweeps.

        :returns: Report of the initial registration.
        :raises SchedulingError: If active reminders cannot be read from storage.
        """
        report = self.registry.start()

        settings = self._settings
        if settings.due_sweep_interval_seconds:
            self.registry.add_interval_job(
                self.sweeper.dispatch_due_occurrences,
                settings.due_sweep_interval_seconds,
                DUE_SWEEP_JOB_ID,
            )
        if settings.pause_sweep_interval_seconds:
            self.registry.add_interval_job(
                self.sweeper.resume_expired_pauses,
                settings.pause_sweep_interval_seconds,
                PAUSE_SWEEP_JOB_ID,
            )
        if settings.follow_up_interval_minutes:
            self.registry.add_interval_job(
                self.sweeper.send_follow_ups,
                settings.follow_up_interval_minutes * 60,
                FOLLOW_UP_JOB_ID,
            )

        logger.info(f"Reminder engine started with {len(self.registry)} live reminders")
        return report

    def stop(self) -> None:
        """Stop the trigger engine."""
        self.registry.stop()
        logger.info("Reminder engine stopped")
