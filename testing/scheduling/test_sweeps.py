"""Tests for the housekeeping sweeps."""

import unittest
from datetime import timedelta
from unittest.mock import MagicMock

from src.database.reminders import (
    ReminderLog,
    ReminderStatus,
    create_reminder_log,
    get_reminder_by_id,
    increment_log_follow_up,
    mark_log_sent,
)
from src.messaging.base import NotificationError, Notifier
from src.scheduling.lifecycle import OccurrenceLifecycle
from src.scheduling.pause import PauseResumeController
from src.scheduling.sweeps import OccurrenceSweeper
from testing.fixtures import FIXED_NOW, InMemoryDatabase, build_settings


class SweepTestCase(unittest.TestCase):
    """Base class wiring a sweeper to an in-memory database."""

    def setUp(self) -> None:
        """Set up test fixtures."""
        self.db = InMemoryDatabase()
        self.user = self.db.add_user()
        self.reminder = self.db.add_reminder(self.user)
        self.settings = build_settings(overdue_threshold_minutes=60, max_follow_ups=2)
        self.notifier = MagicMock(spec=Notifier)
        self.lifecycle = OccurrenceLifecycle(self.db.session_factory, self.settings)
        self.controller = MagicMock(spec=PauseResumeController)
        self.sweeper = OccurrenceSweeper(
            self.notifier,
            self.lifecycle,
            self.controller,
            session_factory=self.db.session_factory,
            settings=self.settings,
        )

    def tearDown(self) -> None:
        """Tear down test fixtures."""
        self.db.dispose()

    def _delayed_log(self, offset: timedelta) -> ReminderLog:
        original = self._sent_log(timedelta(hours=-2))
        return self.lifecycle.create_delayed_occurrence(
            original.id, FIXED_NOW + offset, "1 hour", FIXED_NOW - timedelta(hours=1)
        )

    def _sent_log(self, sent_offset: timedelta, follow_ups: int = 0) -> ReminderLog:
        with self.db.session_factory() as session:
            log = create_reminder_log(session, self.reminder.id, FIXED_NOW + sent_offset)
            mark_log_sent(session, log, FIXED_NOW + sent_offset)
            for _ in range(follow_ups):
                increment_log_follow_up(session, log)
            return log


class TestDispatchDueOccurrences(SweepTestCase):
    """Tests for dispatch_due_occurrences."""

    def test_sends_due_delayed_logs(self) -> None:
        """Test a delayed log whose time has come is sent and marked sent."""
        delayed = self._delayed_log(timedelta(minutes=-1))

        result = self.sweeper.dispatch_due_occurrences(FIXED_NOW)

        self.assertEqual((result.due, result.sent), (1, 1))
        self.notifier.send_reminder.assert_called_once()
        stored = self.db.get_log(delayed.id)
        self.assertEqual(stored.status, ReminderStatus.SENT.value)
        self.assertEqual(stored.sent_time, FIXED_NOW)

    def test_ignores_future_delayed_logs(self) -> None:
        """Test a delayed log not yet due is left alone."""
        delayed = self._delayed_log(timedelta(minutes=30))

        result = self.sweeper.dispatch_due_occurrences(FIXED_NOW)

        self.assertEqual(result.due, 0)
        self.notifier.send_reminder.assert_not_called()
        self.assertEqual(self.db.get_log(delayed.id).status, ReminderStatus.PENDING.value)

    def test_ignores_pending_logs_that_were_not_delayed(self) -> None:
        """Test failed first deliveries are not retried by the sweep."""
        with self.db.session_factory() as session:
            create_reminder_log(session, self.reminder.id, FIXED_NOW - timedelta(hours=1))

        result = self.sweeper.dispatch_due_occurrences(FIXED_NOW)

        self.assertEqual(result.due, 0)
        self.notifier.send_reminder.assert_not_called()

    def test_dispatch_failure_leaves_log_pending(self) -> None:
        """Test a failed send is counted and retried on the next sweep."""
        delayed = self._delayed_log(timedelta(minutes=-1))
        self.notifier.send_reminder.side_effect = [NotificationError("down"), None]

        first = self.sweeper.dispatch_due_occurrences(FIXED_NOW)

        self.assertEqual((first.sent, len(first.errors)), (0, 1))
        self.assertEqual(self.db.get_log(delayed.id).status, ReminderStatus.PENDING.value)

        second = self.sweeper.dispatch_due_occurrences(FIXED_NOW)

        self.assertEqual(second.sent, 1)
        self.assertEqual(self.db.get_log(delayed.id).status, ReminderStatus.SENT.value)

    def test_one_failure_does_not_stop_the_batch(self) -> None:
        """Test the sweep continues past an unexpected error."""
        self._delayed_log(timedelta(minutes=-2))
        self._delayed_log(timedelta(minutes=-1))
        self.notifier.send_reminder.side_effect = [RuntimeError("bug"), None]

        result = self.sweeper.dispatch_due_occurrences(FIXED_NOW)

        self.assertEqual((result.due, result.sent, len(result.errors)), (2, 1, 1))


class TestSendFollowUps(SweepTestCase):
    """Tests for send_follow_ups."""

    def test_follows_up_overdue_logs(self) -> None:
        """Test an unanswered log gets a follow-up and its count increases."""
        log = self._sent_log(timedelta(hours=-2))

        result = self.sweeper.send_follow_ups(FIXED_NOW)

        self.assertEqual((result.overdue, result.followed_up), (1, 1))
        self.notifier.send_follow_up.assert_called_once()
        self.assertEqual(self.db.get_log(log.id).follow_up_count, 1)

    def test_recent_logs_are_not_followed_up(self) -> None:
        """Test logs inside the threshold are left alone."""
        self._sent_log(timedelta(minutes=-10))

        result = self.sweeper.send_follow_ups(FIXED_NOW)

        self.assertEqual(result.overdue, 0)
        self.notifier.send_follow_up.assert_not_called()

    def test_marks_overdue_at_cap(self) -> None:
        """Test a log that already had every follow-up is marked overdue."""
        log = self._sent_log(timedelta(hours=-3), follow_ups=2)

        result = self.sweeper.send_follow_ups(FIXED_NOW)

        self.assertEqual(result.marked_overdue, 1)
        self.notifier.send_follow_up.assert_not_called()
        self.assertEqual(self.db.get_log(log.id).status, ReminderStatus.OVERDUE.value)

    def test_failed_follow_up_is_not_counted(self) -> None:
        """Test the count only increases for delivered follow-ups."""
        log = self._sent_log(timedelta(hours=-2))
        self.notifier.send_follow_up.side_effect = NotificationError("down")

        result = self.sweeper.send_follow_ups(FIXED_NOW)

        self.assertEqual((result.followed_up, len(result.errors)), (0, 1))
        self.assertEqual(self.db.get_log(log.id).follow_up_count, 0)


class TestResumeExpiredPauses(SweepTestCase):
    """Tests for resume_expired_pauses."""

    def _pause(self, reminder_id: object, offset: timedelta) -> None:
        with self.db.session_factory() as session:
            reminder = get_reminder_by_id(session, reminder_id)  # type: ignore[arg-type]
            assert reminder is not None
            reminder.paused_until = FIXED_NOW + offset

    def test_resumes_expired_pauses_only(self) -> None:
        """Test only reminders whose pause has ended are resumed."""
        expired = self.db.add_reminder(self.user, title="Expired")
        still_paused = self.db.add_reminder(self.user, title="Still paused")
        self._pause(expired.id, timedelta(minutes=-5))
        self._pause(still_paused.id, timedelta(hours=5))
        self.controller.resume.return_value = True

        result = self.sweeper.resume_expired_pauses(FIXED_NOW)

        self.assertEqual((result.expired, result.resumed), (1, 1))
        self.controller.resume.assert_called_once_with(expired.id, now=FIXED_NOW)

    def test_resume_failure_is_isolated(self) -> None:
        """Test an error resuming one reminder does not stop the others."""
        first = self.db.add_reminder(self.user, title="First")
        second = self.db.add_reminder(self.user, title="Second")
        self._pause(first.id, timedelta(minutes=-5))
        self._pause(second.id, timedelta(minutes=-5))
        self.controller.resume.side_effect = [RuntimeError("bug"), True]

        result = self.sweeper.resume_expired_pauses(FIXED_NOW)

        self.assertEqual((result.expired, result.resumed, len(result.errors)), (2, 1, 1))


if __name__ == "__main__":
    unittest.main()
