"""Tests for user statistics."""

import unittest
from datetime import UTC, datetime
from uuid import uuid4

from src.database.reminders import ReminderStatus, create_reminder_log, record_log_response
from src.scheduling.exceptions import SchedulingError
from src.scheduling.statistics import get_user_statistics
from testing.fixtures import FIXED_NOW, InMemoryDatabase


class TestGetUserStatistics(unittest.TestCase):
    """Tests for get_user_statistics."""

    def setUp(self) -> None:
        """Set up test fixtures."""
        self.db = InMemoryDatabase()
        self.user = self.db.add_user()
        self.reminder = self.db.add_reminder(self.user)
        self.db.add_reminder(self.user, title="Old habit", is_active=False)

    def tearDown(self) -> None:
        """Tear down test fixtures."""
        self.db.dispose()

    def _answer(self, status: ReminderStatus, responded_at: datetime) -> None:
        with self.db.session_factory() as session:
            log = create_reminder_log(session, self.reminder.id, responded_at)
            record_log_response(session, log, status, status.value, responded_at)

    def test_counts_by_period(self) -> None:
        """Test counts for today, this week (from Monday) and this month."""
        self._answer(ReminderStatus.COMPLETED, datetime(2025, 1, 8, 10, 0, tzinfo=UTC))
        self._answer(ReminderStatus.COMPLETED, datetime(2025, 1, 7, 9, 0, tzinfo=UTC))
        self._answer(ReminderStatus.COMPLETED, datetime(2025, 1, 2, 9, 0, tzinfo=UTC))
        self._answer(ReminderStatus.COMPLETED, datetime(2024, 12, 31, 9, 0, tzinfo=UTC))
        self._answer(ReminderStatus.SKIPPED, datetime(2025, 1, 8, 8, 0, tzinfo=UTC))
        self._answer(ReminderStatus.SKIPPED, datetime(2025, 1, 3, 8, 0, tzinfo=UTC))

        stats = get_user_statistics(self.user.id, FIXED_NOW, self.db.session_factory)

        self.assertEqual(stats.total_reminders, 2)
        self.assertEqual(stats.active_reminders, 1)
        self.assertEqual(stats.completed_today, 1)
        self.assertEqual(stats.completed_this_week, 2)
        self.assertEqual(stats.completed_this_month, 3)
        self.assertEqual(stats.skipped_today, 1)
        self.assertEqual(stats.completion_rate, 60)

    def test_no_answers_gives_zero_rate(self) -> None:
        """Test a user with no answered logs has a zero completion rate."""
        stats = get_user_statistics(self.user.id, FIXED_NOW, self.db.session_factory)

        self.assertEqual(stats.completed_this_month, 0)
        self.assertEqual(stats.completion_rate, 0)

    def test_day_boundary_follows_user_timezone(self) -> None:
        """Test 'today' starts at local midnight for the user."""
        shanghai_user = self.db.add_user(telegram_id=999, timezone="Asia/Shanghai")
        self.reminder = self.db.add_reminder(shanghai_user)
        # 17:00 UTC on the 7th is 01:00 on the 8th in Shanghai
        self._answer(ReminderStatus.COMPLETED, datetime(2025, 1, 7, 17, 0, tzinfo=UTC))
        # 15:00 UTC on the 7th is 23:00 on the 7th in Shanghai
        self._answer(ReminderStatus.COMPLETED, datetime(2025, 1, 7, 15, 0, tzinfo=UTC))

        stats = get_user_statistics(shanghai_user.id, FIXED_NOW, self.db.session_factory)

        self.assertEqual(stats.completed_today, 1)
        self.assertEqual(stats.completed_this_week, 2)

    def test_unknown_user_raises(self) -> None:
        """Test statistics for a missing user raise."""
        with self.assertRaises(SchedulingError):
            get_user_statistics(uuid4(), FIXED_NOW, self.db.session_factory)


if __name__ == "__main__":
    unittest.main()
