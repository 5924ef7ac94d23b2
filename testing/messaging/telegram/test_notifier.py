"""Tests for the Telegram reminder notifier."""

import unittest
from unittest.mock import MagicMock
from uuid import uuid4

from src.database.reminders import Reminder, ReminderKind, ReminderLog, User
from src.messaging.base import NotificationError
from src.messaging.telegram.callbacks import ReminderAction, parse_reminder_callback
from src.messaging.telegram.client import TelegramClient, TelegramClientError
from src.messaging.telegram.notifier import (
    FOLLOW_UP_OPENERS,
    TelegramNotifier,
    build_callback_data,
    build_reminder_keyboard,
    format_follow_up_message,
    format_reminder_message,
)


def _make_log(
    title: str = "Drink water",
    kind: ReminderKind = ReminderKind.HABIT,
    description: str | None = None,
    follow_up_count: int = 0,
) -> ReminderLog:
    user = User(id=uuid4(), telegram_id=555, timezone="UTC")
    reminder = Reminder(
        id=uuid4(),
        title=title,
        description=description,
        kind=kind.value,
        schedule_pattern="daily",
        target_time="08:00",
        user=user,
    )
    return ReminderLog(id=uuid4(), follow_up_count=follow_up_count, reminder=reminder)


class TestBuildReminderKeyboard(unittest.TestCase):
    """Tests for the reminder keyboard."""

    def test_callback_data_format(self) -> None:
        """Test callback data with and without a parameter."""
        log_id = uuid4()

        self.assertEqual(
            build_callback_data(ReminderAction.COMPLETE, log_id), f"reminder:complete:{log_id}"
        )
        self.assertEqual(
            build_callback_data(ReminderAction.DELAY, log_id, "3"), f"reminder:delay:{log_id}:3"
        )

    def test_keyboard_layout(self) -> None:
        """Test done, delay and skip rows are present."""
        log = _make_log()

        keyboard = build_reminder_keyboard(log)

        labels = [[button.text for button in row] for row in keyboard.inline_keyboard]
        self.assertEqual(
            labels, [["✅ Done"], ["⏰ Delay 1h", "⏰ Delay 3h"], ["⏭ Skip today"]]
        )

    def test_every_button_parses_back_to_the_log(self) -> None:
        """Test each button's data names the occurrence it was built for."""
        log = _make_log()

        keyboard = build_reminder_keyboard(log)

        parsed = [
            parse_reminder_callback(button.callback_data)
            for row in keyboard.inline_keyboard
            for button in row
        ]
        self.assertEqual(
            parsed,
            [
                (ReminderAction.COMPLETE, log.id, None),
                (ReminderAction.DELAY, log.id, "1"),
                (ReminderAction.DELAY, log.id, "3"),
                (ReminderAction.SKIP, log.id, None),
            ],
        )


class TestFormatMessages(unittest.TestCase):
    """Tests for message formatting."""

    def test_habit_message(self) -> None:
        """Test a habit reminder without a description."""
        text = format_reminder_message(_make_log())

        self.assertEqual(text, "🔔 <b>Habit reminder</b>\n\nDrink water")

    def test_task_message_with_description(self) -> None:
        """Test a task reminder shows its description in italics."""
        log = _make_log(title="File taxes", kind=ReminderKind.TASK, description="Form A")

        text = format_reminder_message(log)

        self.assertTrue(text.startswith("📋 <b>Task reminder</b>"))
        self.assertTrue(text.endswith("File taxes\n<i>Form A</i>"))

    def test_user_text_is_escaped(self) -> None:
        """Test HTML in titles and descriptions is escaped."""
        log = _make_log(title="<script>", description="a & b")

        text = format_reminder_message(log)

        self.assertIn("&lt;script&gt;", text)
        self.assertIn("a &amp; b", text)
        self.assertNotIn("<script>", text)

    def test_follow_up_escalates(self) -> None:
        """Test the opener changes with each follow-up and then stays at the last."""
        openers = [
            format_follow_up_message(_make_log(follow_up_count=count)).split("\n")[0]
            for count in range(5)
        ]

        self.assertEqual(openers[:3], list(FOLLOW_UP_OPENERS))
        self.assertEqual(openers[3], FOLLOW_UP_OPENERS[-1])
        self.assertEqual(openers[4], FOLLOW_UP_OPENERS[-1])

    def test_follow_up_names_the_reminder(self) -> None:
        """Test the follow-up asks about the reminder by title."""
        text = format_follow_up_message(_make_log(title="Stretch"))

        self.assertIn("Have you done <b>Stretch</b> yet?", text)


class TestTelegramNotifier(unittest.TestCase):
    """Tests for TelegramNotifier."""

    def setUp(self) -> None:
        """Set up test fixtures."""
        self.client = MagicMock(spec=TelegramClient)
        self.notifier = TelegramNotifier(self.client)

    def test_send_reminder_targets_user_chat(self) -> None:
        """Test the reminder goes to the user's private chat with the keyboard."""
        log = _make_log()

        self.notifier.send_reminder(log)

        kwargs = self.client.send_message.call_args.kwargs
        self.assertEqual(kwargs["chat_id"], "555")
        self.assertEqual(kwargs["text"], format_reminder_message(log))
        self.assertEqual(kwargs["reply_markup"], build_reminder_keyboard(log))

    def test_send_follow_up(self) -> None:
        """Test the follow-up carries the same keyboard."""
        log = _make_log(follow_up_count=1)

        self.notifier.send_follow_up(log)

        kwargs = self.client.send_message.call_args.kwargs
        self.assertEqual(kwargs["text"], format_follow_up_message(log))
        self.assertEqual(kwargs["reply_markup"], build_reminder_keyboard(log))

    def test_client_error_becomes_notification_error(self) -> None:
        """Test Telegram failures surface as NotificationError."""
        self.client.send_message.side_effect = TelegramClientError("timeout")

        with self.assertRaises(NotificationError):
            self.notifier.send_reminder(_make_log())


if __name__ == "__main__":
    unittest.main()
