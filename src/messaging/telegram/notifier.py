"""Telegram implementation of the reminder notifier."""

from __future__ import annotations

import html
import logging
from typing import TYPE_CHECKING

from src.database.reminders import ReminderKind
from src.messaging.base import NotificationError, Notifier
from src.messaging.telegram.callbacks import (
    REMINDER_CALLBACK_PREFIX,
    ReminderAction,
)
from src.messaging.telegram.client import TelegramClient, TelegramClientError
from src.messaging.telegram.models import InlineKeyboardButton, InlineKeyboardMarkup

if TYPE_CHECKING:
    from src.database.reminders import ReminderLog

logger = logging.getLogger(__name__)

# Delay choices offered on every reminder message, in hours
DELAY_OPTIONS_HOURS = (1, 3)

# Follow-up openers, escalating with the number already sent
FOLLOW_UP_OPENERS = (
    "⏰ <b>Just checking in</b>",
    "⏰ <b>Still waiting on this one</b>",
    "🚨 <b>Last reminder</b>",
)


def build_callback_data(action: ReminderAction, log_id: object, param: str | None = None) -> str:
    """Build callback data for a reminder button.

    Format: ``reminder:action:log_id[:param]``

    :param action: Button action.
    :param log_id: The occurrence the button answers.
    :param param: Optional parameter, e.g. delay hours.
    :returns: Callback data string.
    """
    data = f"{REMINDER_CALLBACK_PREFIX}{action.value}:{log_id}"
    return f"{data}:{param}" if param is not None else data


def build_reminder_keyboard(log: ReminderLog) -> InlineKeyboardMarkup:
    """Build the inline keyboard attached to a reminder message.

    :param log: The occurrence being delivered.
    :returns: Keyboard with done, delay and skip buttons.
    """
    delay_row = [
        InlineKeyboardButton(
            text=f"⏰ Delay {hours}h",
            callback_data=build_callback_data(ReminderAction.DELAY, log.id, str(hours)),
        )
        for hours in DELAY_OPTIONS_HOURS
    ]
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(
                    text="✅ Done",
                    callback_data=build_callback_data(ReminderAction.COMPLETE, log.id),
                )
            ],
            delay_row,
            [
                InlineKeyboardButton(
                    text="⏭ Skip today",
                    callback_data=build_callback_data(ReminderAction.SKIP, log.id),
                )
            ],
        ]
    )


def format_reminder_message(log: ReminderLog) -> str:
    """Format the HTML text of a reminder message.

    :param log: The occurrence being delivered, with its reminder loaded.
    :returns: HTML message text.
    """
    reminder = log.reminder
    if reminder.kind == ReminderKind.TASK.value:
        header = "📋 <b>Task reminder</b>"
    else:
        header = "🔔 <b>Habit reminder</b>"

    lines = [header, "", html.escape(reminder.title)]
    if reminder.description:
        lines.append(f"<i>{html.escape(reminder.description)}</i>")
    return "\n".join(lines)


def format_follow_up_message(log: ReminderLog) -> str:
    """Format the HTML text of a follow-up for an unanswered reminder.

    :param log: The overdue occurrence, with its reminder loaded.
    :returns: HTML message text.
    """
    opener = FOLLOW_UP_OPENERS[min(log.follow_up_count, len(FOLLOW_UP_OPENERS) - 1)]
    title = html.escape(log.reminder.title)
    return f"{opener}\n\nHave you done <b>{title}</b> yet?"


class TelegramNotifier(Notifier):
    """Delivers reminders as Telegram messages with response buttons.

    Users talk to the bot in a private chat, so their Telegram ID is the chat ID.
    """

    def __init__(self, client: TelegramClient) -> None:
        """Initialise the notifier.

        :param client: Telegram API client.
        """
        self._client = client

    def send_reminder(self, log: ReminderLog) -> None:
        """Send a reminder message with done, delay and skip buttons.

        :param log: The occurrence, with ``log.reminder.user`` populated.
        :raises NotificationError: If the message could not be sent.
        """
        self._send(log, format_reminder_message(log))

    def send_follow_up(self, log: ReminderLog) -> None:
        """Send an escalating follow-up with the same buttons.

        :param log: The overdue occurrence, with ``log.reminder.user`` populated.
        :raises NotificationError: If the message could not be sent.
        """
        self._send(log, format_follow_up_message(log))

    def _send(self, log: ReminderLog, text: str) -> None:
        chat_id = str(log.reminder.user.telegram_id)
        try:
            self._client.send_message(
                text=text,
                chat_id=chat_id,
                reply_markup=build_reminder_keyboard(log),
            )
        except TelegramClientError as e:
            raise NotificationError(f"Telegram delivery failed for log {log.id}: {e}") from e
