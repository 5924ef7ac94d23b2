"""Telegram delivery for reminders and handling of their response buttons."""

from src.messaging.telegram.callbacks import (
    REMINDER_CALLBACK_PREFIX,
    CallbackResult,
    ReminderAction,
    format_hours_label,
    handle_reminder_callback,
    parse_delay_hours,
    parse_reminder_callback,
    process_callback_query,
)
from src.messaging.telegram.client import TelegramClient, TelegramClientError
from src.messaging.telegram.models import (
    CallbackQuery,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    SendMessageResult,
    TelegramChat,
    TelegramMessageInfo,
    TelegramUser,
)
from src.messaging.telegram.notifier import (
    TelegramNotifier,
    build_callback_data,
    build_reminder_keyboard,
    format_follow_up_message,
    format_reminder_message,
)
from src.messaging.telegram.utils.config import TelegramConfig, get_telegram_settings

__all__ = [
    "REMINDER_CALLBACK_PREFIX",
    "CallbackQuery",
    "CallbackResult",
    "InlineKeyboardButton",
    "InlineKeyboardMarkup",
    "ReminderAction",
    "SendMessageResult",
    "TelegramChat",
    "TelegramClient",
    "TelegramClientError",
    "TelegramConfig",
    "TelegramMessageInfo",
    "TelegramNotifier",
    "TelegramUser",
    "build_callback_data",
    "build_reminder_keyboard",
    "format_follow_up_message",
    "format_hours_label",
    "format_reminder_message",
    "get_telegram_settings",
    "handle_reminder_callback",
    "parse_delay_hours",
    "parse_reminder_callback",
    "process_callback_query",
]
