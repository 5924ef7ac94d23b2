"""Callback handlers for Telegram inline keyboard buttons."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING
from uuid import UUID

from src.scheduling.exceptions import InvalidTransitionError, OccurrenceNotFoundError

if TYPE_CHECKING:
    from src.messaging.telegram.client import TelegramClient
    from src.messaging.telegram.models import CallbackQuery
    from src.scheduling.lifecycle import OccurrenceLifecycle

logger = logging.getLogger(__name__)

# Callback data prefix for reminder callbacks
REMINDER_CALLBACK_PREFIX = "reminder:"

# Minimum number of parts in callback data (prefix:action:log_id)
MIN_CALLBACK_PARTS = 3

# Index for optional parameter in callback data
PARAM_INDEX = 3

DEFAULT_DELAY_HOURS = 1
MAX_DELAY_HOURS = 24


class ReminderAction(StrEnum):
    """Actions for reminder callbacks."""

    COMPLETE = "complete"
    SKIP = "skip"
    DELAY = "delay"


class CallbackResult:
    """Result of handling a callback query."""

    def __init__(
        self,
        answer_text: str,
        show_alert: bool = False,
        edit_text: str | None = None,
    ) -> None:
        """Initialise callback result.

        :param answer_text: Text to show in toast/alert.
        :param show_alert: Whether to show as alert instead of toast.
        :param edit_text: Optional new text for the message.
        """
        self.answer_text = answer_text
        self.show_alert = show_alert
        self.edit_text = edit_text


def parse_reminder_callback(data: str) -> tuple[ReminderAction, UUID, str | None] | None:
    """Parse reminder callback data.

    Format: ``reminder:action:log_id[:param]``

    :param data: Callback data string.
    :returns: Tuple of (action, log_id, param) or None if invalid.
    """
    if not data.startswith(REMINDER_CALLBACK_PREFIX):
        return None

    parts = data.split(":")
    if len(parts) < MIN_CALLBACK_PARTS:
        logger.warning(f"Invalid reminder callback data: {data}")
        return None

    try:
        action = ReminderAction(parts[1])
        log_id = UUID(parts[2])
        param = parts[PARAM_INDEX] if len(parts) > PARAM_INDEX else None
        return action, log_id, param
    except (ValueError, IndexError) as e:
        logger.warning(f"Failed to parse reminder callback: {data}, error={e}")
        return None


def parse_delay_hours(param: str | None) -> int | None:
    """Parse the delay parameter of a delay button.

    :param param: Hours as a string, or None for the default.
    :returns: Whole hours in [1, MAX_DELAY_HOURS], or None if invalid.
    """
    if param is None:
        return DEFAULT_DELAY_HOURS

    try:
        hours = int(param)
    except ValueError:
        return None
    return hours if 1 <= hours <= MAX_DELAY_HOURS else None


def format_hours_label(hours: int) -> str:
    """Format a delay length for humans.

    :param hours: Whole hours.
    :returns: E.g. ``"1 hour"`` or ``"3 hours"``.
    """
    return "1 hour" if hours == 1 else f"{hours} hours"


def _with_footer(original_text: str | None, footer: str) -> str | None:
    return f"{original_text}\n\n<i>{footer}</i>" if original_text else None


def handle_reminder_callback(
    data: str,
    lifecycle: OccurrenceLifecycle,
    original_text: str | None = None,
    now: datetime | None = None,
) -> CallbackResult:
    """Handle a reminder callback from an inline keyboard button.

    :param data: Callback data string from the button.
    :param lifecycle: Occurrence lifecycle service.
    :param original_text: Original message text (for editing).
    :param now: Current time (defaults to now).
    :returns: CallbackResult with response information.
    """
    parsed = parse_reminder_callback(data)
    if parsed is None:
        return CallbackResult(answer_text="Invalid callback data", show_alert=True)

    action, log_id, param = parsed
    if now is None:
        now = datetime.now(UTC)
    logger.info(f"Handling reminder callback: action={action}, log_id={log_id}, param={param}")

    try:
        if action == ReminderAction.COMPLETE:
            lifecycle.mark_completed(log_id, "Done", now)
            return CallbackResult(
                answer_text="Nice work!",
                edit_text=_with_footer(original_text, "✅ Done"),
            )

        if action == ReminderAction.SKIP:
            lifecycle.mark_skipped(log_id, "Skipped today", now)
            return CallbackResult(
                answer_text="Skipped for today",
                edit_text=_with_footer(original_text, "⏭ Skipped today"),
            )

        hours = parse_delay_hours(param)
        if hours is None:
            return CallbackResult(answer_text="Invalid delay", show_alert=True)

        label = format_hours_label(hours)
        new_time = now + timedelta(hours=hours)
        lifecycle.create_delayed_occurrence(log_id, new_time, label, now)
        return CallbackResult(
            answer_text=f"Delayed by {label}",
            edit_text=_with_footer(original_text, f"⏰ Delayed by {label}"),
        )

    except OccurrenceNotFoundError:
        return CallbackResult(answer_text="Reminder not found", show_alert=True)
    except InvalidTransitionError as e:
        return CallbackResult(answer_text=f"Reminder already {e.current}", show_alert=True)


def process_callback_query(
    client: TelegramClient,
    lifecycle: OccurrenceLifecycle,
    callback_query: CallbackQuery,
) -> None:
    """Process a callback query from Telegram.

    :param client: Telegram client for sending responses.
    :param lifecycle: Occurrence lifecycle service.
    :param callback_query: The callback query to process.
    """
    if not callback_query.data:
        logger.warning(f"Callback query without data: id={callback_query.id}")
        client.answer_callback_query(callback_query.id, "Invalid callback")
        return

    if not callback_query.data.startswith(REMINDER_CALLBACK_PREFIX):
        logger.debug(f"Non-reminder callback: {callback_query.data}")
        client.answer_callback_query(callback_query.id, "Unknown callback")
        return

    original_text = callback_query.message.text if callback_query.message else None
    result = handle_reminder_callback(callback_query.data, lifecycle, original_text)

    client.answer_callback_query(
        callback_query.id,
        text=result.answer_text,
        show_alert=result.show_alert,
    )

    # Editing without a keyboard removes the buttons
    if result.edit_text and callback_query.message:
        client.edit_message_text(
            text=result.edit_text,
            chat_id=str(callback_query.message.chat.id),
            message_id=callback_query.message.message_id,
        )
