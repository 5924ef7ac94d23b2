"""Database models and operations for reminders and their logs."""

from src.database.reminders.models import (
    TERMINAL_STATUSES,
    Reminder,
    ReminderKind,
    ReminderLog,
    ReminderStatus,
    User,
)
from src.database.reminders.operations import (
    clear_reminder_pause,
    create_reminder,
    create_reminder_log,
    create_user,
    deactivate_reminder,
    delete_reminder,
    get_active_reminders,
    get_due_delayed_logs,
    get_logs_for_reminder,
    get_pending_logs,
    get_reminder_by_id,
    get_reminder_log_by_id,
    get_reminders_with_expired_pause,
    get_responded_logs_for_user,
    get_user_by_id,
    get_user_by_telegram_id,
    increment_log_follow_up,
    list_reminders_for_user,
    mark_log_sent,
    record_log_response,
    set_log_status,
    set_reminder_pause,
)

__all__ = [
    # Models
    "TERMINAL_STATUSES",
    "Reminder",
    "ReminderKind",
    "ReminderLog",
    "ReminderStatus",
    "User",
    # Operations
    "clear_reminder_pause",
    "create_reminder",
    "create_reminder_log",
    "create_user",
    "deactivate_reminder",
    "delete_reminder",
    "get_active_reminders",
    "get_due_delayed_logs",
    "get_logs_for_reminder",
    "get_pending_logs",
    "get_reminder_by_id",
    "get_reminder_log_by_id",
    "get_reminders_with_expired_pause",
    "get_responded_logs_for_user",
    "get_user_by_id",
    "get_user_by_telegram_id",
    "increment_log_follow_up",
    "list_reminders_for_user",
    "mark_log_sent",
    "record_log_response",
    "set_log_status",
    "set_reminder_pause",
]
