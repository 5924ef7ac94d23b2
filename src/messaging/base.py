"""Base classes for messaging platforms.

Provides the abstract notification interface the scheduling engine talks to,
so the delivery platform can be swapped without changing call sites.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.database.reminders import ReminderLog


class NotificationError(Exception):
    """Raised when a notification could not be delivered."""


class Notifier(ABC):
    """Abstract base class for reminder notifiers.

    Implementations receive a reminder log with its reminder and owning user
    already loaded. Any delivery failure must be raised as NotificationError;
    the engine treats it as transient and does not retry.
    """

    @abstractmethod
    def send_reminder(self, log: ReminderLog) -> None:
        """Deliver a reminder occurrence to its user.

        :param log: The occurrence, with ``log.reminder.user`` populated.
        :raises NotificationError: If delivery fails.
        """
        ...

    @abstractmethod
    def send_follow_up(self, log: ReminderLog) -> None:
        """Nudge the user about an occurrence they have not answered.

        :param log: The overdue occurrence, with ``log.reminder.user`` populated.
        :raises NotificationError: If delivery fails.
        """
        ...
