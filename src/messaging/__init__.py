"""Messaging module providing platform-agnostic abstractions.

This module defines the notifier interface used by the scheduling engine,
allowing the messaging platform to be swapped without changing call sites.
"""

from src.messaging.base import NotificationError, Notifier

__all__ = [
    "NotificationError",
    "Notifier",
]
