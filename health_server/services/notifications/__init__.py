"""Notification delivery services."""

from .email import EmailNotificationDispatcher, NotificationDispatcher

__all__ = ["EmailNotificationDispatcher", "NotificationDispatcher"]
