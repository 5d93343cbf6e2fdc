"""Notification surface implementations (console toasts)."""

from .console_notifier import ConsoleNotifier

__all__ = ["ConsoleNotifier"]
