"""Notification sinks and message bodies."""

from .alerts import (
    DiscordWebhookNotifier,
    Notifier,
    NullNotifier,
    TelegramNotifier,
    build_notifier,
)

__all__ = [
    "DiscordWebhookNotifier",
    "Notifier",
    "NullNotifier",
    "TelegramNotifier",
    "build_notifier",
]
