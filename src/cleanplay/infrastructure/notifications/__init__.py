"""Notification transports."""

from cleanplay.infrastructure.notifications.telegram_provider import (
    MESSAGE_MAX_LEN,
    TelegramNotificationProvider,
)

__all__ = ["MESSAGE_MAX_LEN", "TelegramNotificationProvider"]
