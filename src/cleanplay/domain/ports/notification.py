"""Notification provider interface.

Hey future me - this is the PORT for "send a message to the user". The core only
ever talks to INotificationProvider; the Telegram adapter lives in
infrastructure/notifications. A message is rich text (HTML subset) plus a small
row of buttons whose callback data the bot UI layer interprets.

Architecture:
- ProfanityCheckWorker / ErrorHandler / HandleDislikedTrackUseCase → INotificationProvider
- TelegramNotificationProvider → implements INotificationProvider
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass(frozen=True)
class NotificationButton:
    """Actionable button shown under a message."""

    label: str
    callback_data: str


@dataclass
class Notification:
    """Payload passed to providers. Keep it transport-agnostic."""

    recipient: str
    text: str
    buttons: list[NotificationButton] = field(default_factory=list)
    disable_preview: bool = True
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class NotificationResult:
    """Result of sending a notification."""

    success: bool
    provider_name: str
    error: str | None = None
    external_id: str | None = None


class INotificationProvider(ABC):
    """Interface for notification transports."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name for this provider (e.g. 'telegram')."""
        pass

    @abstractmethod
    async def send(self, notification: Notification) -> NotificationResult:
        """Deliver a notification.

        Returns a failed NotificationResult for transient problems.

        Raises:
            NotificationBlockedError: The recipient blocked the bot
        """
        pass
