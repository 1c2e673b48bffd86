"""Telegram Bot API notification provider.

Hey future me - this is the only chat transport we ship, but the core never imports
it directly; everything goes through INotificationProvider. Messages are sent with
parse_mode=HTML, buttons become a single row of inline keyboard buttons.

Telegram answers 403 with descriptions like "Forbidden: bot was blocked by the user"
or "Forbidden: user is deactivated". Both mean "stop talking to this user", so they
raise NotificationBlockedError and the error handler marks the user Blocked.
Everything else (network, 5xx, 400 bad markup) is a failed NotificationResult.
"""

import logging
from typing import Any

import httpx

from cleanplay.config import TelegramSettings
from cleanplay.domain.exceptions import ConfigurationError, NotificationBlockedError
from cleanplay.domain.ports.notification import (
    INotificationProvider,
    Notification,
    NotificationResult,
)

logger = logging.getLogger(__name__)

MESSAGE_MAX_LEN = 4096


def fit_text(text: str, max_len: int = MESSAGE_MAX_LEN) -> str:
    """Drop whole trailing lines until the text fits.

    Cutting inside a line could split an HTML tag, and Telegram rejects the whole
    message for that. A single line longer than max_len is returned unchanged.
    """
    while len(text) > max_len and "\n" in text:
        text = text.rsplit("\n", 1)[0]
    return text


class TelegramNotificationProvider(INotificationProvider):
    """Send messages through the Telegram Bot API."""

    def __init__(self, settings: TelegramSettings) -> None:
        self.settings = settings
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "telegram"

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _endpoint(self, method: str) -> str:
        if not self.settings.bot_token:
            raise ConfigurationError("Telegram bot token not configured")
        return f"{self.settings.api_base_url}/bot{self.settings.bot_token}/{method}"

    @staticmethod
    def build_payload(notification: Notification) -> dict[str, Any]:
        """Build the sendMessage body."""
        payload: dict[str, Any] = {
            "chat_id": notification.recipient,
            "text": fit_text(notification.text),
            "parse_mode": "HTML",
            "disable_web_page_preview": notification.disable_preview,
        }
        if notification.buttons:
            payload["reply_markup"] = {
                "inline_keyboard": [
                    [
                        {"text": button.label, "callback_data": button.callback_data}
                        for button in notification.buttons
                    ]
                ]
            }
        return payload

    async def send(self, notification: Notification) -> NotificationResult:
        """Send one message.

        Raises:
            NotificationBlockedError: The user blocked the bot or is deactivated
        """
        client = await self._get_client()
        try:
            response = await client.post(
                self._endpoint("sendMessage"), json=self.build_payload(notification)
            )
        except httpx.HTTPError as e:
            logger.warning("[NOTIFICATION] Telegram request failed: %s", e)
            return NotificationResult(success=False, provider_name=self.name, error=str(e))

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code == 403:
            raise NotificationBlockedError(
                notification.recipient, body.get("description", "Forbidden")
            )

        if response.status_code != 200 or not body.get("ok", False):
            error = body.get("description") or f"HTTP {response.status_code}"
            logger.warning(
                "[NOTIFICATION] Telegram rejected message to %s: %s", notification.recipient, error
            )
            return NotificationResult(success=False, provider_name=self.name, error=error)

        message_id = (body.get("result") or {}).get("message_id")
        return NotificationResult(
            success=True,
            provider_name=self.name,
            external_id=str(message_id) if message_id is not None else None,
        )
