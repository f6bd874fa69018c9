"""Notification sinks: Discord webhooks, Telegram bot, or log-only."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

import httpx
import structlog

from pingrind.exceptions import ConfigError

logger = structlog.get_logger()

TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/sendMessage"
DISCORD_MESSAGE_LIMIT = 2000


class Notifier(Protocol):
    async def notify(self, text: str, track: Optional[str] = None) -> bool: ...


class NullNotifier:
    """Logs messages instead of sending them."""

    async def notify(self, text: str, track: Optional[str] = None) -> bool:
        logger.info("notification", track=track, text=text)
        return True


@dataclass
class DiscordWebhookNotifier:
    """Post plain-text messages to Discord webhooks.

    ``track_webhooks`` maps a track code to its channel webhook; tracks
    without one fall back to ``default_webhook``.
    """

    default_webhook: str = ""
    track_webhooks: dict[str, str] = field(default_factory=dict)
    timeout: float = 15.0
    _client: Optional[httpx.AsyncClient] = field(default=None, repr=False)

    def webhook_for(self, track: Optional[str]) -> str:
        if track and self.track_webhooks.get(track):
            return self.track_webhooks[track]
        return self.default_webhook

    async def notify(self, text: str, track: Optional[str] = None) -> bool:
        url = self.webhook_for(track)
        if not url:
            logger.warning("discord_not_configured", track=track)
            return False
        if len(text) > DISCORD_MESSAGE_LIMIT:
            text = text[: DISCORD_MESSAGE_LIMIT - 3] + "..."
        try:
            client = self._get_client()
            response = await client.post(url, json={"content": text})
            if response.status_code >= 400:
                logger.error("discord_send_failed", track=track,
                             status=response.status_code, body=response.text[:200])
                return False
            logger.debug("discord_sent", track=track)
            return True
        except httpx.HTTPError as e:
            logger.error("discord_send_failed", track=track, error=str(e))
            return False

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


@dataclass
class TelegramNotifier:
    """Send messages to one Telegram chat."""

    bot_token: str = ""
    chat_id: str = ""
    timeout: float = 30.0
    _client: Optional[httpx.AsyncClient] = field(default=None, repr=False)

    async def notify(self, text: str, track: Optional[str] = None) -> bool:
        if not self.bot_token or not self.chat_id:
            logger.warning("telegram_not_configured")
            return False
        if track:
            text = f"[{track}] {text}"
        try:
            client = self._get_client()
            response = await client.post(
                TELEGRAM_API_URL.format(token=self.bot_token),
                json={
                    "chat_id": self.chat_id,
                    "text": text,
                    "disable_web_page_preview": True,
                },
            )
            if response.status_code == 200:
                logger.debug("telegram_sent", track=track)
                return True
            logger.error("telegram_api_error", status=response.status_code,
                         body=response.text[:200])
            return False
        except httpx.HTTPError as e:
            logger.error("telegram_send_failed", error=str(e))
            return False

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def build_notifier(settings) -> Notifier:
    """Pick the sink named by ``settings.NOTIFIER``."""
    kind = (settings.NOTIFIER or "none").strip().lower()
    if kind == "discord":
        return DiscordWebhookNotifier(
            default_webhook=settings.DISCORD_WEBHOOK_URL,
            track_webhooks={
                "DG": settings.DISCORD_WEBHOOK_URL_DG,
                "WG-VPXS": settings.DISCORD_WEBHOOK_URL_WG_VPXS,
                "WG-VR": settings.DISCORD_WEBHOOK_URL_WG_VR,
                "MG": settings.DISCORD_WEBHOOK_URL_MG,
            },
        )
    if kind == "telegram":
        return TelegramNotifier(
            bot_token=settings.TELEGRAM_BOT_TOKEN,
            chat_id=settings.TELEGRAM_CHAT_ID,
        )
    if kind in ("none", "null", "log"):
        return NullNotifier()
    raise ConfigError(f"Unknown NOTIFIER: {settings.NOTIFIER!r}")
