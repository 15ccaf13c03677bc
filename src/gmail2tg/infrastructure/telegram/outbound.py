"""Telegram Bot API provider for sending outbound messages."""

from __future__ import annotations

import httpx
from loguru import logger

from gmail2tg.application.ports.notifier import DeliveryResult, Notifier
from gmail2tg.domain.errors import ConfigurationError

# Hard limit of sendMessage
TELEGRAM_MAX_CHARS = 4096


class TelegramNotifier(Notifier):
    """Telegram Bot API provider for sending outbound messages."""

    BASE_URL = "https://api.telegram.org"

    def __init__(
        self,
        bot_token: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        if not bot_token or not bot_token.strip():
            raise ConfigurationError("TG_TOKEN is required")

        self.bot_token = bot_token
        self.timeout = timeout
        self._transport = transport

    def _url(self, method: str) -> str:
        return f"{self.BASE_URL}/bot{self.bot_token}/{method}"

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self._transport)

    def send(self, chat_id: int, text: str) -> DeliveryResult:
        """Send a text message to a chat."""
        if len(text) > TELEGRAM_MAX_CHARS:
            text = text[: TELEGRAM_MAX_CHARS - 1] + "…"
            logger.warning(f"Telegram message truncated to {TELEGRAM_MAX_CHARS} chars for {chat_id}")

        payload = {
            "chat_id": chat_id,
            "text": text,
            "disable_web_page_preview": True,
        }

        try:
            with self._client() as client:
                response = client.post(self._url("sendMessage"), json=payload)

            data = _json_or_empty(response)
            if response.status_code == 200 and data.get("ok"):
                message_id = data.get("result", {}).get("message_id")
                logger.debug(f"Telegram message sent to {chat_id}, message_id={message_id}")
                return DeliveryResult(
                    success=True,
                    message_id=str(message_id) if message_id is not None else None,
                )

            description = data.get("description") or response.text[:200]
            logger.error(f"Telegram API error {response.status_code}: {description}")
            return DeliveryResult(
                success=False,
                error=f"HTTP {response.status_code}: {description}",
            )

        except httpx.TimeoutException:
            logger.error(f"Telegram API timeout sending to {chat_id}")
            return DeliveryResult(success=False, error="Request timeout")
        except httpx.HTTPError as e:
            logger.error(f"Telegram API exception: {e}")
            return DeliveryResult(success=False, error=str(e))

    def get_chat_ids(self) -> list[tuple[int, str]]:
        """List (chat_id, title) pairs of chats that recently messaged the bot."""
        with self._client() as client:
            response = client.get(self._url("getUpdates"))
        response.raise_for_status()

        chats: dict[int, str] = {}
        for update in response.json().get("result", []):
            message = update.get("message") or update.get("channel_post") or {}
            chat = message.get("chat") or {}
            if "id" not in chat:
                continue
            title = chat.get("title") or chat.get("username") or chat.get("first_name") or ""
            chats[chat["id"]] = title
        return list(chats.items())


def _json_or_empty(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
