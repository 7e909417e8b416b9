import logging
from typing import Any, Protocol

import httpx

from ..errors import NotificationError
from ..models import ReviewAction

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org"


class Notifier(Protocol):
    async def deliver(self, text: str, actions: list[ReviewAction] | None = None) -> Any: ...


class LogNotifier:
    """Writes messages to the log instead of sending them (dry runs, unconfigured chat)."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, list[ReviewAction]]] = []

    async def deliver(self, text: str, actions: list[ReviewAction] | None = None) -> int:
        actions = actions or []
        self.sent.append((text, actions))
        logger.info("[notify] message:\n%s", text)
        if actions:
            logger.info("[notify] actions: %s", [f"{a.label} -> {a.token}" for a in actions])
        return len(self.sent)


class TelegramNotifier:
    """
    Sends messages through the Telegram Bot API with an optional inline
    keyboard, one button per row. Returns the sent message id.
    """

    def __init__(
        self,
        bot_token: str,
        chat_id: int,
        topic_id: int | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ) -> None:
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.topic_id = topic_id
        self._client = client
        self.timeout = timeout

    def _build_body(self, text: str, actions: list[ReviewAction]) -> dict[str, Any]:
        body: dict[str, Any] = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "HTML",
        }
        if actions:
            body["reply_markup"] = {
                "inline_keyboard": [[{"text": a.label, "callback_data": a.token}] for a in actions]
            }
        if self.topic_id:
            body["message_thread_id"] = self.topic_id
        return body

    async def deliver(self, text: str, actions: list[ReviewAction] | None = None) -> int | None:
        url = f"{TELEGRAM_API}/bot{self.bot_token}/sendMessage"
        body = self._build_body(text, actions or [])

        client = self._client or httpx.AsyncClient(timeout=self.timeout)
        try:
            response = await client.post(url, json=body)
            # Telegram rejects malformed HTML; resend once as plain text
            if response.status_code == 400 and "can't parse entities" in response.text:
                logger.warning("[TelegramNotifier] HTML rejected, retrying without parse_mode")
                body.pop("parse_mode", None)
                response = await client.post(url, json=body)
            if response.status_code != 200:
                raise NotificationError(
                    f"Telegram API error ({response.status_code}): {response.text}"
                )
            return response.json().get("result", {}).get("message_id")
        except httpx.HTTPError as e:
            raise NotificationError(f"Telegram request failed: {e}") from e
        finally:
            if self._client is None:
                await client.aclose()
