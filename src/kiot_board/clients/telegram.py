"""Telegram bot notifier used for the daily report digests."""

from typing import Any, Protocol

import httpx
import structlog

from kiot_board.errors import NotifyError

logger = structlog.get_logger(__name__)


class Notifier(Protocol):
    """Sends a text message to a chat topic."""

    async def send(self, topic_id: str, text: str) -> None: ...


class TelegramNotifier:
    """Posts messages to topics of one Telegram group through the Bot API."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        daily_report_topic_id: str,
        feedback_topic_id: str | None = None,
        base_url: str = "https://api.telegram.org",
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        if not bot_token:
            raise ValueError("Missing Telegram bot token")
        if not chat_id:
            raise ValueError("Missing Telegram chat ID")
        if not daily_report_topic_id:
            raise ValueError("Missing daily report topic ID")

        self._chat_id = chat_id
        self._daily_report_topic_id = daily_report_topic_id
        self._feedback_topic_id = feedback_topic_id
        self._base_url = f"{base_url.rstrip('/')}/bot{bot_token}"
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self._logger = logger.bind(component="telegram", chat_id=chat_id)

    async def close(self) -> None:
        await self._client.aclose()

    async def _call(self, method: str, payload: dict[str, Any] | None = None) -> Any:
        try:
            if payload is None:
                response = await self._client.get(f"{self._base_url}/{method}")
            else:
                response = await self._client.post(f"{self._base_url}/{method}", json=payload)
        except httpx.HTTPError as e:
            raise NotifyError(f"Telegram request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {"raw": response.text[:500]}

        if response.status_code >= 400 or not (isinstance(data, dict) and data.get("ok")):
            raise NotifyError(
                f"Telegram {method} failed: {response.status_code}",
                status_code=response.status_code,
                details=data,
            )
        return data.get("result")

    async def send(self, topic_id: str, text: str) -> None:
        """Send a message to a specific topic of the chat."""
        await self._call(
            "sendMessage",
            {"chat_id": self._chat_id, "text": text, "message_thread_id": topic_id},
        )
        self._logger.info("message_sent_to_topic", topic_id=topic_id)

    async def send_to_daily_report(self, text: str) -> None:
        await self.send(self._daily_report_topic_id, text)

    async def send_to_feedback(self, text: str) -> None:
        if not self._feedback_topic_id:
            raise NotifyError("Missing feedback topic ID")
        await self.send(self._feedback_topic_id, text)

    async def get_updates(self) -> list[dict[str, Any]]:
        """Fetch pending bot updates; doubles as a connectivity check."""
        result = await self._call("getUpdates")
        return result if isinstance(result, list) else []
