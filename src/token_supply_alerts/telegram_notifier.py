from __future__ import annotations

import logging

import httpx

from .formatting import format_event_message
from .types import SupplyChangeEvent

logger = logging.getLogger(__name__)


class TelegramNotifier:
    def __init__(self, bot_token: str, chat_id: str, timeout: float = 10.0) -> None:
        self.chat_id = chat_id
        self._url = f"https://api.telegram.org/bot{bot_token}/sendMessage"
        self._client = httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def notify(self, event: SupplyChangeEvent) -> None:
        await self.send(format_event_message(event))

    async def send(self, text: str) -> None:
        response = await self._client.post(
            self._url,
            json={
                "chat_id": self.chat_id,
                "text": text,
                "parse_mode": "HTML",
                "disable_web_page_preview": True,
            },
        )

        if response.status_code == 429:
            retry_after = None
            try:
                payload = response.json()
            except ValueError:
                payload = None
            if isinstance(payload, dict):
                retry_after = payload.get("parameters", {}).get("retry_after")
            # Dropped rather than retried; the next triggering poll alerts again.
            logger.warning("Telegram rate limited (retry_after=%s)", retry_after)

        response.raise_for_status()
        data = response.json()
        if not data.get("ok", False):
            raise RuntimeError(f"Telegram send failed: {data}")
