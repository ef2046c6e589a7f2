from __future__ import annotations

import httpx

from .formatting import format_callback_message
from .types import SupplyChangeEvent


class JsonRpcNotifier:
    """Posts a ``{"message": ...}`` JSON body to a custom callback endpoint."""

    def __init__(self, url: str, timeout: float = 10.0) -> None:
        self.url = url
        self._client = httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def notify(self, event: SupplyChangeEvent) -> None:
        response = await self._client.post(
            self.url, json={"message": format_callback_message(event)}
        )
        if response.status_code >= 300:
            raise RuntimeError(
                f"json endpoint returned status {response.status_code} {response.reason_phrase}"
            )
