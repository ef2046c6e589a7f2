from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from .config import Settings
from .telegram_notifier import TelegramNotifier
from .types import SupplyChangeEvent
from .webhook_notifier import JsonRpcNotifier

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def notify(self, event: SupplyChangeEvent) -> None: ...

    async def close(self) -> None: ...


def build_notifiers(settings: Settings) -> list[Notifier]:
    notifiers: list[Notifier] = []
    if settings.telegram is not None:
        notifiers.append(
            TelegramNotifier(
                settings.telegram.bot_token,
                settings.telegram.chat_id,
                timeout=settings.request_timeout,
            )
        )
    if settings.json_rpc is not None:
        notifiers.append(JsonRpcNotifier(settings.json_rpc.url, timeout=settings.request_timeout))

    if not notifiers:
        logger.warning("No notifiers configured; total supply changes will only be logged")
    return notifiers


async def dispatch(notifiers: Sequence[Notifier], event: SupplyChangeEvent) -> int:
    """Deliver ``event`` to every notifier in order and return how many failed.

    A failing notifier never stops delivery to the ones after it, and failed
    deliveries are not retried.
    """
    failed = 0
    for notifier in notifiers:
        try:
            await notifier.notify(event)
        except Exception as exc:
            failed += 1
            logger.exception(
                "Failed to deliver alert for %s via %s: %s",
                event.asset_name,
                type(notifier).__name__,
                exc,
            )
    return failed
