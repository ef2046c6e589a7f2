from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from .chain import ChainQueryError
from .notifier import Notifier, dispatch
from .triggers import DEFAULT_INCREASE_THRESHOLD_PERCENT, evaluate_triggers
from .types import SupplyChangeEvent

logger = logging.getLogger(__name__)


class ChainReader(Protocol):
    async def decimals(self, address: str) -> int: ...

    async def fetch_supply(self, address: str, method: str = "total_supply") -> int: ...


@dataclass
class Metrics:
    polls: int = 0
    polls_failed: int = 0
    events: int = 0
    alerts_sent: int = 0
    alerts_failed: int = 0


class AssetWatcher:
    """Polls one token's supply and alerts when a configured condition is met.

    All mutable state (``decimals`` and ``last_total_supply``) belongs to the
    watcher's own loop; nothing else writes to it.
    """

    def __init__(
        self,
        name: str,
        address: str,
        poll_interval: float,
        target_total_supply: int | None = None,
        notify_on_increase: bool = True,
        notify_on_decrease: bool = False,
        increase_threshold_percent: int = DEFAULT_INCREASE_THRESHOLD_PERCENT,
        supply_method: str = "total_supply",
    ) -> None:
        self.name = name or address
        self.address = address
        self.poll_interval = poll_interval
        self.target_total_supply = target_total_supply
        self.notify_on_increase = notify_on_increase
        self.notify_on_decrease = notify_on_decrease
        self.increase_threshold_percent = increase_threshold_percent
        self.supply_method = supply_method
        self.decimals: int | None = None
        self.last_total_supply: int | None = None

    @property
    def is_tracking(self) -> bool:
        return self.last_total_supply is not None

    async def run(
        self,
        chain: ChainReader,
        notifiers: Sequence[Notifier],
        metrics: Metrics | None = None,
    ) -> None:
        metrics = metrics or Metrics()
        logger.info("Watching %s (%s) every %.1fs", self.name, self.address, self.poll_interval)
        while True:
            metrics.polls += 1
            try:
                event = await self.poll(chain, notifiers, metrics)
            except ChainQueryError as exc:
                metrics.polls_failed += 1
                logger.warning("Asset %s check failed: %s", self.name, exc)
            except Exception:
                metrics.polls_failed += 1
                logger.exception("Asset %s check failed unexpectedly", self.name)
            else:
                if event is not None:
                    metrics.events += 1
            await asyncio.sleep(self.poll_interval)

    async def poll(
        self,
        chain: ChainReader,
        notifiers: Sequence[Notifier],
        metrics: Metrics | None = None,
    ) -> SupplyChangeEvent | None:
        if self.decimals is None:
            self.decimals = await chain.decimals(self.address)

        total_supply = await chain.fetch_supply(self.address, self.supply_method)

        previous = self.last_total_supply
        if previous is None:
            self.last_total_supply = total_supply
            logger.info("Asset %s initial total supply %d", self.name, total_supply)
            return None

        if total_supply == previous:
            logger.debug("Asset %s total supply unchanged at %d", self.name, total_supply)
            return None

        reasons = evaluate_triggers(
            previous,
            total_supply,
            notify_on_increase=self.notify_on_increase,
            notify_on_decrease=self.notify_on_decrease,
            target=self.target_total_supply,
            increase_threshold_percent=self.increase_threshold_percent,
        )
        if not reasons:
            logger.info(
                "Asset %s total supply changed to %d (no triggers matched)", self.name, total_supply
            )
            self.last_total_supply = total_supply
            return None

        event = SupplyChangeEvent(
            asset_name=self.name,
            asset_address=self.address,
            old_total_supply=previous,
            new_total_supply=total_supply,
            target_total_supply=self.target_total_supply,
            decimals=self.decimals,
            trigger_reasons=tuple(reasons),
            observed_at=datetime.now(timezone.utc),
        )
        logger.info(
            "Asset %s total supply change detected: %d -> %d (%s)",
            self.name,
            previous,
            total_supply,
            "; ".join(reasons),
        )

        try:
            failed = await dispatch(notifiers, event)
        finally:
            # The baseline follows the chain even when delivery fails.
            self.last_total_supply = total_supply

        if metrics is not None:
            metrics.alerts_sent += len(notifiers) - failed
            metrics.alerts_failed += failed
        return event
