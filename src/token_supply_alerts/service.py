from __future__ import annotations

import asyncio
import logging
import re

from web3 import Web3

from .chain import SUPPLY_METHODS, TokenSupplyClient
from .config import ConfigError, Settings, parse_duration
from .notifier import build_notifiers
from .types import AssetConfig
from .watcher import AssetWatcher, Metrics

logger = logging.getLogger(__name__)

_DECIMAL = re.compile(r"^[0-9]+$")


def is_hex_address(value: str) -> bool:
    # Mixed-case input must carry a valid EIP-55 checksum.
    return Web3.is_address(value)


def normalize_address(value: str) -> str:
    return Web3.to_checksum_address(value)


def parse_target(value: str | None) -> int | None:
    if value is None or value == "":
        return None
    if not _DECIMAL.match(value):
        raise ConfigError(f"invalid integer {value!r}")
    return int(value)


def build_watcher(asset: AssetConfig, settings: Settings) -> AssetWatcher:
    name = asset.name or asset.address
    if not asset.address:
        raise ConfigError(f"asset {name} address must be provided")
    if not is_hex_address(asset.address):
        raise ConfigError(f"asset {name} address is not a valid hex address")

    try:
        target = parse_target(asset.target_total_supply)
    except ConfigError as exc:
        raise ConfigError(f"asset {name} target threshold: {exc}") from exc

    poll_interval = settings.poll_interval
    if asset.poll_interval is not None and asset.poll_interval != "":
        try:
            poll_interval = parse_duration(asset.poll_interval)
        except ConfigError as exc:
            raise ConfigError(f"parse asset {name} poll interval: {exc}") from exc
        if poll_interval <= 0:
            raise ConfigError(f"asset {name} poll interval must be positive")

    threshold = asset.increase_threshold_percent
    if threshold is None:
        threshold = settings.increase_threshold_percent
    if threshold < 0:
        raise ConfigError(f"asset {name} increase threshold must not be negative")

    supply_method = asset.supply_method or "total_supply"
    if supply_method not in SUPPLY_METHODS:
        raise ConfigError(
            f"asset {name} supply_method must be one of {', '.join(sorted(SUPPLY_METHODS))}"
        )

    return AssetWatcher(
        name=name,
        address=normalize_address(asset.address),
        poll_interval=poll_interval,
        target_total_supply=target,
        notify_on_increase=True if asset.notify_on_increase is None else asset.notify_on_increase,
        notify_on_decrease=False if asset.notify_on_decrease is None else asset.notify_on_decrease,
        increase_threshold_percent=threshold,
        supply_method=supply_method,
    )


class MonitorService:
    def __init__(self, settings: Settings) -> None:
        if settings.poll_interval <= 0:
            raise ConfigError("default poll interval must be positive")
        if not settings.assets:
            raise ConfigError("no assets configured")

        self.settings = settings
        self.metrics = Metrics()
        # Validate every asset before any client is created so a bad entry aborts startup.
        self.watchers = [build_watcher(asset, settings) for asset in settings.assets]
        self.chain = TokenSupplyClient(settings.rpc_url, timeout=settings.request_timeout)
        self.notifiers = build_notifiers(settings)

    async def run(self, stop: asyncio.Event | None = None) -> None:
        """Run every watcher until ``stop`` is set or this coroutine is cancelled."""
        tasks: list[asyncio.Task] = []
        try:
            await self.chain.check_connection()
            logger.info(
                "Monitoring %d asset(s) with poll interval %.1fs",
                len(self.watchers),
                self.settings.poll_interval,
            )
            for watcher in self.watchers:
                tasks.append(
                    asyncio.create_task(
                        watcher.run(self.chain, self.notifiers, self.metrics),
                        name=f"watch-{watcher.name}",
                    )
                )
            tasks.append(asyncio.create_task(self._health_loop(), name="health"))

            if stop is None:
                stop = asyncio.Event()
            await stop.wait()
            logger.info("Stop requested; shutting down %d watcher(s)", len(self.watchers))
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await self.chain.close()
            for notifier in self.notifiers:
                await notifier.close()

    async def _health_loop(self) -> None:
        while True:
            await asyncio.sleep(self.settings.health_log_interval)
            tracking = sum(1 for w in self.watchers if w.is_tracking)
            logger.info(
                (
                    "health tracking=%d/%d polls=%d polls_failed=%d events=%d "
                    "alerts_sent=%d alerts_failed=%d"
                ),
                tracking,
                len(self.watchers),
                self.metrics.polls,
                self.metrics.polls_failed,
                self.metrics.events,
                self.metrics.alerts_sent,
                self.metrics.alerts_failed,
            )
