from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class SupplyChangeEvent:
    asset_name: str
    asset_address: str
    old_total_supply: int
    new_total_supply: int
    target_total_supply: int | None
    decimals: int
    trigger_reasons: tuple[str, ...]
    observed_at: datetime


@dataclass(frozen=True)
class AssetConfig:
    name: str
    address: str
    target_total_supply: str | None = None
    notify_on_increase: bool | None = None
    notify_on_decrease: bool | None = None
    poll_interval: str | float | None = None
    increase_threshold_percent: int | None = None
    supply_method: str | None = None


@dataclass(frozen=True)
class TelegramConfig:
    bot_token: str
    chat_id: str


@dataclass(frozen=True)
class JsonRpcConfig:
    url: str
