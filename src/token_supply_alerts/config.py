from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass
from typing import Any

import yaml
from dotenv import load_dotenv

from .triggers import DEFAULT_INCREASE_THRESHOLD_PERCENT
from .types import AssetConfig, JsonRpcConfig, TelegramConfig

DEFAULT_POLL_INTERVAL = "1m"
DEFAULT_REQUEST_TIMEOUT = "10s"
DEFAULT_HEALTH_LOG_INTERVAL = "5m"

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Settings:
    rpc_url: str
    poll_interval: float
    increase_threshold_percent: int
    request_timeout: float
    health_log_interval: float
    log_level: str
    assets: tuple[AssetConfig, ...]
    telegram: TelegramConfig | None = None
    json_rpc: JsonRpcConfig | None = None


def parse_duration(value: Any) -> float:
    """Parse a Go-style duration (``1m30s``, ``500ms``) or a bare number of seconds."""
    if isinstance(value, bool):
        raise ConfigError(f"invalid duration {value!r}")
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ConfigError(f"invalid duration {value!r}")
        return float(value)

    text = str(value).strip()
    if not text:
        raise ConfigError("invalid duration ''")

    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    if text == "0":
        return 0.0

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None:
            raise ConfigError(f"invalid duration {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0:
        raise ConfigError(f"invalid duration {value!r}")
    return sign * total


def _string(raw: Any) -> str:
    if raw is None:
        return ""
    return str(raw).strip()


def _optional_string(raw: Any) -> str | None:
    text = _string(raw)
    return text or None


def _optional_duration(raw: Any) -> str | float | None:
    # Numbers are kept as seconds; strings go through parse_duration later.
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return float(raw)
    return _optional_string(raw)


def _optional_bool(raw: Any, field: str) -> bool | None:
    if raw is None:
        return None
    if not isinstance(raw, bool):
        raise ConfigError(f"{field} must be a boolean")
    return raw


def _optional_int(raw: Any, field: str) -> int | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        raise ConfigError(f"{field} must be an integer")
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field} must be an integer") from exc


def _positive_duration(raw: Any, field: str) -> float:
    seconds = parse_duration(raw)
    if seconds <= 0:
        raise ConfigError(f"{field} must be positive")
    return seconds


def _with_default(document: dict[str, Any], key: str, default: str) -> Any:
    raw = document.get(key)
    if raw is None or raw == "":
        return default
    return raw


def _env_override(name: str, current: str) -> str:
    value = os.getenv(name, "").strip()
    return value or current


def _parse_asset(index: int, raw: Any) -> AssetConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"assets[{index}] must be a mapping")
    prefix = f"assets[{index}]"
    # Targets are kept as strings so values beyond 64 bits survive YAML round trips.
    target = raw.get("target_total_supply", raw.get("target_cap_tokens"))
    return AssetConfig(
        name=_string(raw.get("name")),
        address=_string(raw.get("address")),
        target_total_supply=_optional_string(target),
        notify_on_increase=_optional_bool(raw.get("notify_on_increase"), f"{prefix}.notify_on_increase"),
        notify_on_decrease=_optional_bool(raw.get("notify_on_decrease"), f"{prefix}.notify_on_decrease"),
        poll_interval=_optional_duration(raw.get("poll_interval")),
        increase_threshold_percent=_optional_int(
            raw.get("increase_threshold_percent"), f"{prefix}.increase_threshold_percent"
        ),
        supply_method=_optional_string(raw.get("supply_method")),
    )


def _parse_telegram(raw: Any) -> TelegramConfig | None:
    if raw is None and not os.getenv("TELEGRAM_BOT_TOKEN"):
        return None
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError("notifications.telegram must be a mapping")
    bot_token = _env_override("TELEGRAM_BOT_TOKEN", _string(raw.get("bot_token")))
    chat_id = _env_override("TELEGRAM_CHAT_ID", _string(raw.get("chat_id")))
    if not bot_token:
        raise ConfigError("telegram.bot_token is required")
    if not chat_id:
        raise ConfigError("telegram.chat_id is required")
    return TelegramConfig(bot_token=bot_token, chat_id=chat_id)


def _parse_json_rpc(raw: Any) -> JsonRpcConfig | None:
    if raw is None and not os.getenv("JSON_RPC_URL"):
        return None
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError("notifications.json_rpc must be a mapping")
    url = _env_override("JSON_RPC_URL", _string(raw.get("url")))
    if not url:
        raise ConfigError("json_rpc.url is required")
    return JsonRpcConfig(url=url)


def parse_settings(document: Any) -> Settings:
    if not isinstance(document, dict):
        raise ConfigError("configuration must be a mapping")

    rpc_url = _env_override("RPC_URL", _string(document.get("rpc_url")))
    if not rpc_url:
        raise ConfigError("rpc_url must be provided")

    raw_assets = document.get("assets") or []
    if not isinstance(raw_assets, list):
        raise ConfigError("assets must be a list")
    if not raw_assets:
        raise ConfigError("at least one asset must be configured")

    notifications = document.get("notifications") or {}
    if not isinstance(notifications, dict):
        raise ConfigError("notifications must be a mapping")

    threshold = _optional_int(document.get("increase_threshold_percent"), "increase_threshold_percent")
    if threshold is None:
        threshold = DEFAULT_INCREASE_THRESHOLD_PERCENT
    if threshold < 0:
        raise ConfigError("increase_threshold_percent must not be negative")

    return Settings(
        rpc_url=rpc_url,
        poll_interval=_positive_duration(
            _with_default(document, "poll_interval", DEFAULT_POLL_INTERVAL), "poll_interval"
        ),
        increase_threshold_percent=threshold,
        request_timeout=_positive_duration(
            _with_default(document, "request_timeout", DEFAULT_REQUEST_TIMEOUT), "request_timeout"
        ),
        health_log_interval=_positive_duration(
            _with_default(document, "health_log_interval", DEFAULT_HEALTH_LOG_INTERVAL),
            "health_log_interval",
        ),
        log_level=_env_override("LOG_LEVEL", _string(document.get("log_level")) or "INFO").upper(),
        assets=tuple(_parse_asset(i, raw) for i, raw in enumerate(raw_assets)),
        telegram=_parse_telegram(notifications.get("telegram")),
        json_rpc=_parse_json_rpc(notifications.get("json_rpc")),
    )


def load_settings(path: str) -> Settings:
    load_dotenv()
    try:
        with open(path, encoding="utf-8") as fh:
            document = yaml.safe_load(fh)
    except OSError as exc:
        raise ConfigError(f"read config: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"parse config: {exc}") from exc
    return parse_settings(document)
