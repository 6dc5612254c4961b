"""Load bot settings from YAML, falling back to built-in defaults."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .allocator import ConversionRules

DEFAULT_SELL_ALL: Dict[str, Dict[str, float]] = {"ETH": {"USDT": 100.0}}

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _default_sell_all() -> Dict[str, Dict[str, float]]:
    return {src: dict(targets) for src, targets in DEFAULT_SELL_ALL.items()}


@dataclass(frozen=True)
class AppConfig:
    api_key: str = ""
    secret_key: str = ""
    bot_token: str = ""
    bot_chat_id: Optional[int] = None
    sell_all: Dict[str, Dict[str, float]] = field(default_factory=_default_sell_all)
    base_url: str = "https://api.binance.com"
    stream_url: str = "wss://stream.binance.com:9443/ws"
    order_timeout: float = 10.0
    queue_size: int = 0
    keepalive_minutes: float = 30.0
    keepalive_retry_seconds: float = 60.0

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "AppConfig":
        chat_id = raw.get("bot_chat_id")
        sell_all = raw.get("sell_all")
        if sell_all is None:
            sell_all = _default_sell_all()
        return cls(
            api_key=str(raw.get("api_key") or ""),
            secret_key=str(raw.get("secret_key") or ""),
            bot_token=str(raw.get("bot_token") or ""),
            bot_chat_id=int(chat_id) if chat_id not in (None, "") else None,
            sell_all=dict(sell_all),
            base_url=str(raw.get("base_url") or "https://api.binance.com"),
            stream_url=str(raw.get("stream_url") or "wss://stream.binance.com:9443/ws"),
            order_timeout=float(raw.get("order_timeout", 10.0)),
            queue_size=int(raw.get("queue_size", 0)),
            keepalive_minutes=float(raw.get("keepalive_minutes", 30.0)),
            keepalive_retry_seconds=float(raw.get("keepalive_retry_seconds", 60.0)),
        )

    def conversion_rules(self) -> ConversionRules:
        return ConversionRules.from_mapping(self.sell_all)

    def redacted(self) -> Dict[str, Any]:
        def _mask(value: str) -> str:
            return f"{value[:4]}..." if value else ""

        return {
            "api_key": _mask(self.api_key),
            "secret_key": _mask(self.secret_key),
            "bot_token": _mask(self.bot_token),
            "bot_chat_id": self.bot_chat_id,
            "sell_all": self.sell_all,
            "base_url": self.base_url,
            "order_timeout": self.order_timeout,
            "queue_size": self.queue_size,
        }


def read_yaml(path) -> Dict[str, Any]:
    # Expand ${ENV} in yaml values
    with open(path, "r", encoding="utf-8") as f:
        txt = f.read()
    txt = _ENV_PATTERN.sub(lambda m: os.getenv(m.group(1), ""), txt)
    data = yaml.safe_load(txt)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config root must be a mapping, got {type(data).__name__}")
    return data


def load_config(path="config.yaml") -> AppConfig:
    """Read ``path``; a missing or broken file yields the defaults."""

    config_path = Path(path).resolve()
    logging.info("Loading config: %s", config_path)
    raw: Dict[str, Any] = {}
    try:
        raw = read_yaml(config_path)
    except OSError as exc:
        logging.warning("File error: %s", exc)
        logging.warning("Using default config")
    except (yaml.YAMLError, ValueError) as exc:
        logging.warning("Config error: %s", exc)
        logging.warning("Using default config")

    try:
        cfg = AppConfig.from_dict(raw)
    except (TypeError, ValueError) as exc:
        logging.warning("Config error: %s", exc)
        logging.warning("Using default config")
        cfg = AppConfig()

    api_key = os.getenv("BINANCE_API_KEY")
    api_secret = os.getenv("BINANCE_API_SECRET")
    if api_key or api_secret:
        cfg = replace(cfg, api_key=api_key or cfg.api_key, secret_key=api_secret or cfg.secret_key)
    return cfg
