"""
TOML-based configuration for the wallet client.

Loads settings from a TOML file and/or environment variables.
Environment variables take precedence over file values.

Usage:
    from aptwallet_core.config import load_config
    cfg = load_config("aptwallet.toml")
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


@dataclass
class ClientConfig:
    """Remote endpoints."""
    node_url: str = "http://127.0.0.1:8080"
    faucet_url: str = "http://127.0.0.1:8000"
    request_timeout_secs: float = 30.0


@dataclass
class TransactionConfig:
    """Defaults applied when generating and confirming transactions."""
    max_gas_amount: int = 1000
    gas_unit_price: int = 1
    gas_currency_code: str = "XUS"
    expiration_secs: int = 600
    # Gas ceiling used by the orchestrated submit helper.
    submit_max_gas_amount: int = 4000
    wait_timeout_secs: float = 10.0
    poll_interval_secs: float = 1.0


@dataclass
class CacheConfig:
    ttl_seconds: float = 60.0


@dataclass
class CoinConfig:
    native_coin: str = "0x1::test_coin::TestCoin"


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    format: str = "human"   # "human" or "json"
    file: str | None = None


@dataclass
class AptWalletConfig:
    """Top-level configuration container."""
    client: ClientConfig = field(default_factory=ClientConfig)
    transactions: TransactionConfig = field(default_factory=TransactionConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    coin: CoinConfig = field(default_factory=CoinConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _merge(dc: Any, raw: dict[str, Any]) -> None:
    """Merge a raw dict into a dataclass instance (in-place)."""
    for key, value in raw.items():
        key_under = key.replace("-", "_")
        if hasattr(dc, key_under):
            setattr(dc, key_under, value)


def load_config(path: str | None = None) -> AptWalletConfig:
    """
    Load configuration from a TOML file, then overlay environment variables.

    Env-var mapping:
        APTWALLET_NODE_URL      -> client.node_url
        APTWALLET_FAUCET_URL    -> client.faucet_url
        APTWALLET_WAIT_TIMEOUT  -> transactions.wait_timeout_secs
        APTWALLET_MAX_GAS       -> transactions.submit_max_gas_amount
        APTWALLET_CACHE_TTL     -> cache.ttl_seconds
        APTWALLET_NATIVE_COIN   -> coin.native_coin
        APTWALLET_LOG_LEVEL     -> logging.level
        APTWALLET_LOG_FMT       -> logging.format
        APTWALLET_LOG_FILE      -> logging.file
    """
    cfg = AptWalletConfig()

    # ── TOML file ────────────────────────────────────────────────
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p, "rb") as f:
                data = tomllib.load(f)
            for section_name, section_dc in [
                ("client", cfg.client),
                ("transactions", cfg.transactions),
                ("cache", cfg.cache),
                ("coin", cfg.coin),
                ("logging", cfg.logging),
            ]:
                if section_name in data:
                    _merge(section_dc, data[section_name])

    # ── Environment variable overrides ───────────────────────────
    if v := os.environ.get("APTWALLET_NODE_URL"):
        cfg.client.node_url = v
    if v := os.environ.get("APTWALLET_FAUCET_URL"):
        cfg.client.faucet_url = v
    if v := os.environ.get("APTWALLET_WAIT_TIMEOUT"):
        cfg.transactions.wait_timeout_secs = float(v)
    if v := os.environ.get("APTWALLET_MAX_GAS"):
        cfg.transactions.submit_max_gas_amount = int(v)
    if v := os.environ.get("APTWALLET_CACHE_TTL"):
        cfg.cache.ttl_seconds = float(v)
    if v := os.environ.get("APTWALLET_NATIVE_COIN"):
        cfg.coin.native_coin = v
    if v := os.environ.get("APTWALLET_LOG_LEVEL"):
        cfg.logging.level = v.upper()
    if v := os.environ.get("APTWALLET_LOG_FMT"):
        cfg.logging.format = v
    if v := os.environ.get("APTWALLET_LOG_FILE"):
        cfg.logging.file = v

    return cfg
