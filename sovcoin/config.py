"""
sovcoin settings

A single YAML file describes a deployment:

    factory:
      authority: treasury-admin
      fee_bps: 50
      base_reserve_bps: 3000
      reserve_ratio_numerator: 30
      reserve_ratio_denominator: 9
      yield_share_protocol: 2000
      yield_share_issuer: 3000
      yield_share_holders: 5000
    bond_mappings:
      - {currency: MXN, bond_instrument: CETES, rating: 4, bond_decimals: 6}
    coins:
      - {symbol: MXNs, name: Sovereign Peso, currency: MXN, decimals: 6}
    price_feeds:
      MXN: "17.25"
    plan_ttl_seconds: 300
    journal_path: .sovcoin/journal.jsonl
    journal_key_path: .sovcoin/journal.pem
    logging: {level: INFO, format: text}

load_settings() validates shape only. Domain rules (fee range, rating
range, mapping limits) are enforced by the admin instructions when
bootstrap_host() replays the settings into a fresh host.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml

from sovcoin.core.exceptions import ConfigError
from sovcoin.core.models import BOND_DECIMALS, PLAN_TTL_SECONDS
from sovcoin.logging import LoggingOptions
from sovcoin.runtime.context import SettlementContext
from sovcoin.runtime.host import SettlementHost


@dataclass(frozen=True)
class FactorySettings:
    authority:                 str
    base_reserve_bps:          int
    reserve_ratio_numerator:   int
    reserve_ratio_denominator: int
    yield_share_protocol:      int
    yield_share_issuer:        int
    yield_share_holders:       int
    fee_bps:                   int = 0


@dataclass(frozen=True)
class BondMappingSettings:
    currency:        str
    bond_instrument: str
    rating:          int
    bond_decimals:   int = BOND_DECIMALS


@dataclass(frozen=True)
class CoinSettings:
    symbol:   str
    name:     str
    currency: str
    decimals: int = 6
    uri:      str = ""
    creator:  Optional[str] = None


@dataclass(frozen=True)
class Settings:
    factory:          FactorySettings
    bond_mappings:    Tuple[BondMappingSettings, ...] = ()
    coins:            Tuple[CoinSettings, ...] = ()
    price_feeds:      Mapping[str, str] = field(default_factory=dict)
    plan_ttl_seconds: int = PLAN_TTL_SECONDS
    journal_path:     Optional[str] = None
    journal_key_path: Optional[str] = None
    logging:          LoggingOptions = field(default_factory=LoggingOptions)


# ─────────────────────────────────────────────────────────────
# Loading
# ─────────────────────────────────────────────────────────────

def load_settings(path: Union[str, Path]) -> Settings:
    """Load and shape-check a YAML settings file. Raises ConfigError."""
    path = Path(path)
    if not path.exists():
        raise ConfigError("Settings file not found", details={"path": str(path)})
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError("Settings file is not valid YAML", details={"path": str(path)}) from exc
    return settings_from_dict(raw)


def settings_from_dict(raw: Any) -> Settings:
    if not isinstance(raw, dict):
        raise ConfigError("Settings must be a mapping")

    factory = _build(FactorySettings, _require(raw, "factory", dict), "factory")

    mappings = tuple(
        _build(BondMappingSettings, item, f"bond_mappings[{i}]")
        for i, item in enumerate(_list(raw, "bond_mappings"))
    )
    coins = tuple(
        _build(CoinSettings, item, f"coins[{i}]")
        for i, item in enumerate(_list(raw, "coins"))
    )

    price_feeds: Dict[str, str] = {}
    feeds_raw = raw.get("price_feeds") or {}
    if not isinstance(feeds_raw, dict):
        raise ConfigError("price_feeds must be a mapping")
    for currency, price in feeds_raw.items():
        if isinstance(price, bool) or not isinstance(price, (str, int, float)):
            raise ConfigError("Price must be a decimal string", details={"currency": currency})
        price_feeds[str(currency)] = str(price)

    ttl = raw.get("plan_ttl_seconds", PLAN_TTL_SECONDS)
    if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl <= 0:
        raise ConfigError("plan_ttl_seconds must be a positive integer", details={"value": ttl})

    log_raw = raw.get("logging") or {}
    if not isinstance(log_raw, dict):
        raise ConfigError("logging must be a mapping")
    logging_options = _build(LoggingOptions, log_raw, "logging")

    return Settings(
        factory=          factory,
        bond_mappings=    mappings,
        coins=            coins,
        price_feeds=      price_feeds,
        plan_ttl_seconds= ttl,
        journal_path=     raw.get("journal_path"),
        journal_key_path= raw.get("journal_key_path"),
        logging=          logging_options,
    )


def bootstrap_host(settings: Settings, **kwargs) -> SettlementHost:
    """
    Build a ready SettlementHost: factory initialised, mappings
    registered, coins created. Keyword arguments are passed to
    SettlementContext.from_settings (clock, signer).
    """
    return SettlementContext.from_settings(settings, **kwargs).host


# ── Helpers ───────────────────────────────────────────────────

def _require(raw: Dict[str, Any], key: str, kind: type) -> Any:
    if key not in raw:
        raise ConfigError("Missing settings key", details={"key": key})
    value = raw[key]
    if not isinstance(value, kind):
        raise ConfigError("Wrong type for settings key", details={"key": key})
    return value


def _list(raw: Dict[str, Any], key: str) -> list:
    value = raw.get(key) or []
    if not isinstance(value, list):
        raise ConfigError("Settings key must be a list", details={"key": key})
    return value


def _build(cls, data: Any, where: str):
    if not isinstance(data, dict):
        raise ConfigError("Settings block must be a mapping", details={"block": where})
    try:
        return cls(**data)
    except TypeError as exc:
        raise ConfigError(
            "Unknown or missing field", details={"block": where, "error": str(exc)}
        ) from exc
