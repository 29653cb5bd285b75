"""Configuration loading.

The configuration file maps network names to their RPC endpoint, credentials
reference, contract addresses and trading pair table; ``basicSettings`` holds
values shared by every network. Credentials can be supplied through the
environment (or a ``.env`` file) instead of the file itself.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

from dotenv import load_dotenv

from .core.errors import ConfigError
from .models.shared import PriceFeedConfig, TradingPair

DEFAULT_CONFIG_PATH = "config.json"
SETTINGS_KEY = "basicSettings"
PASSPHRASE_ENV = "VAULT_OPS_PASSPHRASE"
PRIVATE_KEY_ENV = "VAULT_OPS_PRIVATE_KEY"
REDACTED = "***"


@dataclass(frozen=True, slots=True)
class BasicSettings:
    hermes_api_base_url: str = "https://hermes.pyth.network"
    request_timeout: float = 10.0
    receipt_timeout: float = 180.0


@dataclass(frozen=True, slots=True)
class NetworkConfig:
    """Everything needed to operate on one network."""

    name: str
    rpc_node: str | None = None
    account: str | None = None
    json_wallet: str | None = None
    passphrase: str | None = None
    private_key: str | None = None
    factory: str | None = None
    router: str | None = None
    pyth_aggregator: str | None = None
    pyth_price_feed: str | None = None
    collateral_pool: str | None = None
    batch_manager: str | None = None
    trading_pairs: Mapping[str, TradingPair] = field(default_factory=dict)

    def validate(self) -> None:
        """Fail before any chain interaction when a required field is missing."""

        if not self.rpc_node:
            raise ConfigError("rpcNode is not set")
        if not self.private_key:
            if not self.json_wallet:
                raise ConfigError("wallet path is not set")
            if not self.passphrase:
                raise ConfigError("passphrase is not set")
        if not self.factory:
            raise ConfigError("factory is not set")
        if not self.router:
            raise ConfigError("router is not set")

    def find_trading_pair(self, base_token: str, quote_token: str) -> TradingPair | None:
        for pair in self.trading_pairs.values():
            if pair.matches(base_token, quote_token):
                return pair
        return None

    def redacted(self) -> dict[str, Any]:
        """Return the network as a plain mapping with credentials masked."""

        return {
            "rpcNode": self.rpc_node,
            "account": self.account,
            "jsonWallet": self.json_wallet,
            "passphrase": REDACTED if self.passphrase else None,
            "privateKey": REDACTED if self.private_key else None,
            "factory": self.factory,
            "router": self.router,
            "pythAggregator": self.pyth_aggregator,
            "pythPriceFeed": self.pyth_price_feed,
            "collateralPool": self.collateral_pool,
            "batchManager": self.batch_manager,
            "tradingPairs": {
                symbol: {
                    "baseToken": pair.base_token,
                    "quoteToken": pair.quote_token,
                    "priceFeed": None
                    if pair.price_feed is None
                    else {
                        "type": pair.price_feed.type,
                        "id": pair.price_feed.id,
                        "address": pair.price_feed.address,
                        "decimals": pair.price_feed.decimals,
                    },
                }
                for symbol, pair in self.trading_pairs.items()
            },
        }


@dataclass(frozen=True, slots=True)
class AppConfig:
    settings: BasicSettings
    networks: Mapping[str, NetworkConfig]

    def network(self, name: str) -> NetworkConfig:
        try:
            return self.networks[name]
        except KeyError as exc:
            raise ConfigError(f'Invalid network "{name}"') from exc


def load_config(
    path: str | Path = DEFAULT_CONFIG_PATH,
    *,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """Read the JSON configuration file and apply environment overrides."""

    if environ is None:
        load_dotenv()
        environ = os.environ
    config_path = Path(path)
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file '{config_path}' does not exist") from exc
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Config file '{config_path}' could not be parsed: {exc}") from exc
    return parse_config(raw, environ=environ)


def parse_config(raw: Mapping[str, Any], *, environ: Mapping[str, str] | None = None) -> AppConfig:
    if not isinstance(raw, Mapping):
        raise ConfigError("Configuration root must be a JSON object")
    environ = environ or {}
    settings = _parse_settings(raw.get(SETTINGS_KEY) or {})
    networks: dict[str, NetworkConfig] = {}
    for name, entry in raw.items():
        if name == SETTINGS_KEY or not isinstance(entry, Mapping):
            continue
        network = _parse_network(name, entry)
        overrides: dict[str, str] = {}
        if environ.get(PASSPHRASE_ENV):
            overrides["passphrase"] = environ[PASSPHRASE_ENV]
        if environ.get(PRIVATE_KEY_ENV):
            overrides["private_key"] = environ[PRIVATE_KEY_ENV]
        networks[name] = replace(network, **overrides) if overrides else network
    return AppConfig(settings=settings, networks=networks)


def _parse_settings(raw: Mapping[str, Any]) -> BasicSettings:
    defaults = BasicSettings()
    try:
        return BasicSettings(
            hermes_api_base_url=str(raw.get("hermesApiBaseUrl") or defaults.hermes_api_base_url),
            request_timeout=float(raw.get("requestTimeout", defaults.request_timeout)),
            receipt_timeout=float(raw.get("receiptTimeout", defaults.receipt_timeout)),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{SETTINGS_KEY} contains an invalid timeout: {exc}") from exc


def _parse_network(name: str, raw: Mapping[str, Any]) -> NetworkConfig:
    pairs = raw.get("tradingPairs") or {}
    if not isinstance(pairs, Mapping):
        raise ConfigError(f"tradingPairs of {name} must be an object")
    return NetworkConfig(
        name=name,
        rpc_node=raw.get("rpcNode"),
        account=raw.get("account"),
        json_wallet=raw.get("jsonWallet"),
        passphrase=raw.get("passphrase"),
        private_key=raw.get("privateKey"),
        factory=raw.get("factory"),
        router=raw.get("router"),
        pyth_aggregator=raw.get("pythAggregator"),
        pyth_price_feed=raw.get("pythPriceFeed"),
        collateral_pool=raw.get("collateralPool"),
        batch_manager=raw.get("batchManager"),
        trading_pairs={symbol: _parse_trading_pair(symbol, entry) for symbol, entry in pairs.items()},
    )


def _parse_trading_pair(symbol: str, raw: Mapping[str, Any]) -> TradingPair:
    feed_raw = raw.get("priceFeed")
    feed = None
    if isinstance(feed_raw, Mapping):
        decimals = feed_raw.get("decimals")
        try:
            parsed_decimals = int(decimals) if decimals not in (None, "") else None
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"priceFeed.decimals of {symbol} is not an integer") from exc
        feed = PriceFeedConfig(
            type=str(feed_raw.get("type") or ""),
            decimals=parsed_decimals,
            id=feed_raw.get("id"),
            address=feed_raw.get("address"),
        )
    return TradingPair(
        symbol=symbol,
        base_token=raw.get("baseToken"),
        quote_token=raw.get("quoteToken"),
        price_feed=feed,
    )
