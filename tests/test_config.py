from __future__ import annotations

import json
from dataclasses import replace

import pytest

from tests.fakes import USDC, WETH
from vault_ops.config import PASSPHRASE_ENV, PRIVATE_KEY_ENV, load_config, parse_config
from vault_ops.core.errors import ConfigError

RAW = {
    "basicSettings": {"hermesApiBaseUrl": "https://hermes.example", "requestTimeout": 5},
    "arbitrum": {
        "rpcNode": "https://arb.example",
        "account": "0x1111111111111111111111111111111111111111",
        "jsonWallet": "wallet.json",
        "passphrase": "secret",
        "factory": "0xf000000000000000000000000000000000000001",
        "router": "0xf000000000000000000000000000000000000002",
        "pythPriceFeed": "0xf000000000000000000000000000000000000005",
        "tradingPairs": {
            "WETH-USDC": {
                "baseToken": WETH,
                "quoteToken": USDC,
                "priceFeed": {"type": "PYTH", "id": "0xff61", "decimals": "8"},
            }
        },
    },
}


def test_parse_config_reads_networks_and_settings():
    config = parse_config(RAW, environ={})

    assert list(config.networks) == ["arbitrum"]
    network = config.network("arbitrum")
    assert network.rpc_node == "https://arb.example"
    assert network.pyth_price_feed.endswith("05")
    assert network.trading_pairs["WETH-USDC"].price_feed.decimals == 8
    assert config.settings.hermes_api_base_url == "https://hermes.example"
    assert config.settings.request_timeout == 5.0
    assert config.settings.receipt_timeout == 180.0


def test_environment_overrides_credentials():
    config = parse_config(RAW, environ={PASSPHRASE_ENV: "from-env", PRIVATE_KEY_ENV: "0xabc"})

    network = config.network("arbitrum")
    assert network.passphrase == "from-env"
    assert network.private_key == "0xabc"


def test_unknown_network_is_a_config_error():
    with pytest.raises(ConfigError, match='Invalid network "base"'):
        parse_config(RAW, environ={}).network("base")


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"rpc_node": None}, "rpcNode is not set"),
        ({"json_wallet": None}, "wallet path is not set"),
        ({"passphrase": None}, "passphrase is not set"),
        ({"factory": None}, "factory is not set"),
        ({"router": None}, "router is not set"),
    ],
)
def test_validate_reports_first_missing_field(overrides, message):
    network = replace(parse_config(RAW, environ={}).network("arbitrum"), **overrides)

    with pytest.raises(ConfigError, match=message):
        network.validate()


def test_private_key_replaces_wallet_file():
    network = replace(
        parse_config(RAW, environ={}).network("arbitrum"), json_wallet=None, passphrase=None, private_key="0xabc"
    )

    network.validate()


def test_find_trading_pair_ignores_case():
    network = parse_config(RAW, environ={}).network("arbitrum")

    assert network.find_trading_pair(WETH.upper(), USDC).symbol == "WETH-USDC"
    assert network.find_trading_pair(USDC, WETH) is None


def test_redacted_masks_credentials():
    network = parse_config(RAW, environ={PRIVATE_KEY_ENV: "0xabc"}).network("arbitrum")

    redacted = network.redacted()

    assert redacted["passphrase"] == "***"
    assert redacted["privateKey"] == "***"
    assert redacted["rpcNode"] == "https://arb.example"


def test_bad_feed_decimals_are_rejected():
    raw = json.loads(json.dumps(RAW))
    raw["arbitrum"]["tradingPairs"]["WETH-USDC"]["priceFeed"]["decimals"] = "eight"

    with pytest.raises(ConfigError, match="decimals"):
        parse_config(raw, environ={})


def test_load_config_reads_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(RAW), encoding="utf-8")

    config = load_config(path, environ={})

    assert config.network("arbitrum").router.endswith("02")


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="does not exist"):
        load_config(tmp_path / "missing.json", environ={})


def test_load_config_invalid_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigError, match="could not be parsed"):
        load_config(path, environ={})


def test_network_without_rpc_node_is_kept_for_validation():
    config = parse_config({"base": {"factory": "0xf000000000000000000000000000000000000001"}}, environ={})

    with pytest.raises(ConfigError, match="rpcNode is not set"):
        config.network("base").validate()
