from __future__ import annotations

import pytest

from tests.fakes import TRADING_PAIRS, WETH_USDC, WETH_USDC_FEED_ID, StubPriceSource, make_update
from vault_ops.core.errors import ConfigError, OracleUnavailable, VaultOpsError
from vault_ops.core.oracle import LATEST_PRICE_OFFSET, PriceOracleAdapter, latest_signal, reference_price
from vault_ops.models.oracle import ema_price, update_payload
from vault_ops.models.shared import FeedType, PriceFeedConfig, TradingPair

NOW = 1_700_000_000


def _adapter(source: StubPriceSource, pairs=TRADING_PAIRS) -> PriceOracleAdapter:
    return PriceOracleAdapter(pairs, source_overrides={FeedType.PYTH: source}, clock=lambda: NOW)


def test_future_target_fetches_latest_update():
    source = StubPriceSource()

    _adapter(source).get_price_update(latest_signal(NOW), "WETH-USDC")

    assert source.calls == [("latest", None, [WETH_USDC_FEED_ID])]


def test_past_target_fetches_update_at_that_time():
    source = StubPriceSource()

    _adapter(source).get_price_update(NOW - 60, "WETH-USDC")

    assert source.calls == [("at", NOW - 60, [WETH_USDC_FEED_ID])]


def test_latest_signal_is_a_day_ahead():
    assert latest_signal(NOW) == NOW + LATEST_PRICE_OFFSET


def test_unknown_pair_is_a_config_error():
    with pytest.raises(ConfigError, match="doesn't exist"):
        _adapter(StubPriceSource()).get_price_update(NOW, "DOGE-USDC")


def test_missing_feed_id_is_a_config_error():
    pair = TradingPair("WETH-USDC", WETH_USDC.base_token, WETH_USDC.quote_token, PriceFeedConfig("PYTH", 8))

    with pytest.raises(ConfigError, match="id"):
        _adapter(StubPriceSource(), {"WETH-USDC": pair}).get_price_update(NOW, "WETH-USDC")


def test_feed_type_without_source_is_a_config_error():
    pair = TradingPair(
        "WETH-USDC", WETH_USDC.base_token, WETH_USDC.quote_token, PriceFeedConfig("CHAINLINK", 8, id="0x01")
    )
    adapter = PriceOracleAdapter({"WETH-USDC": pair}, clock=lambda: NOW)

    with pytest.raises(ConfigError):
        adapter.get_price_update(NOW, "WETH-USDC")


def test_source_errors_surface_as_oracle_unavailable():
    source = StubPriceSource(error=VaultOpsError("HTTP 429"))

    with pytest.raises(OracleUnavailable, match="HTTP 429"):
        _adapter(source).get_price_update(NOW, "WETH-USDC")


def test_resolver_is_called_once_per_feed_type():
    created = []

    def resolver(feed_type):
        created.append(feed_type)
        return StubPriceSource()

    adapter = PriceOracleAdapter(TRADING_PAIRS, resolver=resolver, clock=lambda: NOW)
    adapter.get_price_update(NOW, "WETH-USDC")
    adapter.get_price_update(NOW, "WBTC-USDC")

    assert created == [FeedType.PYTH]


def test_close_closes_sources():
    source = StubPriceSource()
    adapter = _adapter(source)

    adapter.close()

    assert source.closed is True


def test_reference_price_rounds_up_to_whole_quote_units():
    update = make_update(ema_price=250_012_345_678)

    assert reference_price(update, 8, 6) == 2_501 * 10**6


def test_reference_price_keeps_exact_whole_prices():
    update = make_update(ema_price=250_000_000_000)

    assert reference_price(update, 8, 18) == 2_500 * 10**18


def test_update_payload_strips_hex_prefix():
    assert update_payload(make_update(data="0xdeadbeef")) == bytes.fromhex("deadbeef")
    assert update_payload(make_update(data="cafe")) == b"\xca\xfe"


def test_update_helpers_reject_incomplete_updates():
    with pytest.raises(OracleUnavailable):
        update_payload({"binary": {"encoding": "hex", "data": []}, "parsed": []})
    with pytest.raises(OracleUnavailable):
        ema_price({"binary": {"encoding": "hex", "data": ["00"]}, "parsed": []})
