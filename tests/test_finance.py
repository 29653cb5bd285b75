from __future__ import annotations

import pytest

from vault_ops.core.errors import ValidationError
from vault_ops.core.finance import (
    UNIT,
    YIELD_DECIMALS,
    calculate_cancellation_fee,
    calculate_token_amounts,
    calculate_trading_fee,
    format_units,
    linked_price_decimals,
    parse_units,
)

QUANTITY = 10 * UNIT
YIELD = 30_000_000_000_000_000
FEE_RATE = 69_000_000_000_000_000


def test_buy_low_trading_fee_matches_reference_value():
    fee = calculate_trading_fee(QUANTITY, YIELD, True, FEE_RATE, 0)

    assert fee == 20_700_000_000_000_000


def test_buy_low_fee_ignores_oracle_price():
    assert calculate_trading_fee(QUANTITY, YIELD, True, FEE_RATE, 0) == calculate_trading_fee(
        QUANTITY, YIELD, True, FEE_RATE, 2_500 * UNIT
    )


def test_sell_high_fee_applies_oracle_price_and_buffer():
    oracle_price = 2_500 * UNIT

    fee = calculate_trading_fee(QUANTITY, YIELD, False, FEE_RATE, oracle_price)

    unbuffered = QUANTITY * YIELD * FEE_RATE * oracle_price // UNIT // UNIT // UNIT
    assert fee == QUANTITY * YIELD * FEE_RATE * oracle_price * 101 // 100 // UNIT // UNIT // UNIT
    assert fee >= unbuffered


@pytest.mark.parametrize("price", [1, 10**17, 2_500 * UNIT, 60_000 * UNIT])
def test_sell_high_fee_never_below_unbuffered_fee(price):
    fee = calculate_trading_fee(QUANTITY, YIELD, False, FEE_RATE, price)

    assert fee >= QUANTITY * YIELD * FEE_RATE * price // UNIT // UNIT // UNIT


def test_sell_high_fee_never_decreases_as_oracle_price_rises():
    fees = [calculate_trading_fee(QUANTITY, YIELD, False, FEE_RATE, price) for price in range(0, 100_000, 37)]

    assert all(later >= earlier for earlier, later in zip(fees, fees[1:]))


def test_sell_high_fee_strictly_increases_with_whole_unit_price_steps():
    fees = [calculate_trading_fee(QUANTITY, YIELD, False, FEE_RATE, units * UNIT) for units in range(1, 200)]

    assert all(later > earlier for earlier, later in zip(fees, fees[1:]))


def test_zero_yield_or_zero_rate_costs_nothing():
    assert calculate_trading_fee(QUANTITY, 0, True, FEE_RATE, 0) == 0
    assert calculate_trading_fee(QUANTITY, YIELD, False, 0, 2_500 * UNIT) == 0


def test_buy_low_token_amounts_add_fee_to_investment_side():
    linked_price = 2_500 * UNIT

    amounts = calculate_token_amounts(QUANTITY, YIELD, True, FEE_RATE, 0, linked_price)

    fee = calculate_trading_fee(QUANTITY, YIELD, True, FEE_RATE, 0)
    assert amounts.linked_token_amount == QUANTITY * (UNIT + YIELD) // linked_price
    assert amounts.investment_token_amount == QUANTITY * YIELD // UNIT + fee


def test_sell_high_token_amounts_add_fee_to_linked_side():
    linked_price = 2_600 * UNIT
    oracle_price = 2_500 * UNIT

    amounts = calculate_token_amounts(QUANTITY, YIELD, False, FEE_RATE, oracle_price, linked_price)

    fee = calculate_trading_fee(QUANTITY, YIELD, False, FEE_RATE, oracle_price)
    assert amounts.linked_token_amount == QUANTITY * (UNIT + YIELD) * linked_price // UNIT // UNIT + fee
    assert amounts.investment_token_amount == QUANTITY * YIELD // UNIT


def test_cancellation_fee_charges_unfilled_remainder():
    assert calculate_cancellation_fee(QUANTITY, 4 * UNIT, 10**16, True, 0) == 6 * UNIT * 10**16 // UNIT
    assert calculate_cancellation_fee(QUANTITY, QUANTITY, 10**16, True, 0) == 0
    assert calculate_cancellation_fee(QUANTITY, 0, 10**16, False, 2 * UNIT) == 10 * UNIT * 10**16 * 2 * UNIT // UNIT // UNIT


@pytest.mark.parametrize(
    ("value", "decimals", "expected"),
    [
        ("2500", 8, 250_000_000_000),
        ("3", YIELD_DECIMALS, 30_000_000_000_000_000),
        ("10", 18, 10_000_000_000_000_000_000),
        ("0.5", 6, 500_000),
        ("1.25", 2, 125),
        ("123456789012345678901234567890.123456789012345678", 18, 123456789012345678901234567890123456789012345678),
    ],
)
def test_parse_units(value, decimals, expected):
    assert parse_units(value, decimals) == expected


@pytest.mark.parametrize("value", ["abc", "", "-1", "1.0000001", "NaN", "Infinity"])
def test_parse_units_rejects_bad_input(value):
    with pytest.raises(ValidationError):
        parse_units(value, 6)


def test_format_units_round_trips_parse_units():
    assert format_units(parse_units("2500.125", 8), 8) == "2500.125"
    assert format_units(2_500 * 10**8, 8) == "2500.0"
    assert format_units(42, 0) == "42"


def test_linked_price_decimals_normalises_to_fixed_unit():
    assert linked_price_decimals(18, 6) == 6
    assert linked_price_decimals(8, 6) == 16
    assert linked_price_decimals(18, 18) == 18
