"""Fixed-point arithmetic over an 18-decimal base unit.

Every money path in the package goes through these helpers. Values are plain
Python integers, so intermediate products never overflow; the order of the
floor divisions is part of the contract and must not be regrouped.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import NamedTuple

from .errors import ValidationError

FIXED_DECIMALS = 18
YIELD_DECIMALS = FIXED_DECIMALS - 2
UNIT = 10**FIXED_DECIMALS

# Sell-high fees are approved with a 1% buffer against oracle drift between
# the fee computation and on-chain execution.
PRICE_BUFFER_NUMERATOR = 101
PRICE_BUFFER_DENOMINATOR = 100


class TokenAmounts(NamedTuple):
    linked_token_amount: int
    investment_token_amount: int


def calculate_trading_fee(
    quantity: int,
    yield_value: int,
    is_buy_low: bool,
    fee_rate: int,
    oracle_price_at_creation: int,
) -> int:
    """Return the trading fee owed by the vault owner."""

    if is_buy_low:
        return quantity * yield_value * fee_rate // UNIT // UNIT
    return (
        quantity * yield_value * fee_rate * oracle_price_at_creation * PRICE_BUFFER_NUMERATOR
        // PRICE_BUFFER_DENOMINATOR
        // UNIT
        // UNIT
        // UNIT
    )


def calculate_token_amounts(
    quantity: int,
    yield_value: int,
    is_buy_low: bool,
    fee_rate: int,
    oracle_price_at_creation: int,
    linked_price: int,
) -> TokenAmounts:
    """Split the owner's funding requirement into linked and investment tokens.

    The trading fee is added on the quote side: to the investment token for
    buy-low vaults and to the linked token for sell-high vaults.
    """

    fee = calculate_trading_fee(quantity, yield_value, is_buy_low, fee_rate, oracle_price_at_creation)
    investment_token_amount = quantity * yield_value // UNIT

    if is_buy_low:
        linked_token_amount = quantity * (UNIT + yield_value) // linked_price
        investment_token_amount += fee
    else:
        linked_token_amount = quantity * (UNIT + yield_value) * linked_price // UNIT // UNIT + fee
    return TokenAmounts(linked_token_amount, investment_token_amount)


def calculate_cancellation_fee(
    quantity: int,
    deposit_total: int,
    fee_rate: int,
    is_buy_low: bool,
    oracle_price_at_creation: int,
) -> int:
    """Fee charged on the unfilled remainder when the owner cancels."""

    fee = (quantity - deposit_total) * fee_rate
    if is_buy_low:
        return fee // UNIT
    return fee * oracle_price_at_creation // UNIT // UNIT


def parse_units(value: str | int | Decimal, decimals: int) -> int:
    """Convert a human decimal string (``"2500.5"``) into a fixed-point integer.

    Raises :class:`ValidationError` for non-numeric or negative input and for
    values carrying more fractional digits than ``decimals`` allows.
    """

    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValidationError(f"{value!r} is not a valid decimal amount") from exc
    if not amount.is_finite():
        raise ValidationError(f"{value!r} is not a finite amount")
    if amount < 0:
        raise ValidationError(f"{value!r} must not be negative")
    _, digits, exponent = amount.as_tuple()
    coefficient = int("".join(map(str, digits)) or "0")
    shift = exponent + decimals
    if shift >= 0:
        return coefficient * 10**shift
    divisor = 10**-shift
    if coefficient % divisor:
        raise ValidationError(f"{value!r} has more than {decimals} decimal places")
    return coefficient // divisor


def format_units(value: int, decimals: int) -> str:
    """Render a fixed-point integer as a plain decimal string."""

    if decimals == 0:
        return str(value)
    sign = "-" if value < 0 else ""
    whole, fraction = divmod(abs(value), 10**decimals)
    fraction_text = str(fraction).rjust(decimals, "0").rstrip("0") or "0"
    return f"{sign}{whole}.{fraction_text}"


def linked_price_decimals(base_decimals: int, quote_decimals: int) -> int:
    """Decimals of a quote-per-base price normalised to the 18-decimal unit."""

    return FIXED_DECIMALS + quote_decimals - base_decimals
