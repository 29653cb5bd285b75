"""Shared configuration-level models used across the package."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, StrEnum

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class FeedType(StrEnum):
    """Supported price feed providers.

    Values mirror the ``priceFeed.type`` strings used in configuration files.
    """

    PYTH = "PYTH"
    CHAINLINK = "CHAINLINK"


class VaultState(IntEnum):
    """Known vault states.

    The contract may report further states; callers compare raw integers
    against these members rather than coercing unknown values.
    """

    OPEN = 0
    SETTLED_INVESTMENT = 1
    SETTLED_LINKED = 2


class Direction(StrEnum):
    BUY_LOW = "Buy Low"
    SELL_HIGH = "Sell High"

    @classmethod
    def of(cls, is_buy_low: bool) -> "Direction":
        return cls.BUY_LOW if is_buy_low else cls.SELL_HIGH


@dataclass(frozen=True, slots=True)
class PriceFeedConfig:
    """Oracle feed backing a trading pair."""

    type: str
    decimals: int | None
    id: str | None = None
    address: str | None = None


@dataclass(frozen=True, slots=True)
class TradingPair:
    """Immutable trading pair configuration keyed by its symbol (``WETH-USDC``)."""

    symbol: str
    base_token: str | None
    quote_token: str | None
    price_feed: PriceFeedConfig | None

    def matches(self, base_token: str, quote_token: str) -> bool:
        """Compare token addresses case-insensitively."""

        if not self.base_token or not self.quote_token:
            return False
        return (
            self.base_token.lower() == base_token.lower()
            and self.quote_token.lower() == quote_token.lower()
        )
