"""Price oracle adapter threading attestations into ledger writes."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping

from ..contracts.oracle.interface import PriceUpdateSource
from ..models.oracle import PriceUpdate, ema_price
from ..models.shared import FeedType, TradingPair
from .errors import ConfigError, OracleUnavailable, VaultOpsError
from .registry import create_price_source

logger = logging.getLogger(__name__)

# Create and subscribe flows pass ``now + LATEST_PRICE_OFFSET`` to ask for the
# current price; it is a signal, not a real expiry.
LATEST_PRICE_OFFSET = 86_400

SourceResolver = Callable[[FeedType], PriceUpdateSource]


def latest_signal(now: float) -> int:
    return int(now) + LATEST_PRICE_OFFSET


def reference_price(update: PriceUpdate, feed_decimals: int, linked_price_decimals: int) -> int:
    """Coarse, rounded-up reference price used to size approvals.

    The EMA price is reduced to a whole number of quote units with a ceiling,
    so any fractional price rounds up and the owner over-approves. The result
    is scaled to ``linked_price_decimals``.
    """

    raw = ema_price(update)
    scale = 10**feed_decimals
    price_rate = -(-raw // scale)
    return price_rate * 10**linked_price_decimals


class PriceOracleAdapter:
    """Fetch signed price updates for configured trading pairs."""

    def __init__(
        self,
        trading_pairs: Mapping[str, TradingPair],
        *,
        source_overrides: Mapping[FeedType, PriceUpdateSource] | None = None,
        resolver: SourceResolver = create_price_source,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._trading_pairs = trading_pairs
        self._resolver = resolver
        self._clock = clock
        self._sources: dict[FeedType, PriceUpdateSource] = {}
        if source_overrides:
            self._sources.update(source_overrides)

    def get_price_update(self, target_timestamp: int, trading_pair: str) -> PriceUpdate:
        """Return the latest update when ``target_timestamp`` is in the future,
        otherwise the update published exactly at ``target_timestamp``."""

        pair = self._trading_pairs.get(trading_pair)
        if pair is None or pair.price_feed is None:
            raise ConfigError(f"Price feed for {trading_pair} doesn't exist")
        feed = pair.price_feed
        if not feed.id:
            raise ConfigError(f"Price feed id for {trading_pair} is not set")
        try:
            feed_type = FeedType(feed.type)
        except ValueError as exc:
            raise ConfigError(f"Unsupported price feed type {feed.type!r} for {trading_pair}") from exc
        source = self._get_source(feed_type)

        try:
            if target_timestamp > self._clock():
                logger.debug("Fetching latest price update for %s", trading_pair)
                return source.get_latest_price_updates([feed.id])
            logger.debug("Fetching price update for %s at %s", trading_pair, target_timestamp)
            return source.get_price_updates_at_timestamp(int(target_timestamp), [feed.id])
        except OracleUnavailable:
            raise
        except VaultOpsError as exc:
            raise OracleUnavailable(f"Price update for {trading_pair} unavailable: {exc}") from exc

    def close(self) -> None:
        for source in self._sources.values():
            source.close()

    def _get_source(self, feed_type: FeedType) -> PriceUpdateSource:
        try:
            return self._sources[feed_type]
        except KeyError:
            source = self._resolver(feed_type)
            self._sources[feed_type] = source
            return source
