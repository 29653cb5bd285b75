"""Protocols describing price attestation sources."""

from __future__ import annotations

from typing import ClassVar, Protocol, Sequence, runtime_checkable

from ...models.oracle import PriceUpdate
from ...models.shared import FeedType


@runtime_checkable
class PriceUpdateSource(Protocol):
    """HTTP client able to serve signed price updates for a set of feed ids."""

    feed_type: ClassVar[FeedType]

    def get_latest_price_updates(self, ids: Sequence[str]) -> PriceUpdate:
        """Return the most recent update available for the requested feeds."""

    def get_price_updates_at_timestamp(self, publish_time: int, ids: Sequence[str]) -> PriceUpdate:
        """Return the update published at ``publish_time`` (unix seconds)."""

    def close(self) -> None:
        """Release any pooled connections."""
