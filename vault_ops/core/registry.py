"""Registry utilities for mapping feed types to price source factories."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import MutableMapping

from ..contracts.oracle.interface import PriceUpdateSource
from ..models.shared import FeedType
from .errors import ConfigError

PriceSourceFactory = Callable[..., PriceUpdateSource]


class PriceSourceRegistry:
    """In-memory registry for price attestation sources."""

    def __init__(self) -> None:
        self._factories: MutableMapping[FeedType, PriceSourceFactory] = {}

    def register(self, feed_type: FeedType, factory: PriceSourceFactory, *, replace: bool = False) -> None:
        """Bind ``factory`` to ``feed_type``; rebinding needs ``replace=True``."""

        if not replace and feed_type in self._factories:
            raise ValueError(f"Price source for {feed_type} already registered")
        self._factories[feed_type] = factory

    def create(self, feed_type: FeedType, **kwargs) -> PriceUpdateSource:
        """Build a source, forwarding ``kwargs`` (base URL, timeout, session)."""

        try:
            factory = self._factories[feed_type]
        except KeyError as exc:
            raise ConfigError(f"No price source registered for feed type {feed_type}") from exc
        return factory(**kwargs)

    def snapshot(self) -> Mapping[FeedType, PriceSourceFactory]:
        """Copy of the current bindings."""

        return dict(self._factories)


_registry = PriceSourceRegistry()


def register_price_source(feed_type: FeedType, factory: PriceSourceFactory, *, replace: bool = False) -> None:
    """Bind a source factory in the process-wide registry."""

    _registry.register(feed_type, factory, replace=replace)


def create_price_source(feed_type: FeedType, **kwargs) -> PriceUpdateSource:
    """Build a source from the process-wide registry."""

    return _registry.create(feed_type, **kwargs)


def registered_price_sources() -> Mapping[FeedType, PriceSourceFactory]:
    """Feed types that currently have a source bound."""

    return _registry.snapshot()
