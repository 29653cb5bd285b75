"""Domain models for vault operations."""

from .ledger import DecodedEvent, TxReceipt
from .oracle import PriceUpdate, ema_price, update_payload
from .shared import ZERO_ADDRESS, Direction, FeedType, PriceFeedConfig, TradingPair, VaultState
from .vault import (
    OperationOutcome,
    OutcomeStatus,
    VaultCreationParams,
    VaultData,
    VaultSnapshot,
)

__all__ = [
    "DecodedEvent",
    "Direction",
    "FeedType",
    "OperationOutcome",
    "OutcomeStatus",
    "PriceFeedConfig",
    "PriceUpdate",
    "TradingPair",
    "TxReceipt",
    "VaultCreationParams",
    "VaultData",
    "VaultSnapshot",
    "VaultState",
    "ZERO_ADDRESS",
    "ema_price",
    "update_payload",
]
