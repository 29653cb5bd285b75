"""Vault lifecycle operations.

This module exposes the public API: the orchestrator and its request types,
the ledger and oracle adapters it is wired from, configuration loading and
the domain models and errors shared by all of them.
"""

from .config import AppConfig, BasicSettings, NetworkConfig, load_config, parse_config
from .contracts.ledger.interface import ContractRole, LedgerBackend, ReadCall, ReadResult, WriteCall
from .contracts.oracle.interface import PriceUpdateSource
from .core.errors import (
    ConfigError,
    EventNotFound,
    InsufficientBalance,
    LedgerCallError,
    OracleUnavailable,
    RetryExhausted,
    ValidationError,
    VaultOpsError,
    WriteRejected,
)
from .core.ledger import Ledger, ReadBatch
from .core.oracle import PriceOracleAdapter
from .core.orchestrator import RetryPolicy, VaultOrchestrator
from .core.queries import CreateVaultRequest
from .core.registry import create_price_source, register_price_source
from .models.shared import Direction, FeedType, PriceFeedConfig, TradingPair, VaultState
from .models.vault import OperationOutcome, OutcomeStatus, VaultCreationParams, VaultData, VaultSnapshot

__all__ = [
    "AppConfig",
    "BasicSettings",
    "NetworkConfig",
    "load_config",
    "parse_config",
    "ContractRole",
    "LedgerBackend",
    "ReadCall",
    "ReadResult",
    "WriteCall",
    "PriceUpdateSource",
    "Ledger",
    "ReadBatch",
    "PriceOracleAdapter",
    "VaultOrchestrator",
    "RetryPolicy",
    "CreateVaultRequest",
    "register_price_source",
    "create_price_source",
    "Direction",
    "FeedType",
    "PriceFeedConfig",
    "TradingPair",
    "VaultState",
    "OperationOutcome",
    "OutcomeStatus",
    "VaultCreationParams",
    "VaultData",
    "VaultSnapshot",
    "VaultOpsError",
    "ConfigError",
    "ValidationError",
    "InsufficientBalance",
    "OracleUnavailable",
    "EventNotFound",
    "WriteRejected",
    "RetryExhausted",
    "LedgerCallError",
]
