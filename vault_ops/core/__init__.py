"""Core orchestration, finance and adapter utilities."""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    "VaultOrchestrator",
    "RetryPolicy",
    "CreateVaultRequest",
    "Ledger",
    "ReadBatch",
    "PriceOracleAdapter",
    "register_price_source",
    "create_price_source",
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

_lazy_targets = {
    "VaultOrchestrator": ("orchestrator", "VaultOrchestrator"),
    "RetryPolicy": ("orchestrator", "RetryPolicy"),
    "CreateVaultRequest": ("queries", "CreateVaultRequest"),
    "Ledger": ("ledger", "Ledger"),
    "ReadBatch": ("ledger", "ReadBatch"),
    "PriceOracleAdapter": ("oracle", "PriceOracleAdapter"),
    "register_price_source": ("registry", "register_price_source"),
    "create_price_source": ("registry", "create_price_source"),
    "VaultOpsError": ("errors", "VaultOpsError"),
    "ConfigError": ("errors", "ConfigError"),
    "ValidationError": ("errors", "ValidationError"),
    "InsufficientBalance": ("errors", "InsufficientBalance"),
    "OracleUnavailable": ("errors", "OracleUnavailable"),
    "EventNotFound": ("errors", "EventNotFound"),
    "WriteRejected": ("errors", "WriteRejected"),
    "RetryExhausted": ("errors", "RetryExhausted"),
    "LedgerCallError": ("errors", "LedgerCallError"),
}


def __getattr__(name: str) -> Any:
    try:
        module_name, attr_name = _lazy_targets[name]
    except KeyError as exc:
        raise AttributeError(f"module 'vault_ops.core' has no attribute {name!r}") from exc
    module = import_module(f"{__name__}.{module_name}")
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
