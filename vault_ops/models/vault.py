"""Vault-level data contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from .shared import ZERO_ADDRESS, Direction


@dataclass(frozen=True, slots=True)
class VaultCreationParams:
    """Arguments of ``Factory.createVault``; built once and consumed once."""

    owner: str
    base_token: str
    quote_token: str
    expiry: int
    linked_oracle_price: int
    yield_value: int
    is_buy_low: bool
    quantity: int
    use_collateral_pool: bool
    use_native_token: bool = False
    vault_series_version: int = 0
    signer: str = ZERO_ADDRESS

    @property
    def investment_token(self) -> str:
        return self.quote_token if self.is_buy_low else self.base_token

    @property
    def linked_token(self) -> str:
        return self.base_token if self.is_buy_low else self.quote_token

    def as_contract_struct(self) -> tuple[Any, ...]:
        """Return the tuple layout expected by the factory ABI."""

        return (
            self.owner,
            self.base_token,
            self.quote_token,
            self.expiry,
            self.linked_oracle_price,
            self.yield_value,
            self.is_buy_low,
            self.quantity,
            self.use_collateral_pool,
            self.use_native_token,
            self.vault_series_version,
            self.signer,
        )


@dataclass(frozen=True, slots=True)
class VaultData:
    """Batch bookkeeping entry produced while filtering many vaults."""

    vault_address: str
    trading_pair: str
    expiry: int
    is_lp: bool

    @property
    def group_key(self) -> str:
        """Vaults sharing this key can share one price attestation."""

        return f"{self.trading_pair}-{self.expiry}-{'lp' if self.is_lp else 'subscriber'}"


@dataclass(frozen=True, slots=True)
class VaultSnapshot:
    """Human-oriented view of a vault used by the reporting layer."""

    address: str
    base_token: str
    quote_token: str
    trading_pair: str
    linked_price: str
    yield_percentage: str
    quantity: str
    remaining_quantity: str
    state: int
    expiry: datetime
    direction: Direction
    creation_date: datetime | None


class OutcomeStatus(StrEnum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class OperationOutcome:
    """Reported result of one operation on one vault (or one batch group)."""

    operation: str
    vault: str
    status: OutcomeStatus
    detail: str = ""
    vaults: tuple[str, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCEEDED
