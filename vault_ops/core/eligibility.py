"""Eligibility predicates and grouping for multi-vault operations.

The predicates are shared by the single-vault and the batch paths so that a
vault filtered out of a batch is exactly a vault the single-vault command
would have refused.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from ..models.shared import VaultState
from ..models.vault import VaultData

# Vault getters read for each purpose; every value is coerced explicitly in
# :meth:`VaultFacts.from_reads`.
WITHDRAW_FIELDS = ("owner", "isBuyLow", "investmentToken", "linkedToken", "expiry", "state")
CANCEL_FIELDS = (
    "owner",
    "isBuyLow",
    "investmentToken",
    "linkedToken",
    "expiry",
    "state",
    "quantity",
    "depositTotal",
    "useCollateralPool",
    "lpCancelled",
    "cancellationFeeRate",
    "oraclePriceAtCreation",
)


@dataclass(frozen=True, slots=True)
class VaultFacts:
    """On-chain facts about one vault gathered in a read batch."""

    address: str
    owner: str
    is_buy_low: bool
    investment_token: str
    linked_token: str
    expiry: int
    state: int
    quantity: int = 0
    deposit_total: int = 0
    use_collateral_pool: bool = False
    lp_cancelled: bool = False
    cancellation_fee_rate: int = 0
    oracle_price_at_creation: int = 0
    account_balance: int | None = None
    vault_token_balance: int | None = None

    @classmethod
    def from_reads(cls, address: str, values: Mapping[str, Any]) -> "VaultFacts":
        balance = values.get("balances")
        return cls(
            address=address,
            owner=str(values["owner"]),
            is_buy_low=bool(values["isBuyLow"]),
            investment_token=str(values["investmentToken"]),
            linked_token=str(values["linkedToken"]),
            expiry=int(values["expiry"]),
            state=int(values["state"]),
            quantity=int(values.get("quantity", 0)),
            deposit_total=int(values.get("depositTotal", 0)),
            use_collateral_pool=bool(values.get("useCollateralPool", False)),
            lp_cancelled=bool(values.get("lpCancelled", False)),
            cancellation_fee_rate=int(values.get("cancellationFeeRate", 0)),
            oracle_price_at_creation=int(values.get("oraclePriceAtCreation", 0)),
            account_balance=None if balance is None else int(balance),
        )

    @property
    def base_token(self) -> str:
        return self.linked_token if self.is_buy_low else self.investment_token

    @property
    def quote_token(self) -> str:
        return self.investment_token if self.is_buy_low else self.linked_token

    @property
    def swept_token(self) -> str | None:
        """Token whose vault balance tells whether the LP already withdrew."""

        if self.state == VaultState.SETTLED_INVESTMENT:
            return self.investment_token
        if self.state == VaultState.SETTLED_LINKED:
            return self.linked_token
        return None

    def is_owned_by(self, account: str) -> bool:
        return self.owner.lower() == account.lower()


def withdraw_exclusion(facts: VaultFacts, *, account: str, is_lp: bool, now: float) -> str | None:
    """Return why ``account`` cannot withdraw from the vault, or ``None``."""

    if now * 1000 < facts.expiry * 1000:
        return f"vault {facts.address} is not yet available for withdrawal"
    if is_lp and not facts.is_owned_by(account):
        return f"account {account} is not the owner of the vault {facts.address}"
    if not is_lp and facts.is_owned_by(account):
        return f"account {account} is the owner of the vault {facts.address}"
    if is_lp:
        if facts.swept_token is not None and facts.vault_token_balance == 0:
            return "LP has been withdrawn from the vault"
    elif facts.account_balance is not None and facts.account_balance == 0:
        return f"account {account} has no balance in the vault"
    return None


def cancel_exclusion(facts: VaultFacts, *, account: str) -> str | None:
    """Return why the owner cannot cancel the vault, or ``None``."""

    if not facts.is_owned_by(account):
        return f"account {account} is not the owner of the vault {facts.address}"
    if facts.lp_cancelled:
        return "vault has already been cancelled"
    if facts.state != VaultState.OPEN:
        return f"vault is not open (state {facts.state})"
    if facts.use_collateral_pool and facts.deposit_total == 0:
        return "vault uses the collateral pool and has no deposits"
    return None


def group_vaults(vaults: Iterable[VaultData]) -> dict[str, list[VaultData]]:
    """Group vaults that can share one price attestation.

    One attestation and one publish time are valid only for a single
    (trading pair, expiry) pair, so vaults are never batched across groups.
    Insertion order of the first member decides group order.
    """

    groups: dict[str, list[VaultData]] = {}
    for vault in vaults:
        groups.setdefault(vault.group_key, []).append(vault)
    return groups
