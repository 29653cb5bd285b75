"""Protocols describing the remote ledger and its contract roles."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol, Sequence, runtime_checkable

from ...models.ledger import DecodedEvent, TxReceipt


class ContractRole(StrEnum):
    """External contract roles; each maps to one ABI."""

    FACTORY = "factory"
    ROUTER = "router"
    VAULT = "vault"
    TOKEN = "token"
    COLLATERAL_POOL = "collateral_pool"
    BATCH_MANAGER = "batch_manager"
    PRICE_FEED = "price_feed"


@dataclass(frozen=True, slots=True)
class ReadCall:
    """A side-effect-free contract call.

    ``function`` is either a plain name or a full signature such as
    ``getDeployedVaults(uint256,uint256)`` for overloaded functions.
    """

    role: ContractRole
    address: str
    function: str
    args: tuple[Any, ...] = ()


@dataclass(frozen=True, slots=True)
class WriteCall:
    """A state-changing contract call to be signed and submitted."""

    role: ContractRole
    address: str
    function: str
    args: tuple[Any, ...] = ()
    value: int = 0
    gas_limit: int | None = None


@dataclass(frozen=True, slots=True)
class ReadResult:
    """Outcome of one read; exactly one of ``value``/``error`` is meaningful."""

    call: ReadCall
    value: Any = None
    error: str | None = None
    cause: BaseException | None = field(default=None, compare=False)

    @property
    def ok(self) -> bool:
        return self.error is None


@runtime_checkable
class TransactionSigner(Protocol):
    """Wallet able to sign transactions for a single account."""

    @property
    def address(self) -> str:
        """Checksummed account address."""

    def sign_transaction(self, transaction: dict[str, Any]) -> bytes:
        """Return the raw signed transaction bytes."""


@runtime_checkable
class LedgerBackend(Protocol):
    """Network-specific transport for contract reads and writes."""

    @property
    def account(self) -> str:
        """Address of the account that signs writes."""

    def execute_reads(self, calls: Sequence[ReadCall]) -> list[ReadResult]:
        """Execute independent reads, coalescing them into one round trip when possible."""

    def transact(self, call: WriteCall) -> TxReceipt:
        """Sign, submit and wait for ``call``; raise ``LedgerCallError`` on revert."""

    def decode_events(self, role: ContractRole, receipt: TxReceipt) -> list[DecodedEvent]:
        """Decode every receipt log that matches an event of ``role``'s ABI."""

    def creation_timestamp(self, address: str) -> int | None:
        """Timestamp of the block holding the first log emitted by ``address``."""


# Role interfaces ----------------------------------------------------------


class TokenContract(Protocol):
    address: str

    def read(self, function: str, *args: Any) -> ReadCall: ...

    def decimals(self) -> int: ...

    def symbol(self) -> str: ...

    def name(self) -> str: ...

    def balance_of(self, account: str) -> int: ...

    def approve(self, spender: str, amount: int) -> TxReceipt: ...


class VaultContract(Protocol):
    address: str

    def read(self, function: str, *args: Any) -> ReadCall:
        """Describe a getter read for use in a read batch."""

    def balances(self, account: str) -> ReadCall: ...

    def lp_cancel(self) -> TxReceipt: ...

    def lp_withdraw(self, update_data: Sequence[bytes], price_options: tuple, *, value: int) -> TxReceipt: ...

    def withdraw(self, update_data: Sequence[bytes], price_options: tuple, *, value: int) -> TxReceipt: ...

    def adjust_yield_value(self, yield_value: int) -> TxReceipt: ...


class FactoryContract(Protocol):
    address: str

    def trading_fee_rate(self) -> int: ...

    def create_vault(self, params: tuple, update_data: Sequence[bytes], *, value: int, gas_limit: int) -> TxReceipt: ...

    def deployed_vaults(self, offset: int | None = None, limit: int | None = None) -> list[str]: ...

    def events(self, receipt: TxReceipt) -> list[DecodedEvent]: ...


class RouterContract(Protocol):
    address: str

    def deposit(self, vault: str, amount: int, update_data: Sequence[bytes], *, value: int) -> TxReceipt: ...


class CollateralPoolContract(Protocol):
    address: str

    def approve_vault(self, vault: str, approve: bool) -> TxReceipt: ...


class BatchManagerContract(Protocol):
    address: str

    def lp_withdraw_vaults(
        self, vaults: Sequence[str], update_data: Sequence[bytes], price_options: tuple, *, value: int
    ) -> TxReceipt: ...

    def withdraw_vaults(
        self, vaults: Sequence[str], update_data: Sequence[bytes], price_options: tuple, *, value: int
    ) -> TxReceipt: ...

    def lp_cancel_vaults(self, vaults: Sequence[str]) -> TxReceipt: ...


class PriceFeedContract(Protocol):
    address: str

    def get_update_fee(self, update_data: Sequence[bytes]) -> int: ...
