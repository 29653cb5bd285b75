"""Typed access to the remote ledger with scoped read batching.

A :class:`Ledger` wraps one network-specific :class:`LedgerBackend` and hands
out role adapters that are constructed once per address. Reads that have no
mutation between them can be coalesced with :meth:`Ledger.read_batch`::

    with ledger.read_batch() as batch:
        owner = batch.add(vault.read("owner"))
        expiry = batch.add(vault.read("expiry"))
    owner.value, expiry.value

The batch executes when the ``with`` block exits. Only one batch may be open
at a time and no write may be issued while it is open.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from ..contracts.ledger.interface import (
    BatchManagerContract,
    CollateralPoolContract,
    ContractRole,
    FactoryContract,
    LedgerBackend,
    PriceFeedContract,
    ReadCall,
    ReadResult,
    RouterContract,
    TokenContract,
    VaultContract,
    WriteCall,
)
from ..models.ledger import DecodedEvent, TxReceipt
from .errors import ConfigError, LedgerCallError

logger = logging.getLogger(__name__)


class PendingRead:
    """Handle for a read queued in a :class:`ReadBatch`."""

    __slots__ = ("call", "_result")

    def __init__(self, call: ReadCall) -> None:
        self.call = call
        self._result: ReadResult | None = None

    @property
    def ok(self) -> bool:
        return self._result is not None and self._result.ok

    @property
    def value(self) -> Any:
        if self._result is None:
            raise RuntimeError(f"{self.call.function} was read before its batch executed")
        if not self._result.ok:
            raise LedgerCallError(self._result.error or "read failed", self._result.cause)
        return self._result.value

    @property
    def error(self) -> str | None:
        return None if self._result is None else self._result.error

    def _resolve(self, result: ReadResult) -> None:
        self._result = result


class ReadBatch:
    """Scoped window of independent reads executed in one round trip."""

    def __init__(self, ledger: "Ledger") -> None:
        self._ledger = ledger
        self._pending: list[PendingRead] = []
        self._executed = False

    def add(self, call: ReadCall) -> PendingRead:
        if self._executed:
            raise RuntimeError("Cannot add reads to a batch that already executed")
        handle = PendingRead(call)
        self._pending.append(handle)
        return handle

    def __len__(self) -> int:
        return len(self._pending)

    def __enter__(self) -> "ReadBatch":
        self._ledger._open_batch(self)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None and self._pending:
                results = self._ledger.backend.execute_reads([handle.call for handle in self._pending])
                if len(results) != len(self._pending):
                    raise LedgerCallError(
                        f"Batched read returned {len(results)} results for {len(self._pending)} calls"
                    )
                for handle, result in zip(self._pending, results):
                    handle._resolve(result)
            self._executed = True
        finally:
            self._ledger._close_batch(self)


class _RoleAdapter:
    role: ContractRole

    def __init__(self, ledger: "Ledger", address: str) -> None:
        self._ledger = ledger
        self.address = address

    def read(self, function: str, *args: Any) -> ReadCall:
        """Describe a read for use in a :class:`ReadBatch` or :meth:`Ledger.call`."""

        return ReadCall(self.role, self.address, function, tuple(args))

    def _call(self, function: str, *args: Any) -> Any:
        return self._ledger.call(self.read(function, *args))

    def _transact(self, function: str, *args: Any, value: int = 0, gas_limit: int | None = None) -> TxReceipt:
        call = WriteCall(self.role, self.address, function, tuple(args), value=value, gas_limit=gas_limit)
        return self._ledger.transact(call)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address})"


class TokenAdapter(_RoleAdapter, TokenContract):
    role = ContractRole.TOKEN

    def decimals(self) -> int:
        return int(self._call("decimals"))

    def symbol(self) -> str:
        return str(self._call("symbol"))

    def name(self) -> str:
        return str(self._call("name"))

    def balance_of(self, account: str) -> int:
        return int(self._call("balanceOf", account))

    def approve(self, spender: str, amount: int) -> TxReceipt:
        return self._transact("approve", spender, amount)


class VaultAdapter(_RoleAdapter, VaultContract):
    role = ContractRole.VAULT

    def balances(self, account: str) -> ReadCall:
        return self.read("balances", account)

    def lp_cancel(self) -> TxReceipt:
        return self._transact("lpCancel")

    def lp_withdraw(self, update_data: Sequence[bytes], price_options: tuple, *, value: int) -> TxReceipt:
        return self._transact("lpWithdraw", list(update_data), price_options, value=value)

    def withdraw(self, update_data: Sequence[bytes], price_options: tuple, *, value: int) -> TxReceipt:
        return self._transact("withdraw", list(update_data), price_options, value=value)

    def adjust_yield_value(self, yield_value: int) -> TxReceipt:
        return self._transact("adjustYieldValue", yield_value)


class FactoryAdapter(_RoleAdapter, FactoryContract):
    role = ContractRole.FACTORY

    def trading_fee_rate(self) -> int:
        params = self._call("getPresetFeeParams")
        # web3 returns structs as tuples; some backends return mappings.
        if isinstance(params, dict):
            return int(params["tradingFeeRate"])
        return int(params[0])

    def create_vault(self, params: tuple, update_data: Sequence[bytes], *, value: int, gas_limit: int) -> TxReceipt:
        return self._transact("createVault", params, list(update_data), value=value, gas_limit=gas_limit)

    def deployed_vaults(self, offset: int | None = None, limit: int | None = None) -> list[str]:
        if offset is None and limit is None:
            return [str(item) for item in self._call("getDeployedVaults()")]
        raw = self._call("getDeployedVaults(uint256,uint256)", offset or 0, limit or 0)
        return [str(item) for item in raw]

    def events(self, receipt: TxReceipt) -> list[DecodedEvent]:
        return self._ledger.backend.decode_events(self.role, receipt)


class RouterAdapter(_RoleAdapter, RouterContract):
    role = ContractRole.ROUTER

    def deposit(self, vault: str, amount: int, update_data: Sequence[bytes], *, value: int) -> TxReceipt:
        return self._transact("deposit", vault, amount, list(update_data), value=value)


class CollateralPoolAdapter(_RoleAdapter, CollateralPoolContract):
    role = ContractRole.COLLATERAL_POOL

    def approve_vault(self, vault: str, approve: bool) -> TxReceipt:
        return self._transact("approveVault", vault, approve)


class BatchManagerAdapter(_RoleAdapter, BatchManagerContract):
    role = ContractRole.BATCH_MANAGER

    def lp_withdraw_vaults(
        self, vaults: Sequence[str], update_data: Sequence[bytes], price_options: tuple, *, value: int
    ) -> TxReceipt:
        return self._transact("lpWithdrawVaults", list(vaults), list(update_data), price_options, value=value)

    def withdraw_vaults(
        self, vaults: Sequence[str], update_data: Sequence[bytes], price_options: tuple, *, value: int
    ) -> TxReceipt:
        return self._transact("withdrawVaults", list(vaults), list(update_data), price_options, value=value)

    def lp_cancel_vaults(self, vaults: Sequence[str]) -> TxReceipt:
        return self._transact("lpCancelVaults", list(vaults))


class PriceFeedAdapter(_RoleAdapter, PriceFeedContract):
    role = ContractRole.PRICE_FEED

    def get_update_fee(self, update_data: Sequence[bytes]) -> int:
        return int(self._call("getUpdateFee", list(update_data)))


class Ledger:
    """Entry point the orchestrator uses for every on-chain read and write."""

    def __init__(
        self,
        backend: LedgerBackend,
        *,
        factory: str | None = None,
        router: str | None = None,
        collateral_pool: str | None = None,
        batch_manager: str | None = None,
        price_feed: str | None = None,
    ) -> None:
        self.backend = backend
        self._addresses = {
            ContractRole.FACTORY: factory,
            ContractRole.ROUTER: router,
            ContractRole.COLLATERAL_POOL: collateral_pool,
            ContractRole.BATCH_MANAGER: batch_manager,
            ContractRole.PRICE_FEED: price_feed,
        }
        self._adapters: dict[tuple[ContractRole, str], _RoleAdapter] = {}
        self._batch: ReadBatch | None = None

    @property
    def account(self) -> str:
        return self.backend.account

    # Role adapters -----------------------------------------------------
    def factory(self) -> FactoryAdapter:
        return self._fixed(ContractRole.FACTORY, FactoryAdapter)

    def router(self) -> RouterAdapter:
        return self._fixed(ContractRole.ROUTER, RouterAdapter)

    def collateral_pool(self) -> CollateralPoolAdapter:
        return self._fixed(ContractRole.COLLATERAL_POOL, CollateralPoolAdapter)

    def batch_manager(self) -> BatchManagerAdapter:
        return self._fixed(ContractRole.BATCH_MANAGER, BatchManagerAdapter)

    def price_feed(self) -> PriceFeedAdapter:
        return self._fixed(ContractRole.PRICE_FEED, PriceFeedAdapter)

    def vault(self, address: str) -> VaultAdapter:
        return self._adapter(VaultAdapter, address)

    def token(self, address: str) -> TokenAdapter:
        return self._adapter(TokenAdapter, address)

    # Calls -------------------------------------------------------------
    def read_batch(self) -> ReadBatch:
        return ReadBatch(self)

    @property
    def batch_open(self) -> bool:
        return self._batch is not None

    def call(self, read: ReadCall) -> Any:
        (result,) = self.backend.execute_reads([read])
        if not result.ok:
            raise LedgerCallError(result.error or "read failed", result.cause)
        return result.value

    def transact(self, call: WriteCall) -> TxReceipt:
        if self._batch is not None:
            raise RuntimeError(f"{call.function} issued while a read batch is open")
        logger.debug("Submitting %s on %s %s", call.function, call.role, call.address)
        return self.backend.transact(call)

    def creation_timestamp(self, address: str) -> int | None:
        return self.backend.creation_timestamp(address)

    # Internal ----------------------------------------------------------
    def _open_batch(self, batch: ReadBatch) -> None:
        if self._batch is not None:
            raise RuntimeError("A read batch is already open on this ledger")
        self._batch = batch

    def _close_batch(self, batch: ReadBatch) -> None:
        if self._batch is batch:
            self._batch = None

    def _fixed(self, role: ContractRole, adapter_cls: type) -> Any:
        address = self._addresses.get(role)
        if not address:
            raise ConfigError(f"{role.value} address is not set")
        return self._adapter(adapter_cls, address)

    def _adapter(self, adapter_cls: type, address: str) -> Any:
        key = (adapter_cls.role, address.lower())
        try:
            return self._adapters[key]
        except KeyError:
            adapter = adapter_cls(self, address)
            self._adapters[key] = adapter
            return adapter
