"""Vault lifecycle orchestration.

:class:`VaultOrchestrator` sequences finance computations, oracle
attestations and ledger calls for each user-facing operation. Single-vault
writes return an :class:`OperationOutcome`; multi-vault writes return one
outcome per skipped vault and one per submitted group.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from functools import partial
from typing import Any

from ..config import AppConfig, NetworkConfig
from ..models.ledger import TxReceipt
from ..models.oracle import update_payload
from ..models.shared import Direction, TradingPair
from ..models.vault import OperationOutcome, OutcomeStatus, VaultCreationParams, VaultData, VaultSnapshot
from .eligibility import (
    CANCEL_FIELDS,
    WITHDRAW_FIELDS,
    VaultFacts,
    cancel_exclusion,
    group_vaults,
    withdraw_exclusion,
)
from .errors import (
    ConfigError,
    EventNotFound,
    InsufficientBalance,
    LedgerCallError,
    RetryExhausted,
    ValidationError,
    VaultOpsError,
    WriteRejected,
)
from .finance import (
    YIELD_DECIMALS,
    calculate_cancellation_fee,
    calculate_token_amounts,
    format_units,
    linked_price_decimals,
    parse_units,
)
from .ledger import Ledger
from .oracle import PriceOracleAdapter, latest_signal, reference_price
from .queries import CreateVaultRequest
from .registry import create_price_source

logger = logging.getLogger(__name__)

CREATE_VAULT_GAS_LIMIT = 3_000_000
VAULT_CREATED_EVENT = "VaultCreated"
NO_VAULTS_MESSAGE = "No vaults to process"


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    attempts: int = 3
    delay: float = 2.0

    def __post_init__(self) -> None:
        if self.attempts <= 0:
            raise ValueError("attempts must be a positive integer")
        if self.delay < 0:
            raise ValueError("delay must not be negative")


COLLATERAL_APPROVAL_RETRY = RetryPolicy()


def price_options(publish_time: int) -> tuple[int, int, bool, int]:
    """Price selection struct pinning settlement to ``publish_time``."""

    return (int(publish_time), 0, False, 0)


class VaultOrchestrator:
    """Entry point consumed by the CLI and SDK callers."""

    def __init__(
        self,
        network: NetworkConfig,
        ledger: Ledger,
        oracle: PriceOracleAdapter,
        *,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
        retry_policy: RetryPolicy = COLLATERAL_APPROVAL_RETRY,
    ) -> None:
        self._network = network
        self._ledger = ledger
        self._oracle = oracle
        self._clock = clock
        self._sleep = sleep
        self._retry_policy = retry_policy

    @classmethod
    def from_config(cls, config: AppConfig, network_name: str) -> "VaultOrchestrator":
        """Wire the web3 ledger and the Hermes price source for ``network_name``."""

        from ..ledgers.evm.web3_backend import Web3Backend
        from ..oracles.pyth import hermes  # noqa: F401  registers the Hermes source

        network = config.network(network_name)
        network.validate()
        settings = config.settings
        backend = Web3Backend.from_config(network, settings)
        ledger = Ledger(
            backend,
            factory=network.factory,
            router=network.router,
            collateral_pool=network.collateral_pool,
            batch_manager=network.batch_manager,
            price_feed=network.pyth_price_feed,
        )
        oracle = PriceOracleAdapter(
            network.trading_pairs,
            resolver=lambda feed_type: create_price_source(
                feed_type,
                base_url=settings.hermes_api_base_url,
                timeout=settings.request_timeout,
            ),
        )
        return cls(network, ledger, oracle)

    @property
    def account(self) -> str:
        return self._ledger.account

    def close(self) -> None:
        self._oracle.close()

    # Creation ------------------------------------------------------------
    def create_vault(self, request: CreateVaultRequest) -> OperationOutcome:
        """Create a vault and fund (or pool-approve) the owner side."""

        pair = self._validated_pair(request.trading_pair)
        feed_decimals = int(pair.price_feed.decimals)
        base_token, quote_token = pair.base_token, pair.quote_token

        with self._ledger.read_batch() as batch:
            base_handle = batch.add(self._ledger.token(base_token).read("decimals"))
            quote_handle = batch.add(self._ledger.token(quote_token).read("decimals"))
        base_decimals, quote_decimals = int(base_handle.value), int(quote_handle.value)
        investment_decimals = quote_decimals if request.is_buy_low else base_decimals
        price_decimals = linked_price_decimals(base_decimals, quote_decimals)

        params = VaultCreationParams(
            owner=self.account,
            base_token=base_token,
            quote_token=quote_token,
            expiry=int(request.expiry),
            linked_oracle_price=parse_units(request.linked_price, feed_decimals),
            yield_value=parse_units(request.yield_percentage, YIELD_DECIMALS),
            is_buy_low=request.is_buy_low,
            quantity=parse_units(request.quantity, investment_decimals),
            use_collateral_pool=request.use_collateral_pool,
        )
        linked_price = parse_units(request.linked_price, price_decimals)

        factory = self._ledger.factory()
        fee_rate = factory.trading_fee_rate()
        update = self._oracle.get_price_update(latest_signal(self._clock()), pair.symbol)
        update_data = [update_payload(update)]
        oracle_price = reference_price(update, feed_decimals, price_decimals)

        if not params.use_collateral_pool:
            amounts = calculate_token_amounts(
                params.quantity,
                params.yield_value,
                params.is_buy_low,
                fee_rate,
                oracle_price,
                linked_price,
            )
            required = [
                (params.linked_token, amounts.linked_token_amount),
                (params.investment_token, amounts.investment_token_amount),
            ]
            self._require_balances(required)
            self._approve_concurrently(required, factory.address)

        update_fee = self._ledger.price_feed().get_update_fee(update_data)
        outcome = self._submit(
            "createVault",
            pair.symbol,
            lambda: factory.create_vault(
                params.as_contract_struct(),
                update_data,
                value=update_fee,
                gas_limit=CREATE_VAULT_GAS_LIMIT,
            ),
            receipt_hook=self._created_vault_address,
        )
        if not outcome.ok or not params.use_collateral_pool:
            return outcome
        self._approve_collateral_with_retry(outcome.vault)
        return outcome

    def _validated_pair(self, symbol: str | None) -> TradingPair:
        if not symbol:
            raise ConfigError("tradingPair is not set")
        pair = self._network.trading_pairs.get(symbol)
        if pair is None:
            raise ValidationError(f"tradingPair {symbol} is not valid")
        if not pair.base_token:
            raise ConfigError("baseToken is not set")
        if not pair.quote_token:
            raise ConfigError("quoteToken is not set")
        if pair.price_feed is None or pair.price_feed.decimals is None:
            raise ConfigError("decimals is not set")
        return pair

    def _created_vault_address(self, receipt: TxReceipt) -> str:
        for event in self._ledger.factory().events(receipt):
            if event.name == VAULT_CREATED_EVENT:
                address = str(event.args["vaultAddress"])
                logger.info("Vault created: %s", address)
                return address
        raise EventNotFound(f"{VAULT_CREATED_EVENT} event not found in transaction {receipt.tx_hash}")

    def _approve_collateral_with_retry(self, vault: str) -> TxReceipt:
        pool = self._ledger.collateral_pool()
        policy = self._retry_policy
        last_error: VaultOpsError | None = None
        for attempt in range(1, policy.attempts + 1):
            try:
                receipt = pool.approve_vault(vault, True)
            except LedgerCallError as exc:
                last_error = exc
            else:
                if receipt.succeeded:
                    logger.info("CollateralPool approved vault %s", vault)
                    return receipt
                last_error = WriteRejected(f"approveVault for {vault} mined with status {receipt.status}")
            logger.warning(
                "CollateralPool approval attempt %d/%d for %s failed: %s",
                attempt,
                policy.attempts,
                vault,
                last_error,
            )
            if attempt < policy.attempts:
                self._sleep(policy.delay)
        raise RetryExhausted(
            f"CollateralPool approval for {vault} failed after {policy.attempts} attempts: {last_error}",
            last_error,
        ) from last_error

    # Single vault writes -------------------------------------------------
    def cancel_vault(self, address: str) -> OperationOutcome:
        vault = self._ledger.vault(address)
        values = self._read_fields(address, CANCEL_FIELDS)
        facts = VaultFacts.from_reads(address, values)
        self._approve_cancellation_fee(facts)
        return self._submit("cancelVault", address, vault.lp_cancel)

    def subscribe_vault(self, address: str, amount: str) -> OperationOutcome:
        vault = self._ledger.vault(address)
        router = self._ledger.router()
        values = self._read_fields(address, ("isBuyLow", "investmentToken", "linkedToken"))
        is_buy_low = bool(values["isBuyLow"])
        investment_token = str(values["investmentToken"])
        linked_token = str(values["linkedToken"])

        decimals = self._ledger.token(investment_token).decimals()
        deposit_amount = parse_units(amount, decimals)
        self._approve_erc20(investment_token, router.address, deposit_amount)

        symbol = self._pair_symbol(
            linked_token if is_buy_low else investment_token,
            investment_token if is_buy_low else linked_token,
        )
        update_data, update_fee = self._price_update(latest_signal(self._clock()), symbol)
        return self._submit(
            "subscribeVault",
            vault.address,
            lambda: router.deposit(vault.address, deposit_amount, update_data, value=update_fee),
        )

    def withdraw_vault(self, address: str, check_owner: bool) -> OperationOutcome:
        """Withdraw as the LP (``check_owner``) or as a subscriber."""

        operation = "lpWithdrawVault" if check_owner else "withdrawVault"
        facts, unreadable = self._collect_facts([address], WITHDRAW_FIELDS, with_balances=True, is_lp=check_owner)
        if address in unreadable:
            return self._skip(operation, address, unreadable[address])
        (vault_facts,) = facts
        reason = withdraw_exclusion(vault_facts, account=self.account, is_lp=check_owner, now=self._clock())
        if reason is not None:
            return self._skip(operation, address, reason)

        symbol = self._pair_symbol(vault_facts.base_token, vault_facts.quote_token)
        update_data, update_fee = self._price_update(vault_facts.expiry, symbol)
        options = price_options(vault_facts.expiry)
        vault = self._ledger.vault(address)
        write = vault.lp_withdraw if check_owner else vault.withdraw
        return self._submit(operation, address, lambda: write(update_data, options, value=update_fee))

    def adjust_vault_yield(self, address: str, new_yield_percentage: str) -> OperationOutcome:
        """Change the yield; approve only the extra owner deposit it requires."""

        new_yield = parse_units(new_yield_percentage, YIELD_DECIMALS)
        vault = self._ledger.vault(address)
        values = self._read_fields(
            address,
            (
                "useCollateralPool",
                "isBuyLow",
                "investmentToken",
                "linkedToken",
                "quantity",
                "depositTotal",
                "yieldValue",
                "tradingFeeRate",
                "oraclePriceAtCreation",
                "linkedPrice",
            ),
        )
        if not bool(values["useCollateralPool"]):
            self._approve_yield_delta(address, values, new_yield)
        return self._submit("adjustVaultYield", address, lambda: vault.adjust_yield_value(new_yield))

    def _approve_yield_delta(self, address: str, values: dict[str, Any], new_yield: int) -> None:
        is_buy_low = bool(values["isBuyLow"])
        quantity = int(values["quantity"])
        deposit_total = int(values["depositTotal"])
        current_yield = int(values["yieldValue"])
        fee_rate = int(values["tradingFeeRate"])
        oracle_price = int(values["oraclePriceAtCreation"])
        linked_price = int(values["linkedPrice"])
        if is_buy_low and linked_price == 0:
            raise ValidationError(f"Vault {address} reports a zero linked price")

        def amounts(size: int, yield_value: int):
            return calculate_token_amounts(size, yield_value, is_buy_low, fee_rate, oracle_price, linked_price)

        current = amounts(quantity, current_yield)
        filled = amounts(deposit_total, current_yield)
        unfilled = amounts(quantity - deposit_total, new_yield)
        deltas = [
            (
                str(values["linkedToken"]),
                filled.linked_token_amount + unfilled.linked_token_amount - current.linked_token_amount,
            ),
            (
                str(values["investmentToken"]),
                filled.investment_token_amount + unfilled.investment_token_amount - current.investment_token_amount,
            ),
        ]
        extra = [(token, delta) for token, delta in deltas if delta > 0]
        if not extra:
            logger.info("No additional approval needed to adjust yield of %s", address)
            return
        self._require_balances(extra)
        for token, delta in extra:
            self._approve(token, address, delta)

    def approve_vault(self, address: str, approve: bool) -> OperationOutcome:
        vault = self._ledger.vault(address)
        if not bool(self._ledger.call(vault.read("useCollateralPool"))):
            logger.error("Vault %s does not use the collateral pool", address)
            return OperationOutcome(
                "approveVault", address, OutcomeStatus.FAILED, "vault does not use the collateral pool"
            )
        pool = self._ledger.collateral_pool()
        return self._submit("approveVault", address, lambda: pool.approve_vault(address, approve))

    # Multi-vault writes --------------------------------------------------
    def withdraw_multiple_vaults(
        self,
        addresses: Sequence[str],
        check_owner: bool,
        bypass_check: bool = False,
    ) -> list[OperationOutcome]:
        operation = "lpWithdrawMultipleVaults" if check_owner else "withdrawMultipleVaults"
        addresses = list(dict.fromkeys(addresses))
        if not addresses:
            logger.info(NO_VAULTS_MESSAGE)
            return []

        if bypass_check:
            first = self._first_vault_data(addresses[0], is_lp=check_owner)
            group = [replace(first, vault_address=address) for address in addresses]
            return [self._withdraw_group(operation, first.group_key, group)]

        facts, unreadable = self._collect_facts(addresses, WITHDRAW_FIELDS, with_balances=True, is_lp=check_owner)
        outcomes = [self._skip(operation, address, reason) for address, reason in unreadable.items()]
        now = self._clock()
        eligible: list[VaultData] = []
        for vault_facts in facts:
            reason = withdraw_exclusion(vault_facts, account=self.account, is_lp=check_owner, now=now)
            if reason is not None:
                outcomes.append(self._skip(operation, vault_facts.address, reason))
                continue
            try:
                symbol = self._pair_symbol(vault_facts.base_token, vault_facts.quote_token)
            except LedgerCallError as exc:
                outcomes.append(self._skip(operation, vault_facts.address, exc.short_message))
                continue
            eligible.append(VaultData(vault_facts.address, symbol, vault_facts.expiry, check_owner))

        if not eligible:
            logger.info(NO_VAULTS_MESSAGE)
            return outcomes
        for key, group in group_vaults(eligible).items():
            outcomes.append(self._withdraw_group(operation, key, group))
        return outcomes

    def withdraw_all_vaults(self, check_owner: bool) -> list[OperationOutcome]:
        """Checked batch withdrawal over every vault the factory deployed."""

        vaults = self._ledger.factory().deployed_vaults()
        logger.info("Factory reports %d deployed vaults", len(vaults))
        return self.withdraw_multiple_vaults(vaults, check_owner)

    def cancel_multiple_vaults(self, addresses: Sequence[str], bypass_check: bool = False) -> list[OperationOutcome]:
        operation = "cancelMultipleVaults"
        addresses = list(dict.fromkeys(addresses))
        if not addresses:
            logger.info(NO_VAULTS_MESSAGE)
            return []

        manager = self._ledger.batch_manager()
        facts, unreadable = self._collect_facts(addresses, CANCEL_FIELDS, with_balances=False)

        if bypass_check:
            # Unreadable vaults are still submitted; a vault whose fee approval fails is not.
            try:
                first = self._first_vault_data(addresses[0], is_lp=True)
            except VaultOpsError as exc:
                logger.error("Batch cancellation not prepared: %s", exc)
                return [OperationOutcome(operation, addresses[0], OutcomeStatus.FAILED, str(exc), tuple(addresses))]
            for address, reason in unreadable.items():
                logger.warning("No cancellation fee approved for %s: %s", address, reason)
            outcomes = []
            rejected = set()
            for vault_facts in facts:
                try:
                    self._approve_cancellation_fee(vault_facts)
                except VaultOpsError as exc:
                    logger.error("Cancellation fee for %s not approved: %s", vault_facts.address, exc)
                    outcomes.append(OperationOutcome(operation, vault_facts.address, OutcomeStatus.FAILED, str(exc)))
                    rejected.add(vault_facts.address)
            members = [address for address in addresses if address not in rejected]
            if not members:
                logger.info(NO_VAULTS_MESSAGE)
                return outcomes
            outcomes.append(
                self._submit(operation, first.group_key, partial(manager.lp_cancel_vaults, members), vaults=members)
            )
            return outcomes

        outcomes = [self._skip(operation, address, reason) for address, reason in unreadable.items()]
        eligible: list[VaultData] = []
        for vault_facts in facts:
            reason = cancel_exclusion(vault_facts, account=self.account)
            if reason is not None:
                outcomes.append(self._skip(operation, vault_facts.address, reason))
                continue
            try:
                self._approve_cancellation_fee(vault_facts)
                symbol = self._pair_symbol(vault_facts.base_token, vault_facts.quote_token)
            except VaultOpsError as exc:
                logger.error("Cancellation of %s not prepared: %s", vault_facts.address, exc)
                outcomes.append(OperationOutcome(operation, vault_facts.address, OutcomeStatus.FAILED, str(exc)))
                continue
            eligible.append(VaultData(vault_facts.address, symbol, vault_facts.expiry, True))

        if not eligible:
            logger.info(NO_VAULTS_MESSAGE)
            return outcomes
        for key, group in group_vaults(eligible).items():
            members = [vault.vault_address for vault in group]
            outcomes.append(self._submit(operation, key, partial(manager.lp_cancel_vaults, members), vaults=members))
        return outcomes

    def _first_vault_data(self, address: str, *, is_lp: bool) -> VaultData:
        """Pair and expiry of an unchecked batch, taken from its first vault."""

        first = VaultFacts.from_reads(address, self._read_fields(address, WITHDRAW_FIELDS))
        return VaultData(address, self._pair_symbol(first.base_token, first.quote_token), first.expiry, is_lp)

    def _withdraw_group(self, operation: str, key: str, group: list[VaultData]) -> OperationOutcome:
        members = [vault.vault_address for vault in group]
        first = group[0]
        try:
            update_data, per_vault_fee = self._price_update(first.expiry, first.trading_pair)
        except VaultOpsError as exc:
            logger.error("Price update for group %s unavailable: %s", key, exc)
            return OperationOutcome(operation, key, OutcomeStatus.FAILED, str(exc), tuple(members))
        fee = per_vault_fee * len(group)
        options = price_options(first.expiry)
        manager = self._ledger.batch_manager()
        write = manager.lp_withdraw_vaults if first.is_lp else manager.withdraw_vaults
        logger.info("Submitting %d vaults of group %s", len(members), key)
        return self._submit(operation, key, lambda: write(members, update_data, options, value=fee), vaults=members)

    # Queries ---------------------------------------------------------------
    def list_vaults(
        self,
        owner: str | None = None,
        *,
        offset: int | None = None,
        limit: int | None = None,
    ) -> list[str]:
        """Deployed vaults owned by ``owner`` (default: the signing account)."""

        owner = owner or self.account
        vaults = self._ledger.factory().deployed_vaults(offset, limit)
        with self._ledger.read_batch() as batch:
            owners = [(address, batch.add(self._ledger.vault(address).read("owner"))) for address in vaults]
        owned = []
        for address, handle in owners:
            if not handle.ok:
                logger.warning("Could not read owner of %s: %s", address, handle.error)
                continue
            if str(handle.value).lower() == owner.lower():
                owned.append(address)
        return owned

    def show_vault(self, address: str) -> VaultSnapshot:
        values = self._read_fields(
            address,
            (
                "linkedOraclePrice",
                "yieldValue",
                "isBuyLow",
                "investmentToken",
                "linkedToken",
                "quantity",
                "depositTotal",
                "state",
                "expiry",
            ),
        )
        is_buy_low = bool(values["isBuyLow"])
        investment_token = str(values["investmentToken"])
        linked_token = str(values["linkedToken"])
        base_token = linked_token if is_buy_low else investment_token
        quote_token = investment_token if is_buy_low else linked_token

        pair = self._network.find_trading_pair(base_token, quote_token)
        if pair is None or pair.price_feed is None or pair.price_feed.decimals is None:
            raise ConfigError(f"tradingPair for {base_token}/{quote_token} not found in config")
        decimals = self._ledger.token(investment_token).decimals()
        quantity = int(values["quantity"])
        created = self._ledger.creation_timestamp(address)

        return VaultSnapshot(
            address=address,
            base_token=base_token,
            quote_token=quote_token,
            trading_pair=pair.symbol,
            linked_price=format_units(int(values["linkedOraclePrice"]), int(pair.price_feed.decimals)),
            yield_percentage=format_units(int(values["yieldValue"]), YIELD_DECIMALS),
            quantity=format_units(quantity, decimals),
            remaining_quantity=format_units(quantity - int(values["depositTotal"]), decimals),
            state=int(values["state"]),
            expiry=datetime.fromtimestamp(int(values["expiry"]), tz=timezone.utc),
            direction=Direction.of(is_buy_low),
            creation_date=None if created is None else datetime.fromtimestamp(created, tz=timezone.utc),
        )

    # Helpers -------------------------------------------------------------
    def _read_fields(self, address: str, fields: Sequence[str]) -> dict[str, Any]:
        vault = self._ledger.vault(address)
        with self._ledger.read_batch() as batch:
            handles = {name: batch.add(vault.read(name)) for name in fields}
        return {name: handle.value for name, handle in handles.items()}

    def _collect_facts(
        self,
        addresses: Sequence[str],
        fields: Sequence[str],
        *,
        with_balances: bool,
        is_lp: bool = False,
    ) -> tuple[list[VaultFacts], dict[str, str]]:
        """Read eligibility facts for many vaults in two read windows.

        The second window, LP withdrawals only, reads the swept token balance
        and needs the token addresses and state from the first one. Vaults
        whose reads fail are returned with the reason instead.
        """

        account = self.account
        with self._ledger.read_batch() as batch:
            pending = {}
            for address in addresses:
                vault = self._ledger.vault(address)
                handles = {name: batch.add(vault.read(name)) for name in fields}
                if with_balances:
                    handles["balances"] = batch.add(vault.balances(account))
                pending[address] = handles

        facts: list[VaultFacts] = []
        unreadable: dict[str, str] = {}
        for address, handles in pending.items():
            try:
                facts.append(VaultFacts.from_reads(address, {name: h.value for name, h in handles.items()}))
            except LedgerCallError as exc:
                unreadable[address] = f"metadata unavailable: {exc.short_message}"
        if not (with_balances and is_lp):
            return facts, unreadable

        with self._ledger.read_batch() as batch:
            swept = {
                item.address: batch.add(self._ledger.token(item.swept_token).read("balanceOf", item.address))
                for item in facts
                if item.swept_token is not None
            }
        resolved: list[VaultFacts] = []
        for item in facts:
            handle = swept.get(item.address)
            if handle is None:
                resolved.append(item)
            elif handle.ok:
                resolved.append(replace(item, vault_token_balance=int(handle.value)))
            else:
                unreadable[item.address] = f"vault balance unavailable: {handle.error}"
        return resolved, unreadable

    def _pair_symbol(self, base_token: str, quote_token: str) -> str:
        pair = self._network.find_trading_pair(base_token, quote_token)
        if pair is not None:
            return pair.symbol
        with self._ledger.read_batch() as batch:
            base = batch.add(self._ledger.token(base_token).read("symbol"))
            quote = batch.add(self._ledger.token(quote_token).read("symbol"))
        return f"{base.value}-{quote.value}"

    def _price_update(self, target_timestamp: int, symbol: str) -> tuple[list[bytes], int]:
        update = self._oracle.get_price_update(target_timestamp, symbol)
        update_data = [update_payload(update)]
        return update_data, self._ledger.price_feed().get_update_fee(update_data)

    def _approve_cancellation_fee(self, facts: VaultFacts) -> None:
        fee = calculate_cancellation_fee(
            facts.quantity,
            facts.deposit_total,
            facts.cancellation_fee_rate,
            facts.is_buy_low,
            facts.oracle_price_at_creation,
        )
        fee_token = facts.investment_token if facts.is_buy_low else facts.linked_token
        logger.info("Cancellation fee for %s: %d of %s", facts.address, fee, fee_token)
        self._approve_erc20(fee_token, facts.address, fee)

    def _require_balances(self, requirements: Sequence[tuple[str, int]]) -> None:
        account = self.account
        with self._ledger.read_batch() as batch:
            pending = [
                (token, amount, batch.add(self._ledger.token(token).read("balanceOf", account)))
                for token, amount in requirements
            ]
        for token, amount, handle in pending:
            balance = int(handle.value)
            if balance < amount:
                raise InsufficientBalance(self._ledger.token(token).name(), amount, balance)

    def _approve(self, token: str, spender: str, amount: int) -> TxReceipt:
        try:
            receipt = self._ledger.token(token).approve(spender, amount)
        except LedgerCallError as exc:
            raise WriteRejected(f"Approval of {token} for {spender} failed: {exc.short_message}") from exc
        if not receipt.succeeded:
            raise WriteRejected(f"Approval of {token} for {spender} mined with status {receipt.status}")
        logger.info("Approved %d of %s for %s", amount, token, spender)
        return receipt

    def _approve_erc20(self, token: str, spender: str, amount: int) -> TxReceipt:
        self._require_balances([(token, amount)])
        return self._approve(token, spender, amount)

    def _approve_concurrently(self, requirements: Sequence[tuple[str, int]], spender: str) -> None:
        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = [pool.submit(self._approve, token, spender, amount) for token, amount in requirements]
            for future in futures:
                future.result()

    def _submit(
        self,
        operation: str,
        vault: str,
        write: Callable[[], TxReceipt],
        *,
        vaults: Sequence[str] = (),
        receipt_hook: Callable[[TxReceipt], str] | None = None,
    ) -> OperationOutcome:
        """Issue one write and turn its result into an outcome."""

        try:
            receipt = write()
        except LedgerCallError as exc:
            logger.error("%s failed for %s: %s", operation, vault, exc.short_message)
            return OperationOutcome(operation, vault, OutcomeStatus.FAILED, exc.short_message, tuple(vaults))
        if not receipt.succeeded:
            detail = f"transaction {receipt.tx_hash} mined with status {receipt.status}"
            logger.error("%s failed for %s: %s", operation, vault, detail)
            return OperationOutcome(operation, vault, OutcomeStatus.FAILED, detail, tuple(vaults))
        if receipt_hook is not None:
            vault = receipt_hook(receipt)
        logger.info("%s succeeded for %s in %s", operation, vault, receipt.tx_hash)
        return OperationOutcome(operation, vault, OutcomeStatus.SUCCEEDED, receipt.tx_hash, tuple(vaults))

    def _skip(self, operation: str, vault: str, reason: str) -> OperationOutcome:
        logger.warning("Skipping %s for %s: %s", operation, vault, reason)
        return OperationOutcome(operation, vault, OutcomeStatus.SKIPPED, reason)
