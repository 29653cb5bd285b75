"""web3.py implementation of :class:`LedgerBackend` for EVM networks."""

from __future__ import annotations

import logging
import re
import threading
from typing import Any, Sequence

import requests
from web3 import Web3
from web3.contract.contract import Contract, ContractFunction
from web3.exceptions import (
    ContractLogicError,
    LogTopicError,
    MismatchedABI,
    TimeExhausted,
    Web3Exception,
)

from ...config import BasicSettings, NetworkConfig
from ...contracts.ledger.interface import (
    ContractRole,
    LedgerBackend,
    ReadCall,
    ReadResult,
    TransactionSigner,
    WriteCall,
)
from ...core.errors import ConfigError, LedgerCallError
from ...models.ledger import DecodedEvent, TxReceipt
from .abi import ABIS
from .signer import LocalSigner

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_RECEIPT_TIMEOUT = 180.0
_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")
_RPC_ERRORS = (Web3Exception, requests.RequestException, ValueError)


class Web3Backend(LedgerBackend):
    """JSON-RPC backed ledger transport signing with a local key."""

    def __init__(
        self,
        web3: Web3,
        signer: TransactionSigner,
        *,
        receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT,
        batch_reads: bool = True,
    ) -> None:
        self._w3 = web3
        self._signer = signer
        self._receipt_timeout = receipt_timeout
        self._batch_reads = batch_reads
        self._contracts: dict[tuple[ContractRole, str], Contract] = {}
        self._nonce_lock = threading.Lock()
        self._next_nonce: int | None = None
        self._chain_id: int | None = None

    @classmethod
    def from_config(cls, network: NetworkConfig, settings: BasicSettings) -> "Web3Backend":
        provider = Web3.HTTPProvider(network.rpc_node, request_kwargs={"timeout": settings.request_timeout})
        if network.private_key:
            signer = LocalSigner.from_private_key(network.private_key)
        elif network.json_wallet and network.passphrase:
            signer = LocalSigner.from_keystore(network.json_wallet, network.passphrase)
        else:
            raise ConfigError("wallet path is not set")
        if network.account and network.account.lower() != signer.address.lower():
            logger.warning("Configured account %s differs from signer %s", network.account, signer.address)
        return cls(Web3(provider), signer, receipt_timeout=settings.receipt_timeout)

    @property
    def account(self) -> str:
        return self._signer.address

    # ------------------------------------------------------------------
    # Reads
    def execute_reads(self, calls: Sequence[ReadCall]) -> list[ReadResult]:
        functions = [self._bind(call) for call in calls]
        if self._batch_reads and len(calls) > 1:
            try:
                with self._w3.batch_requests() as batch:
                    for function in functions:
                        batch.add(function)
                    responses = batch.execute()
                return [ReadResult(call, value=value) for call, value in zip(calls, responses)]
            except _RPC_ERRORS as exc:
                logger.debug("Batched read of %d calls failed, falling back to single calls: %s", len(calls), exc)
        return [self._read_one(call, function) for call, function in zip(calls, functions)]

    def _read_one(self, call: ReadCall, function: ContractFunction) -> ReadResult:
        try:
            return ReadResult(call, value=function.call())
        except _RPC_ERRORS as exc:
            return ReadResult(call, error=_short_message(exc), cause=exc)

    # ------------------------------------------------------------------
    # Writes
    def transact(self, call: WriteCall) -> TxReceipt:
        function = self._bind(call)
        nonce = self._allocate_nonce()
        params: dict[str, Any] = {
            "from": self.account,
            "nonce": nonce,
            "value": call.value,
            "chainId": self._get_chain_id(),
        }
        if call.gas_limit is not None:
            params["gas"] = call.gas_limit
        try:
            transaction = function.build_transaction(params)
            raw = self._signer.sign_transaction(transaction)
            tx_hash = self._w3.eth.send_raw_transaction(raw)
        except _RPC_ERRORS as exc:
            self._reset_nonce()
            raise LedgerCallError(_short_message(exc), exc) from exc
        try:
            receipt = self._w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self._receipt_timeout)
        except TimeExhausted as exc:
            raise LedgerCallError(f"Transaction {Web3.to_hex(tx_hash)} was not mined in time", exc) from exc
        except _RPC_ERRORS as exc:
            raise LedgerCallError(_short_message(exc), exc) from exc
        return TxReceipt(
            status=int(receipt["status"]),
            tx_hash=Web3.to_hex(receipt["transactionHash"]),
            logs=tuple(receipt["logs"]),
        )

    def _allocate_nonce(self) -> int:
        with self._nonce_lock:
            if self._next_nonce is None:
                try:
                    self._next_nonce = self._w3.eth.get_transaction_count(self.account, "pending")
                except _RPC_ERRORS as exc:
                    raise LedgerCallError(_short_message(exc), exc) from exc
            nonce = self._next_nonce
            self._next_nonce += 1
            return nonce

    def _reset_nonce(self) -> None:
        with self._nonce_lock:
            self._next_nonce = None

    def _get_chain_id(self) -> int:
        if self._chain_id is None:
            try:
                self._chain_id = int(self._w3.eth.chain_id)
            except _RPC_ERRORS as exc:
                raise LedgerCallError(_short_message(exc), exc) from exc
        return self._chain_id

    # ------------------------------------------------------------------
    # Events and history
    def decode_events(self, role: ContractRole, receipt: TxReceipt) -> list[DecodedEvent]:
        contract = self._w3.eth.contract(abi=ABIS[role])
        event_names = [entry["name"] for entry in ABIS[role] if entry.get("type") == "event"]
        decoded: list[DecodedEvent] = []
        for log in receipt.logs:
            for name in event_names:
                try:
                    event = getattr(contract.events, name)().process_log(log)
                except (MismatchedABI, LogTopicError, ValueError, KeyError, TypeError):
                    continue
                decoded.append(DecodedEvent(name=event["event"], args=dict(event["args"])))
                break
        return decoded

    def creation_timestamp(self, address: str) -> int | None:
        try:
            logs = self._w3.eth.get_logs(
                {"address": Web3.to_checksum_address(address), "fromBlock": 0, "toBlock": "latest"}
            )
            if not logs:
                return None
            block = self._w3.eth.get_block(logs[0]["blockNumber"])
        except _RPC_ERRORS as exc:
            logger.warning("Could not look up creation block of %s: %s", address, _short_message(exc))
            return None
        return int(block["timestamp"])

    # ------------------------------------------------------------------
    # Internal helpers
    def _contract(self, role: ContractRole, address: str) -> Contract:
        key = (role, address.lower())
        try:
            return self._contracts[key]
        except KeyError:
            contract = self._w3.eth.contract(address=Web3.to_checksum_address(address), abi=ABIS[role])
            self._contracts[key] = contract
            return contract

    def _bind(self, call: ReadCall | WriteCall) -> ContractFunction:
        contract = self._contract(call.role, call.address)
        args = _checksum_args(call.args)
        if "(" in call.function:
            return contract.get_function_by_signature(call.function)(*args)
        return contract.get_function_by_name(call.function)(*args)


def _checksum_args(value: Any) -> Any:
    if isinstance(value, str) and _ADDRESS_PATTERN.match(value):
        return Web3.to_checksum_address(value)
    if isinstance(value, tuple):
        return tuple(_checksum_args(item) for item in value)
    if isinstance(value, list):
        return [_checksum_args(item) for item in value]
    return value


def _short_message(exc: BaseException) -> str:
    if isinstance(exc, ContractLogicError) and exc.message:
        return str(exc.message)
    text = str(exc).strip().splitlines()
    return text[0] if text else type(exc).__name__
