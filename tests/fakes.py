from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass
from typing import Any

from vault_ops.contracts.ledger.interface import ContractRole, ReadCall, ReadResult, WriteCall
from vault_ops.core.ledger import Ledger
from vault_ops.models.ledger import DecodedEvent, TxReceipt
from vault_ops.models.oracle import PriceUpdate
from vault_ops.models.shared import FeedType, PriceFeedConfig, TradingPair

OWNER = "0x1111111111111111111111111111111111111111"
SUBSCRIBER = "0x2222222222222222222222222222222222222222"
WETH = "0x3333333333333333333333333333333333333333"
USDC = "0x4444444444444444444444444444444444444444"
WBTC = "0x5555555555555555555555555555555555555555"
FACTORY = "0xf000000000000000000000000000000000000001"
ROUTER = "0xf000000000000000000000000000000000000002"
COLLATERAL_POOL = "0xf000000000000000000000000000000000000003"
BATCH_MANAGER = "0xf000000000000000000000000000000000000004"
PRICE_FEED = "0xf000000000000000000000000000000000000005"
WETH_USDC_FEED_ID = "0xff61491a931112ddf1bd8147cd1b641375f79f5825126d665480874634fd0ace"
WBTC_USDC_FEED_ID = "0xe62df6c8b4a85fe1a67db44dc12de5db330f7ac66b72dc658afedf0f4a415b43"

WETH_USDC = TradingPair(
    symbol="WETH-USDC",
    base_token=WETH,
    quote_token=USDC,
    price_feed=PriceFeedConfig(type="PYTH", decimals=8, id=WETH_USDC_FEED_ID),
)
WBTC_USDC = TradingPair(
    symbol="WBTC-USDC",
    base_token=WBTC,
    quote_token=USDC,
    price_feed=PriceFeedConfig(type="PYTH", decimals=8, id=WBTC_USDC_FEED_ID),
)
TRADING_PAIRS = {pair.symbol: pair for pair in (WETH_USDC, WBTC_USDC)}


@dataclass(frozen=True)
class ReadFailure:
    message: str = "execution reverted"


def _args_key(args: tuple[Any, ...]) -> tuple[str, ...]:
    return tuple(str(arg).lower() for arg in args)


class FakeBackend:
    """In-memory ledger backend recording every read round and write."""

    def __init__(self, account: str = OWNER) -> None:
        self.account = account
        self.values: dict[tuple[str, str, tuple[str, ...] | None], Any] = {}
        self.read_rounds: list[list[ReadCall]] = []
        self.writes: list[WriteCall] = []
        self.events: list[DecodedEvent] = []
        self.creation_timestamps: dict[str, int] = {}
        self._write_outcomes: dict[str, list[TxReceipt | BaseException]] = {}
        self._lock = threading.Lock()
        self._hashes = itertools.count(1)

    # Setup ---------------------------------------------------------------
    def set_read(self, address: str, function: str, value: Any, *args: Any) -> None:
        """Register a read result; without ``args`` it answers any arguments."""

        self.values[(address.lower(), function, _args_key(args) if args else None)] = value

    def set_reads(self, address: str, **values: Any) -> None:
        for function, value in values.items():
            self.set_read(address, function, value)

    def queue_write(self, function: str, *outcomes: TxReceipt | BaseException) -> None:
        self._write_outcomes.setdefault(function, []).extend(outcomes)

    # LedgerBackend -------------------------------------------------------
    def execute_reads(self, calls):
        self.read_rounds.append(list(calls))
        return [self._read(call) for call in calls]

    def transact(self, call: WriteCall) -> TxReceipt:
        with self._lock:
            self.writes.append(call)
            queued = self._write_outcomes.get(call.function)
            outcome = queued.pop(0) if queued else None
            tx_hash = f"0x{next(self._hashes):064x}"
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome or TxReceipt(status=1, tx_hash=tx_hash)

    def decode_events(self, role: ContractRole, receipt: TxReceipt) -> list[DecodedEvent]:
        return list(self.events)

    def creation_timestamp(self, address: str) -> int | None:
        return self.creation_timestamps.get(address.lower())

    # Assertions helpers --------------------------------------------------
    def write_names(self) -> list[str]:
        return [call.function for call in self.writes]

    def writes_named(self, function: str) -> list[WriteCall]:
        return [call for call in self.writes if call.function == function]

    def _read(self, call: ReadCall) -> ReadResult:
        address = call.address.lower()
        key = (address, call.function, _args_key(call.args))
        if key not in self.values:
            key = (address, call.function, None)
        if key not in self.values:
            return ReadResult(call, error=f"no value for {call.function} on {call.address}")
        value = self.values[key]
        if isinstance(value, ReadFailure):
            return ReadResult(call, error=value.message)
        return ReadResult(call, value=value)


def make_ledger(backend: FakeBackend, **overrides: str | None) -> Ledger:
    addresses = {
        "factory": FACTORY,
        "router": ROUTER,
        "collateral_pool": COLLATERAL_POOL,
        "batch_manager": BATCH_MANAGER,
        "price_feed": PRICE_FEED,
    }
    addresses.update(overrides)
    return Ledger(backend, **addresses)


def make_update(ema_price: int = 250_012_345_678, data: str = "0xdeadbeef", feed_id: str = WETH_USDC_FEED_ID) -> PriceUpdate:
    component = {"price": str(ema_price), "conf": "1000", "expo": -8, "publish_time": 1_700_000_000}
    return {
        "binary": {"encoding": "hex", "data": [data]},
        "parsed": [{"id": feed_id.removeprefix("0x"), "price": component, "ema_price": component}],
    }


class StubPriceSource:
    feed_type = FeedType.PYTH

    def __init__(self, update: PriceUpdate | None = None, error: BaseException | None = None) -> None:
        self.update = update or make_update()
        self.error = error
        self.calls: list[tuple[str, int | None, list[str]]] = []
        self.closed = False

    def get_latest_price_updates(self, ids):
        self.calls.append(("latest", None, list(ids)))
        return self._answer()

    def get_price_updates_at_timestamp(self, publish_time, ids):
        self.calls.append(("at", publish_time, list(ids)))
        return self._answer()

    def close(self) -> None:
        self.closed = True

    def _answer(self) -> PriceUpdate:
        if self.error is not None:
            raise self.error
        return self.update


class StubResponse:
    def __init__(self, payload, status_code: int = 200, text: str = ""):
        self._payload = payload
        self.status_code = status_code
        self.text = text

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class StubSession:
    def __init__(self) -> None:
        self.calls: list[dict] = []
        self._responses: list[StubResponse | BaseException] = []
        self.closed = False

    def queue(self, payload, status_code: int = 200, text: str = "") -> None:
        self._responses.append(StubResponse(payload, status_code, text))

    def queue_error(self, error: BaseException) -> None:
        self._responses.append(error)

    def get(self, url, params=None, timeout=0):
        self.calls.append({"url": url, "params": list(params or []), "timeout": timeout})
        if not self._responses:
            raise AssertionError("No queued response left for stub session")
        response = self._responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    def close(self) -> None:
        self.closed = True
