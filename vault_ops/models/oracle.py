"""Price attestation payloads as returned by the oracle HTTP API."""

from __future__ import annotations

from typing import TypedDict

from ..core.errors import OracleUnavailable


class PriceComponent(TypedDict):
    price: str
    conf: str
    expo: int
    publish_time: int


class ParsedPriceUpdate(TypedDict, total=False):
    id: str
    price: PriceComponent
    ema_price: PriceComponent
    metadata: dict


class BinaryPriceUpdate(TypedDict):
    encoding: str
    data: list[str]


class PriceUpdate(TypedDict):
    """Signed update for one or more feeds; never persisted."""

    binary: BinaryPriceUpdate
    parsed: list[ParsedPriceUpdate]


def update_payload(update: PriceUpdate) -> bytes:
    """Hex-decode the first attestation into the bytes every write call needs."""

    data = update.get("binary", {}).get("data") or []
    if not data:
        raise OracleUnavailable("Price update does not carry any attestation data")
    raw = data[0]
    if raw.startswith("0x"):
        raw = raw[2:]
    try:
        return bytes.fromhex(raw)
    except ValueError as exc:
        raise OracleUnavailable("Price update attestation is not valid hex") from exc


def ema_price(update: PriceUpdate) -> int:
    """Return the raw EMA price integer of the first parsed entry."""

    parsed = update.get("parsed") or []
    if not parsed or "ema_price" not in parsed[0]:
        raise OracleUnavailable("Price update does not include a parsed EMA price")
    return int(parsed[0]["ema_price"]["price"])
