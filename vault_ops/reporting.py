"""Plain-text rendering of vaults, configuration and operation outcomes."""

from __future__ import annotations

import json
from collections import Counter
from collections.abc import Iterable, Sequence

from .config import BasicSettings, NetworkConfig
from .models.shared import VaultState
from .models.vault import OperationOutcome, VaultSnapshot

_STATE_LABELS = {
    VaultState.OPEN: "Open",
    VaultState.SETTLED_INVESTMENT: "Settled (investment token)",
    VaultState.SETTLED_LINKED: "Settled (linked token)",
}


def state_label(state: int) -> str:
    """Known states get a name; anything else is shown as the raw integer."""

    try:
        return _STATE_LABELS[VaultState(state)]
    except (ValueError, KeyError):
        return f"Unknown ({state})"


def format_vault(snapshot: VaultSnapshot) -> list[str]:
    created = snapshot.creation_date.isoformat() if snapshot.creation_date else "unknown"
    return [
        f"Vault: {snapshot.address}",
        f"Trading pair: {snapshot.trading_pair}",
        f"Base token: {snapshot.base_token}",
        f"Quote token: {snapshot.quote_token}",
        f"Linked price: {snapshot.linked_price}",
        f"Yield: {snapshot.yield_percentage}%",
        f"Creation date: {created}",
        f"Expiry: {snapshot.expiry.isoformat()}",
        f"Direction: {snapshot.direction}",
        f"Quantity: {snapshot.quantity}",
        f"Remaining quantity: {snapshot.remaining_quantity}",
        f"State: {state_label(snapshot.state)}",
    ]


def format_config(network: NetworkConfig, settings: BasicSettings | None = None) -> str:
    """JSON view of one network with credentials masked."""

    payload: dict = {"network": network.name, **network.redacted()}
    if settings is not None:
        payload["basicSettings"] = {
            "hermesApiBaseUrl": settings.hermes_api_base_url,
            "requestTimeout": settings.request_timeout,
            "receiptTimeout": settings.receipt_timeout,
        }
    return json.dumps(payload, indent=2)


def format_vault_list(owner: str, addresses: Sequence[str]) -> list[str]:
    if not addresses:
        return [f"No vaults owned by {owner}"]
    lines = [f"Vaults owned by {owner} ({len(addresses)}):"]
    lines.extend(f"  {address}" for address in addresses)
    return lines


def format_outcomes(outcomes: Iterable[OperationOutcome]) -> list[str]:
    outcomes = list(outcomes)
    lines = []
    for outcome in outcomes:
        line = f"[{outcome.status}] {outcome.operation} {outcome.vault}"
        if outcome.vaults:
            line += f" ({len(outcome.vaults)} vaults)"
        if outcome.detail:
            line += f": {outcome.detail}"
        lines.append(line)
    counts = Counter(outcome.status for outcome in outcomes)
    summary = ", ".join(f"{count} {status}" for status, count in sorted(counts.items()))
    lines.append(f"Summary: {summary or 'nothing to do'}")
    return lines
