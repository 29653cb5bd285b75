"""Receipt and event contracts returned by ledger backends."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence


@dataclass(frozen=True, slots=True)
class TxReceipt:
    """Mined transaction receipt; ``logs`` are kept raw for event decoding."""

    status: int
    tx_hash: str
    logs: Sequence[Any] = field(default_factory=tuple)

    @property
    def succeeded(self) -> bool:
        return self.status == 1


@dataclass(frozen=True, slots=True)
class DecodedEvent:
    name: str
    args: Mapping[str, Any]
