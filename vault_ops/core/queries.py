"""Request objects passed to the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ValidationError


@dataclass(frozen=True, slots=True)
class CreateVaultRequest:
    """Human-unit inputs of a vault creation.

    ``linked_price``, ``quantity`` and ``yield_percentage`` stay decimal
    strings until the orchestrator knows the decimals to scale them with.
    ``trading_pair`` is validated against configuration by the orchestrator.
    """

    trading_pair: str | None
    linked_price: str
    quantity: str
    expiry: int
    yield_percentage: str
    is_buy_low: bool = False
    use_collateral_pool: bool = False

    def __post_init__(self) -> None:
        if self.expiry <= 0:
            raise ValidationError("expiry must be a positive unix timestamp")
        for name in ("linked_price", "quantity", "yield_percentage"):
            if not str(getattr(self, name)).strip():
                raise ValidationError(f"{name} must not be empty")
