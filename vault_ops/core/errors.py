"""Custom exception hierarchy for vault operations."""

from __future__ import annotations


class VaultOpsError(RuntimeError):
    """Base class for all domain-specific exceptions."""


class ConfigError(VaultOpsError):
    """Raised when static configuration is missing or invalid."""


class ValidationError(VaultOpsError):
    """Raised when caller input cannot be used for the requested operation."""


class InsufficientBalance(VaultOpsError):
    """Raised by the pre-flight balance check that precedes an approval."""

    def __init__(self, token: str, required: int, available: int) -> None:
        super().__init__(f"Insufficient {token} balance: required {required}, available {available}")
        self.token = token
        self.required = required
        self.available = available


class OracleUnavailable(VaultOpsError):
    """The price feed could not return an attestation for the request."""


class EventNotFound(VaultOpsError):
    """An event expected after a successful write is missing from the receipt."""


class WriteRejected(VaultOpsError):
    """A state-changing call reverted or was mined with a failure status."""


class RetryExhausted(VaultOpsError):
    """All attempts of a bounded retry failed; ``last_error`` holds the final cause."""

    def __init__(self, message: str, last_error: BaseException | None = None) -> None:
        super().__init__(message)
        self.last_error = last_error


class LedgerCallError(VaultOpsError):
    """A remote ledger call failed.

    ``short_message`` is the human-readable reason (revert reason, RPC error
    text); ``cause`` keeps the raw exception raised by the client library.
    """

    def __init__(self, short_message: str, cause: BaseException | None = None) -> None:
        super().__init__(short_message)
        self.short_message = short_message
        self.cause = cause
