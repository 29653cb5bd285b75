"""Local eth-account signer."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount

from ...contracts.ledger.interface import TransactionSigner
from ...core.errors import ConfigError


class LocalSigner(TransactionSigner):
    """Sign transactions with a key held in process memory."""

    def __init__(self, account: LocalAccount) -> None:
        self._account = account

    @classmethod
    def from_private_key(cls, private_key: str) -> "LocalSigner":
        try:
            return cls(Account.from_key(private_key))
        except (ValueError, TypeError) as exc:
            raise ConfigError("privateKey is not a valid private key") from exc

    @classmethod
    def from_keystore(cls, path: str | Path, passphrase: str) -> "LocalSigner":
        """Decrypt an encrypted JSON keystore (``jsonWallet`` in configuration)."""

        try:
            keystore = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ConfigError(f"Wallet file {path} could not be read") from exc
        try:
            key = Account.decrypt(keystore, passphrase)
        except (ValueError, TypeError) as exc:
            raise ConfigError("Wallet initialization failed") from exc
        return cls(Account.from_key(key))

    @property
    def address(self) -> str:
        return self._account.address

    def sign_transaction(self, transaction: dict[str, Any]) -> bytes:
        signed = self._account.sign_transaction(transaction)
        return bytes(signed.raw_transaction)
