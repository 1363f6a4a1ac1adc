"""
Account records for the wallet client.

An ``AccountRecord`` is the shareable description of an on-chain account
owned by a mnemonic: where its key lives in the derivation tree and which
address it controls. It never carries the mnemonic or a private key; the
signing ``LocalAccount`` is re-derived on demand.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from aptwallet_core.wallet import (
    DerivationPath,
    LocalAccount,
    derive_account,
    mnemonic_to_seed,
)


@dataclass(frozen=True)
class AccountRecord:
    derivation_path: str
    address: str
    public_key: str | None = None

    @property
    def path(self) -> DerivationPath:
        return DerivationPath.parse(self.derivation_path)

    def to_dict(self) -> dict:
        d = {"derivationPath": self.derivation_path, "address": self.address}
        if self.public_key is not None:
            d["publicKey"] = self.public_key
        return d

    @classmethod
    def from_dict(cls, data: dict) -> AccountRecord:
        return cls(
            derivation_path=data["derivationPath"],
            address=data["address"],
            public_key=data.get("publicKey"),
        )


@dataclass
class Wallet:
    """A mnemonic and the accounts discovered under it, by wallet-index."""
    code: str
    accounts: list[AccountRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "accounts": [acc.to_dict() for acc in self.accounts],
        }

    def __repr__(self) -> str:
        return f"Wallet(accounts={len(self.accounts)})"


@dataclass(frozen=True)
class ScanState:
    """Outcome of scanning one wallet-index."""
    matched: bool = False
    record: AccountRecord | None = None


def account_from_record(code: str, record: AccountRecord) -> LocalAccount:
    """Re-derive the signing account for *record*, pinned to its address."""
    seed = mnemonic_to_seed(code)
    return derive_account(seed, record.path, record.address)


def record_for(account: LocalAccount, path: DerivationPath) -> AccountRecord:
    return AccountRecord(
        derivation_path=str(path),
        address=account.address,
        public_key=account.public_key_hex,
    )
