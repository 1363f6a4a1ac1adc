"""
Error taxonomy for the wallet client.

Every exception raised by the library derives from ``WalletError`` so
callers can catch the whole family at once, or a specific failure mode:

  - InvalidMnemonic        phrase failed BIP-39 validation (no network call made)
  - AccountSpaceExhausted  every wallet-index below MAX_ACCOUNTS is taken
  - RotationLimitReached   no address-index left inside the gap window
  - LedgerError            the node answered with an unexpected HTTP status
  - AccountNotFound        the node reported 404 for an account lookup
  - SubmissionError        the node rejected a transaction submission
  - ConfirmationTimeout    a submitted hash never resolved while polling
"""

from __future__ import annotations


class WalletError(Exception):
    """Base class for all wallet client errors."""


class InvalidMnemonic(WalletError):
    def __init__(self, message: str = "Incorrect mnemonic passed"):
        super().__init__(message)


class AccountSpaceExhausted(WalletError):
    def __init__(self, max_accounts: int):
        self.max_accounts = max_accounts
        super().__init__(f"Max no. of accounts reached ({max_accounts})")


class RotationLimitReached(WalletError):
    def __init__(self, derivation_path: str):
        self.derivation_path = derivation_path
        super().__init__(f"Maximum key rotation reached for {derivation_path}")


class LedgerError(WalletError):
    """Non-success HTTP response from the ledger REST API."""

    def __init__(self, status: int, message: str, url: str = ""):
        self.status = status
        self.message = message
        self.url = url
        super().__init__(f"{status}: {message}" if message else str(status))


class AccountNotFound(LedgerError):
    def __init__(self, address: str, url: str = ""):
        self.address = address
        super().__init__(404, f"account {address} not found", url)


class SubmissionError(LedgerError):
    """The node refused a transaction (bad signature, sequence, payload...)."""


class ConfirmationTimeout(WalletError):
    def __init__(self, txn_hash: str, timeout_secs: float):
        self.txn_hash = txn_hash
        self.timeout_secs = timeout_secs
        super().__init__(
            f"Waiting for transaction {txn_hash} timed out after {timeout_secs:g}s"
        )
