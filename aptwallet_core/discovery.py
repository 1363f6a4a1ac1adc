"""
Account discovery for HD wallets.

A mnemonic owns up to MAX_ACCOUNTS accounts, one per wallet-index
(hardened level 3 of m/44'/637'/<wallet>'/0/<address>). Each account's
address is fixed at creation: the authentication key of address-index 0.
Key rotation moves the account's signing key to a later address-index
inside the same wallet-index, so recovering an account means finding the
first address-index whose key matches the on-chain authentication key.

Scanning rules:
  - probes are issued strictly in increasing (wallet, address) order
  - the first wallet-index whose index-0 address is absent ends the scan
  - so does a wallet-index where no key in the gap window matches
"""

from __future__ import annotations

import logging
from typing import Any

from aptwallet_core.account import AccountRecord, ScanState, Wallet, record_for
from aptwallet_core.crypto_utils import ensure_hex
from aptwallet_core.errors import AccountSpaceExhausted
from aptwallet_core.ledger_client import LedgerProbe
from aptwallet_core.wallet import (
    ADDRESS_GAP,
    COIN_TYPE,
    MAX_ACCOUNTS,
    DerivationPath,
    HDNode,
    generate_mnemonic,
    mnemonic_to_seed,
)

logger = logging.getLogger("aptwallet_discovery")


class AccountDiscoveryEngine:
    """Recovers or mints the accounts belonging to a mnemonic."""

    def __init__(self, ledger: Any, faucet: Any = None, *, probe: LedgerProbe | None = None):
        self.ledger = ledger
        self.faucet = faucet
        self.probe = probe or LedgerProbe(ledger)

    async def discover_accounts(self, code: str) -> Wallet:
        """
        Return every account registered under *code*, ordered by wallet-index.

        Raises InvalidMnemonic before touching the network.
        """
        master = HDNode.from_seed(mnemonic_to_seed(code))
        accounts: list[AccountRecord] = []
        for wallet_index in range(MAX_ACCOUNTS):
            state = await self._scan_wallet_index(master, wallet_index)
            if not state.matched:
                break
            accounts.append(state.record)
            logger.info(
                f"Discovered account at {state.record.derivation_path}",
                extra={"address": state.record.address},
            )
        return Wallet(code, accounts)

    async def _scan_wallet_index(self, master: HDNode, wallet_index: int) -> ScanState:
        origin_path = DerivationPath(wallet_index, 0, COIN_TYPE)
        origin = master.derive_path(origin_path).to_account()
        address = origin.address

        target = await self.probe.probe(address)
        logger.debug(
            f"Probed wallet-index {wallet_index}: {'present' if target else 'absent'}",
            extra={"address": address},
        )
        if target is None:
            return ScanState()
        target = ensure_hex(target)

        for address_index in range(ADDRESS_GAP):
            path = DerivationPath(wallet_index, address_index, COIN_TYPE)
            if address_index == 0:
                candidate = origin
            else:
                candidate = master.derive_path(path).to_account(address)
            if candidate.auth_key() == target:
                return ScanState(
                    matched=True,
                    record=AccountRecord(str(path), address, candidate.public_key_hex),
                )

        logger.warning(
            f"No key within {ADDRESS_GAP} address indices matches wallet-index {wallet_index}",
            extra={"address": address},
        )
        return ScanState()

    async def create_account(self, code: str) -> AccountRecord:
        """
        Register the first wallet-index whose index-0 address is unused.

        The faucet funds the new address with zero coins, which is enough
        to create it on-chain.
        """
        if self.faucet is None:
            raise RuntimeError("create_account requires a funding service")
        master = HDNode.from_seed(mnemonic_to_seed(code))
        for wallet_index in range(MAX_ACCOUNTS):
            path = DerivationPath(wallet_index, 0, COIN_TYPE)
            account = master.derive_path(path).to_account()
            if await self.probe.probe(account.address) is not None:
                continue
            await self.faucet.fund_account(account.auth_key(), 0)
            logger.info(f"Created account at {path}", extra={"address": account.address})
            return record_for(account, path)
        raise AccountSpaceExhausted(MAX_ACCOUNTS)

    async def create_wallet(self) -> Wallet:
        """Fresh mnemonic with one registered account."""
        code = generate_mnemonic()
        record = await self.create_account(code)
        return Wallet(code, [record])
