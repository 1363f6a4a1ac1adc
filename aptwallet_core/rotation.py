"""
Authentication-key rotation.

An account's address never changes, but the key that signs for it can.
Rotation always moves to the next address-index in the same wallet-index
(m/44'/637'/w'/0/a -> m/44'/637'/w'/0/a+1), so discovery can find the new
key again from the mnemonic alone. The last index inside the discovery
gap window cannot rotate any further.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from aptwallet_core.account import AccountRecord
from aptwallet_core.errors import RotationLimitReached
from aptwallet_core.orchestrator import TransactionOrchestrator
from aptwallet_core.payloads import RotateAuthKey
from aptwallet_core.wallet import ADDRESS_GAP, HDNode, mnemonic_to_seed

logger = logging.getLogger("aptwallet_rotation")


@dataclass(frozen=True)
class RotationResult:
    auth_key: str
    success: bool
    vm_status: str
    # Record to use from now on; None when the rotation did not commit.
    record: AccountRecord | None = None

    def to_dict(self) -> dict:
        return {"authkey": self.auth_key, "success": self.success, "vm_status": self.vm_status}


class KeyRotationProtocol:

    def __init__(self, orchestrator: TransactionOrchestrator):
        self.orchestrator = orchestrator

    async def rotate_auth_key(self, code: str, record: AccountRecord) -> RotationResult:
        """
        Rotate *record*'s account to the key at the next address-index.

        Raises RotationLimitReached, without any network call, when the
        record already sits at the last index of the gap window. On a
        reverted transaction the result has ``success=False`` and an empty
        auth key; the caller's record stays valid in that case.
        """
        path = record.path
        if path.address_index >= ADDRESS_GAP - 1:
            raise RotationLimitReached(record.derivation_path)

        master = HDNode.from_seed(mnemonic_to_seed(code))
        current = master.derive_path(path).to_account(record.address)
        next_path = path.next_address()
        successor = master.derive_path(next_path).to_account(record.address)
        new_auth_key = successor.auth_key()

        outcome = await self.orchestrator.submit(current, RotateAuthKey(new_auth_key))
        if not outcome.success:
            logger.warning(
                f"Rotation to {next_path} failed: {outcome.vm_status}",
                extra={"address": record.address, "txn_hash": outcome.hash},
            )
            return RotationResult("", False, outcome.vm_status)

        logger.info(
            f"Rotated auth key to {next_path}",
            extra={"address": record.address, "txn_hash": outcome.hash},
        )
        return RotationResult(
            auth_key=new_auth_key,
            success=True,
            vm_status=outcome.vm_status,
            record=AccountRecord(str(next_path), record.address, successor.public_key_hex),
        )
