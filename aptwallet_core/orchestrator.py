"""
Transaction orchestration: intent -> raw txn -> signature -> submit -> confirm.

All state-changing wallet operations funnel through ``submit`` (or its
lower-level ``sign_and_submit``), so every write shares one code path.

Batches run strictly one item at a time. Each item re-reads the sender's
sequence number from the node instead of counting locally, and a failing
item is recorded in its own result slot without stopping the batch.
No call is ever retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Sequence

from aptwallet_core.config import TransactionConfig
from aptwallet_core.payloads import GasOptions, TransactionIntent

if TYPE_CHECKING:
    from aptwallet_core.wallet import LocalAccount

logger = logging.getLogger("aptwallet_txn")


@dataclass(frozen=True)
class TransactionOutcome:
    """Committed result of one transaction."""
    hash: str
    success: bool
    vm_status: str

    def to_dict(self) -> dict:
        return {"txnHash": self.hash, "success": self.success, "vm_status": self.vm_status}


@dataclass(frozen=True)
class BatchResult:
    """One slot of a batch: either a confirmed hash or the failure message."""
    index: int
    hash: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def value(self) -> str:
        return self.hash if self.ok else self.error  # type: ignore[return-value]


class TransactionOrchestrator:
    """Builds, signs, submits and confirms transactions for local accounts."""

    def __init__(self, ledger: Any, txn_config: TransactionConfig | None = None):
        self.ledger = ledger
        self.txn_config = txn_config or TransactionConfig()

    def _options(self, gas: GasOptions | None) -> dict[str, str]:
        opts = {"max_gas_amount": str(self.txn_config.submit_max_gas_amount)}
        if gas is not None:
            opts.update(gas.to_options())
        return opts

    async def build(
        self,
        account: LocalAccount,
        intent: TransactionIntent,
        gas: GasOptions | None = None,
        sequence_number: int | str | None = None,
    ) -> dict:
        return await self.ledger.generate_transaction(
            account.address,
            intent.to_payload(),
            self._options(gas),
            sequence_number=sequence_number,
        )

    # ── single ───────────────────────────────────────────────────

    async def sign_transaction(self, account: LocalAccount, request: dict) -> dict:
        return await self.ledger.sign_transaction(account, request)

    async def sign_and_submit_request(self, account: LocalAccount, request: dict) -> str:
        """Sign a prebuilt request, submit it and wait for confirmation."""
        signed = await self.ledger.sign_transaction(account, request)
        pending = await self.ledger.submit_transaction(signed)
        txn_hash = pending["hash"]
        logger.info(
            f"Submitted txn seq={request.get('sequence_number')}",
            extra={"address": account.address, "txn_hash": txn_hash},
        )
        await self.ledger.wait_for_transaction(txn_hash)
        logger.debug("Confirmed", extra={"txn_hash": txn_hash})
        return txn_hash

    async def sign_and_submit(
        self,
        account: LocalAccount,
        intent: TransactionIntent,
        gas: GasOptions | None = None,
    ) -> str:
        """Returns the hash once the ledger has resolved the transaction."""
        request = await self.build(account, intent, gas)
        return await self.sign_and_submit_request(account, request)

    async def submit(
        self,
        account: LocalAccount,
        intent: TransactionIntent,
        gas: GasOptions | None = None,
    ) -> TransactionOutcome:
        """sign -> submit -> confirm -> fetch result."""
        txn_hash = await self.sign_and_submit(account, intent, gas)
        committed = await self.ledger.get_transaction(txn_hash)
        outcome = TransactionOutcome(
            hash=txn_hash,
            success=bool(committed.get("success")),
            vm_status=str(committed.get("vm_status", "")),
        )
        if not outcome.success:
            logger.warning(
                f"{intent.function} reverted: {outcome.vm_status}",
                extra={"txn_hash": txn_hash},
            )
        return outcome

    # ── batch ────────────────────────────────────────────────────

    async def _attempt(
        self,
        account: LocalAccount,
        index: int,
        build: Callable[[str], Awaitable[dict]],
    ) -> BatchResult:
        try:
            current = await self.ledger.get_account(account.address)
            request = await build(current["sequence_number"])
            txn_hash = await self.sign_and_submit_request(account, request)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                f"Batch item {index} failed: {exc}",
                extra={"address": account.address},
            )
            return BatchResult(index=index, error=str(exc) or type(exc).__name__)
        return BatchResult(index=index, hash=txn_hash)

    async def sign_and_submit_batch(
        self,
        account: LocalAccount,
        intents: Sequence[TransactionIntent],
        gas: GasOptions | None = None,
    ) -> list[BatchResult]:
        """results[i] always corresponds to intents[i]."""
        results: list[BatchResult] = []
        for index, intent in enumerate(intents):
            async def build(seq: str, intent: TransactionIntent = intent) -> dict:
                return await self.build(account, intent, gas, sequence_number=seq)

            results.append(await self._attempt(account, index, build))
        return results

    async def sign_and_submit_requests(
        self,
        account: LocalAccount,
        requests: Sequence[dict],
    ) -> list[BatchResult]:
        """Batch variant for prebuilt requests; sequence numbers are refreshed."""
        results: list[BatchResult] = []
        for index, request in enumerate(requests):
            async def build(seq: str, request: dict = request) -> dict:
                return {**request, "sequence_number": str(seq)}

            results.append(await self._attempt(account, index, build))
        return results

    # ── simulation / prebuilt ────────────────────────────────────

    async def estimate_gas(
        self,
        account: LocalAccount,
        intent: TransactionIntent,
        gas: GasOptions | None = None,
    ) -> int:
        request = await self.build(account, intent, gas)
        return await self.estimate_gas_for_request(account, request)

    async def estimate_gas_for_request(self, account: LocalAccount, request: dict) -> int:
        simulated = await self.ledger.simulate_transaction(account, request)
        return int(simulated["gas_used"])

    async def submit_prebuilt_signed(self, signed_txn: bytes) -> dict:
        """Submit BCS bytes signed elsewhere; returns the pending transaction."""
        return await self.ledger.submit_signed_bcs_transaction(signed_txn)

    async def submit_prebuilt_simulation(self, bcs_body: bytes) -> dict:
        return await self.ledger.submit_bcs_simulation(bcs_body)
