"""
REST client for the ledger node and its faucet.

Built on ``aiohttp``. This is the thin transport the wallet core talks
to; it carries no wallet decision logic.

Node endpoints used
-------------------
GET  /accounts/{address}                               account + auth key
GET  /accounts/{address}/resources                     all resources
GET  /accounts/{address}/resource/{type}               one resource
GET  /accounts/{address}/transactions                  sent transactions
GET  /accounts/{address}/events/{struct}/{field}       event stream
POST /tables/{handle}/item                             table lookup
GET  /transactions/{hash}                              transaction by hash
POST /transactions/signing_message                     bytes to sign
POST /transactions                                     submit (JSON or BCS)
POST /transactions/simulate                            dry run (JSON or BCS)

Faucet
------
POST {faucet}/mint?amount=..&auth_key=..               returns txn hashes

Usage:
    async with LedgerClient("http://127.0.0.1:8080") as ledger:
        account = await ledger.get_account("0x1")
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import TYPE_CHECKING, Any

import aiohttp

from aptwallet_core.config import TransactionConfig
from aptwallet_core.crypto_utils import ensure_hex, hex_to_bytes, strip_hex_prefix
from aptwallet_core.errors import (
    AccountNotFound,
    ConfirmationTimeout,
    LedgerError,
    SubmissionError,
)

if TYPE_CHECKING:
    from aptwallet_core.wallet import LocalAccount

logger = logging.getLogger("aptwallet_ledger")

BCS_SIGNED_TXN = "application/x.aptos.signed_transaction+bcs"


def _decode(text: str) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


def _message(body: Any) -> str:
    if isinstance(body, dict):
        return str(body.get("message") or json.dumps(body))
    return "" if body is None else str(body)


def _ok(status: int) -> bool:
    return 200 <= status < 300


class _HttpClient:
    """Shared aiohttp session handling."""

    def __init__(
        self,
        base_url: str,
        *,
        session: aiohttp.ClientSession | None = None,
        request_timeout_secs: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.request_timeout_secs = request_timeout_secs
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.request_timeout_secs),
            )
            self._owns_session = True
        return self._session

    async def _request(self, method: str, path: str, **kwargs: Any) -> tuple[int, Any, str]:
        session = await self._get_session()
        url = f"{self.base_url}{path}"
        async with session.request(method, url, **kwargs) as resp:
            text = await resp.text()
            return resp.status, _decode(text), url

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


class LedgerClient(_HttpClient):
    """Read and write access to a ledger node's REST API."""

    def __init__(
        self,
        node_url: str,
        *,
        txn_config: TransactionConfig | None = None,
        session: aiohttp.ClientSession | None = None,
        request_timeout_secs: float = 30.0,
    ):
        super().__init__(node_url, session=session, request_timeout_secs=request_timeout_secs)
        self.txn_config = txn_config or TransactionConfig()

    @property
    def node_url(self) -> str:
        return self.base_url

    # ── reads ────────────────────────────────────────────────────

    async def get_account(self, address: str) -> dict:
        """Return ``{sequence_number, authentication_key}``; 404 -> AccountNotFound."""
        status, body, url = await self._request("GET", f"/accounts/{ensure_hex(address)}")
        if status == 404:
            raise AccountNotFound(ensure_hex(address), url)
        if not _ok(status):
            raise LedgerError(status, _message(body), url)
        return body

    async def get_account_resources(self, address: str) -> list[dict]:
        status, body, url = await self._request(
            "GET", f"/accounts/{ensure_hex(address)}/resources",
        )
        if status == 404:
            raise AccountNotFound(ensure_hex(address), url)
        if not _ok(status):
            raise LedgerError(status, _message(body), url)
        return body or []

    async def get_account_resource(self, address: str, resource_type: str) -> dict | None:
        status, body, url = await self._request(
            "GET", f"/accounts/{ensure_hex(address)}/resource/{resource_type}",
        )
        if status == 404:
            return None
        if not _ok(status):
            raise LedgerError(status, _message(body), url)
        return body

    async def get_table_item(self, handle: str, request: dict) -> Any:
        """``request`` is ``{key_type, value_type, key}``; returns the stored value."""
        status, body, url = await self._request("POST", f"/tables/{handle}/item", json=request)
        if not _ok(status):
            raise LedgerError(status, _message(body), url)
        return body

    async def get_events_by_event_handle(
        self,
        address: str,
        event_handle_struct: str,
        field_name: str,
        limit: int | None = None,
        start: int | None = None,
    ) -> list[dict]:
        params: dict[str, str] = {}
        if limit:
            params["limit"] = str(limit)
        if start:
            params["start"] = str(start)
        status, body, url = await self._request(
            "GET",
            f"/accounts/{ensure_hex(address)}/events/{event_handle_struct}/{field_name}",
            params=params,
        )
        if status == 404:
            return []
        if not _ok(status):
            raise LedgerError(status, _message(body), url)
        return body or []

    async def get_account_transactions(
        self, address: str, limit: int | None = None, start: int | None = None,
    ) -> list[dict]:
        params: dict[str, str] = {}
        if limit:
            params["limit"] = str(limit)
        if start:
            params["start"] = str(start)
        status, body, url = await self._request(
            "GET", f"/accounts/{ensure_hex(address)}/transactions", params=params,
        )
        if not _ok(status):
            raise LedgerError(status, _message(body), url)
        return body or []

    async def get_transaction(self, txn_hash: str) -> dict:
        status, body, url = await self._request("GET", f"/transactions/{txn_hash}")
        if not _ok(status):
            raise LedgerError(status, _message(body), url)
        return body

    async def transaction_pending(self, txn_hash: str) -> bool:
        status, body, url = await self._request("GET", f"/transactions/{txn_hash}")
        if status == 404:
            return True
        if not _ok(status):
            raise LedgerError(status, _message(body), url)
        return isinstance(body, dict) and body.get("type") == "pending_transaction"

    # ── writes ───────────────────────────────────────────────────

    async def generate_transaction(
        self,
        sender: str,
        payload: dict,
        options: dict | None = None,
        *,
        sequence_number: int | str | None = None,
    ) -> dict:
        """Build an unsigned transaction request for *sender*."""
        if sequence_number is None:
            account = await self.get_account(sender)
            sequence_number = account["sequence_number"]
        cfg = self.txn_config
        request = {
            "sender": ensure_hex(sender),
            "sequence_number": str(sequence_number),
            "max_gas_amount": str(cfg.max_gas_amount),
            "gas_unit_price": str(cfg.gas_unit_price),
            "gas_currency_code": cfg.gas_currency_code,
            "expiration_timestamp_secs": str(int(time.time()) + cfg.expiration_secs),
            "payload": payload,
        }
        if options:
            request.update(options)
        return request

    async def create_signing_message(self, request: dict) -> bytes:
        status, body, url = await self._request(
            "POST", "/transactions/signing_message", json=request,
        )
        if not _ok(status):
            raise SubmissionError(status, _message(body), url)
        return hex_to_bytes(body["message"])

    async def sign_transaction(self, account: LocalAccount, request: dict) -> dict:
        message = await self.create_signing_message(request)
        signed = dict(request)
        signed["signature"] = {
            "type": "ed25519_signature",
            "public_key": account.public_key_hex,
            "signature": account.sign_hex(message),
        }
        return signed

    async def submit_transaction(self, signed: dict) -> dict:
        status, body, url = await self._request("POST", "/transactions", json=signed)
        if not _ok(status):
            raise SubmissionError(status, _message(body), url)
        logger.debug(f"Submitted {body.get('hash')}")
        return body

    async def wait_for_transaction(self, txn_hash: str) -> None:
        """Poll until *txn_hash* leaves the pending state."""
        timeout = self.txn_config.wait_timeout_secs
        interval = self.txn_config.poll_interval_secs
        deadline = time.monotonic() + timeout
        while await self.transaction_pending(txn_hash):
            if time.monotonic() >= deadline:
                raise ConfirmationTimeout(txn_hash, timeout)
            await asyncio.sleep(interval)

    async def simulate_transaction(self, account: LocalAccount, request: dict) -> dict:
        """Dry-run *request* with a zero signature; nothing is committed."""
        body_in = dict(request)
        body_in["signature"] = {
            "type": "ed25519_signature",
            "public_key": account.public_key_hex,
            "signature": ensure_hex(bytes(64)),
        }
        status, body, url = await self._request("POST", "/transactions/simulate", json=body_in)
        if not _ok(status):
            raise SubmissionError(status, _message(body), url)
        if isinstance(body, list):
            return body[0]
        return body

    async def submit_signed_bcs_transaction(self, signed_txn: bytes) -> dict:
        status, body, url = await self._request(
            "POST", "/transactions",
            data=bytes(signed_txn), headers={"Content-Type": BCS_SIGNED_TXN},
        )
        if not _ok(status):
            raise SubmissionError(status, _message(body), url)
        return body

    async def submit_bcs_simulation(self, bcs_body: bytes) -> dict:
        status, body, url = await self._request(
            "POST", "/transactions/simulate",
            data=bytes(bcs_body), headers={"Content-Type": BCS_SIGNED_TXN},
        )
        if not _ok(status):
            raise SubmissionError(status, _message(body), url)
        if isinstance(body, list):
            return body[0]
        return body


class LedgerProbe:
    """Existence check for a candidate address."""

    def __init__(self, ledger: Any):
        self.ledger = ledger

    async def probe(self, address: str) -> str | None:
        """Current authentication key at *address*, or None if no account."""
        try:
            account = await self.ledger.get_account(address)
        except AccountNotFound:
            return None
        return account["authentication_key"]


class FaucetClient(_HttpClient):
    """Funding service; mints coins into an account, creating it if needed."""

    def __init__(
        self,
        faucet_url: str,
        ledger: LedgerClient,
        *,
        session: aiohttp.ClientSession | None = None,
        request_timeout_secs: float = 30.0,
    ):
        super().__init__(faucet_url, session=session, request_timeout_secs=request_timeout_secs)
        self.ledger = ledger

    async def fund_account(self, address: str, amount: int) -> list[str]:
        """Fund *address* (or auth key) and wait for every resulting txn."""
        params = {"amount": str(amount), "auth_key": strip_hex_prefix(ensure_hex(address))}
        status, body, url = await self._request("POST", "/mint", params=params)
        if not _ok(status):
            raise LedgerError(status, _message(body), url)
        hashes = [ensure_hex(h) for h in (body or [])]
        for txn_hash in hashes:
            await self.ledger.wait_for_transaction(txn_hash)
        logger.info(f"Funded {ensure_hex(address)[:18]}... with {amount}")
        return hashes
