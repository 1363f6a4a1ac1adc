"""
Shared pytest fixtures for the aptwallet test suite.

``_FakeLedger`` is an in-memory stand-in for the node REST API. It keeps
accounts, resources, tables, events and committed transactions, records
every call in order, and enforces the two rules the wallet relies on:
sequence numbers must match and the signing key must hash to the
account's current authentication key.
"""

from __future__ import annotations

import json
from typing import Any

import pytest

from aptwallet_core.config import TransactionConfig
from aptwallet_core.crypto_utils import auth_key_for, ensure_hex
from aptwallet_core.errors import AccountNotFound, ConfirmationTimeout, SubmissionError
from aptwallet_core.wallet import DerivationPath, HDNode, mnemonic_to_seed

# BIP-39 test vector mnemonic (all-zero entropy).
TEST_MNEMONIC = "abandon " * 11 + "about"


def _key(value: Any) -> str:
    return json.dumps(value, sort_keys=True)


class _FakeLedger:
    def __init__(self):
        self.txn_config = TransactionConfig(wait_timeout_secs=0.0, poll_interval_secs=0.0)
        self.accounts: dict[str, dict] = {}
        self.resources: dict[str, list[dict]] = {}
        self.tables: dict[str, dict[str, Any]] = {}
        self.events: dict[tuple[str, str, str], list[dict]] = {}
        self.transactions: dict[str, dict] = {}
        self.calls: list[tuple] = []
        self.reject_functions: set[str] = set()
        self.revert_functions: set[str] = set()
        self.simulated_gas = 7

    # ── setup helpers ────────────────────────────────────────────

    def register(self, address: str, auth_key: str | None = None, sequence_number: int = 0):
        address = ensure_hex(address)
        self.accounts[address] = {
            "sequence_number": str(sequence_number),
            "authentication_key": ensure_hex(auth_key or address),
        }
        self.resources.setdefault(address, [])

    def add_resource(self, address: str, resource_type: str, data: dict):
        self.resources.setdefault(ensure_hex(address), []).append(
            {"type": resource_type, "data": data}
        )

    def add_table_item(self, handle: str, key: Any, value: Any):
        self.tables.setdefault(handle, {})[_key(key)] = value

    def add_event(self, address: str, struct: str, field: str, data: dict):
        stream = self.events.setdefault((ensure_hex(address), struct, field), [])
        stream.append({"sequence_number": str(len(stream)), "data": data})

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]

    # ── reads ────────────────────────────────────────────────────

    async def get_account(self, address: str) -> dict:
        address = ensure_hex(address)
        self.calls.append(("get_account", address))
        if address not in self.accounts:
            raise AccountNotFound(address)
        return dict(self.accounts[address])

    async def get_account_resources(self, address: str) -> list[dict]:
        address = ensure_hex(address)
        self.calls.append(("get_account_resources", address))
        if address not in self.resources:
            raise AccountNotFound(address)
        return list(self.resources[address])

    async def get_account_resource(self, address: str, resource_type: str) -> dict | None:
        self.calls.append(("get_account_resource", ensure_hex(address), resource_type))
        for resource in self.resources.get(ensure_hex(address), []):
            if resource["type"] == resource_type:
                return resource
        return None

    async def get_table_item(self, handle: str, request: dict) -> Any:
        self.calls.append(("get_table_item", handle, _key(request["key"])))
        return {"data": self.tables[handle][_key(request["key"])]}

    async def get_events_by_event_handle(self, address, struct, field, limit=None, start=None):
        self.calls.append(("get_events_by_event_handle", ensure_hex(address), struct, field))
        return list(self.events.get((ensure_hex(address), struct, field), []))

    async def get_account_transactions(self, address: str, limit=None, start=None):
        address = ensure_hex(address)
        self.calls.append(("get_account_transactions", address))
        return [t for t in self.transactions.values() if t["sender"] == address]

    async def get_transaction(self, txn_hash: str) -> dict:
        self.calls.append(("get_transaction", txn_hash))
        return dict(self.transactions[txn_hash])

    # ── writes ───────────────────────────────────────────────────

    async def generate_transaction(self, sender, payload, options=None, *, sequence_number=None):
        self.calls.append(("generate_transaction", ensure_hex(sender)))
        if sequence_number is None:
            sequence_number = (await self.get_account(sender))["sequence_number"]
        request = {
            "sender": ensure_hex(sender),
            "sequence_number": str(sequence_number),
            "max_gas_amount": str(self.txn_config.max_gas_amount),
            "gas_unit_price": str(self.txn_config.gas_unit_price),
            "gas_currency_code": self.txn_config.gas_currency_code,
            "expiration_timestamp_secs": "1700000600",
            "payload": payload,
        }
        if options:
            request.update(options)
        return request

    async def sign_transaction(self, account, request: dict) -> dict:
        self.calls.append(("sign_transaction", account.address))
        signed = dict(request)
        signed["signature"] = {
            "type": "ed25519_signature",
            "public_key": account.public_key_hex,
            "signature": account.sign_hex(_key(request).encode()),
        }
        return signed

    async def submit_transaction(self, signed: dict) -> dict:
        self.calls.append(("submit_transaction", signed["payload"]["function"]))
        sender = signed["sender"]
        function = signed["payload"]["function"]
        if function in self.reject_functions:
            raise SubmissionError(400, f"{function} rejected")
        account = self.accounts.get(sender)
        if account is None:
            raise SubmissionError(400, "SENDING_ACCOUNT_DOES_NOT_EXIST")
        if signed["sequence_number"] != account["sequence_number"]:
            raise SubmissionError(400, "SEQUENCE_NUMBER_TOO_OLD")
        public_key = bytes.fromhex(signed["signature"]["public_key"][2:])
        if auth_key_for(public_key) != account["authentication_key"]:
            raise SubmissionError(400, "INVALID_AUTH_KEY")

        account["sequence_number"] = str(int(account["sequence_number"]) + 1)
        success = function not in self.revert_functions
        if success and function == "0x1::account::rotate_authentication_key":
            account["authentication_key"] = ensure_hex(signed["payload"]["arguments"][0])

        txn_hash = "0x" + format(len(self.transactions) + 1, "064x")
        self.transactions[txn_hash] = {
            "type": "user_transaction",
            "hash": txn_hash,
            "sender": sender,
            "sequence_number": signed["sequence_number"],
            "payload": signed["payload"],
            "gas_used": "5",
            "gas_unit_price": signed["gas_unit_price"],
            "success": success,
            "vm_status": "Executed successfully" if success else "Move abort: 0x1",
            "timestamp": "1700000000",
            "version": str(len(self.transactions)),
        }
        return {"hash": txn_hash}

    async def wait_for_transaction(self, txn_hash: str) -> None:
        self.calls.append(("wait_for_transaction", txn_hash))
        if txn_hash not in self.transactions:
            raise ConfirmationTimeout(txn_hash, 0)

    async def simulate_transaction(self, account, request: dict) -> dict:
        self.calls.append(("simulate_transaction", account.address))
        return {"gas_used": str(self.simulated_gas), "success": True, "vm_status": "Executed"}

    async def submit_signed_bcs_transaction(self, signed_txn: bytes) -> dict:
        self.calls.append(("submit_signed_bcs_transaction", len(signed_txn)))
        return {"hash": "0xbc5", "type": "pending_transaction"}

    async def submit_bcs_simulation(self, bcs_body: bytes) -> dict:
        self.calls.append(("submit_bcs_simulation", len(bcs_body)))
        return {"gas_used": "3", "success": True}


class _FakeFaucet:
    """Creates the account on first funding and credits the native coin."""

    def __init__(self, ledger: _FakeLedger, coin_type: str = "0x1::test_coin::TestCoin"):
        self.ledger = ledger
        self.coin_type = coin_type
        self.funded: list[tuple[str, int]] = []

    async def fund_account(self, address: str, amount: int) -> list[str]:
        address = ensure_hex(address)
        self.ledger.calls.append(("fund_account", address, amount))
        self.funded.append((address, amount))
        if address not in self.ledger.accounts:
            self.ledger.register(address)
        store = f"0x1::coin::CoinStore<{self.coin_type}>"
        for resource in self.ledger.resources[address]:
            if resource["type"] == store:
                value = int(resource["data"]["coin"]["value"]) + amount
                resource["data"]["coin"]["value"] = str(value)
                break
        else:
            self.ledger.add_resource(address, store, {"coin": {"value": str(amount)}})
        return ["0x" + format(len(self.funded), "064x")]


def derived(code: str, wallet_index: int, address_index: int, address: str | None = None):
    """Signing account at (wallet_index, address_index) of *code*."""
    master = HDNode.from_seed(mnemonic_to_seed(code))
    return master.derive_path(DerivationPath(wallet_index, address_index)).to_account(address)


@pytest.fixture
def code():
    return TEST_MNEMONIC


@pytest.fixture
def ledger():
    """Empty in-memory ledger."""
    return _FakeLedger()


@pytest.fixture
def faucet(ledger):
    return _FakeFaucet(ledger)


@pytest.fixture
def derive():
    return derived


@pytest.fixture
def register_index(ledger, code):
    """
    Put wallet-index *w* of the test mnemonic on the ledger with its key
    rotated to address-index *active*. Returns the index-0 address.
    """
    def _register(wallet_index: int, active: int = 0, sequence_number: int = 0) -> str:
        origin = derived(code, wallet_index, 0)
        current = derived(code, wallet_index, active)
        ledger.register(origin.address, current.auth_key(), sequence_number)
        return origin.address

    return _register
