"""
High-level wallet facade.

Wires the ledger transport, faucet, discovery engine, orchestrator,
rotation protocol and token client together and exposes the operations a
wallet front end needs. Every write goes through the orchestrator;
everything else is a thin read.

Usage:
    async with WalletClient.from_config(load_config()) as client:
        wallet = await client.import_wallet(code)
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from aptwallet_core.account import AccountRecord, Wallet, account_from_record
from aptwallet_core.cache import TTLCache
from aptwallet_core.config import AptWalletConfig
from aptwallet_core.crypto_utils import canonical_address
from aptwallet_core.discovery import AccountDiscoveryEngine
from aptwallet_core.ledger_client import FaucetClient, LedgerClient
from aptwallet_core.orchestrator import BatchResult, TransactionOrchestrator, TransactionOutcome
from aptwallet_core.payloads import (
    EntryFunctionCall,
    InitializeCoin,
    MintCoin,
    RegisterCoin,
    Transfer,
    TransferCoin,
)
from aptwallet_core.rotation import KeyRotationProtocol, RotationResult
from aptwallet_core.tokens import TokenClient
from aptwallet_core.wallet import (
    LocalAccount,
    account_from_mnemonic,
    account_from_private_key,
    sign_message,
)

logger = logging.getLogger("aptwallet_client")


def _coin_store(coin_type: str) -> str:
    return f"0x1::coin::CoinStore<{coin_type}>"


class WalletClient:
    """One object per node/faucet pair."""

    def __init__(
        self,
        node_url: str | None = None,
        faucet_url: str | None = None,
        *,
        config: AptWalletConfig | None = None,
        ledger: Any = None,
        faucet: Any = None,
        cache: TTLCache | None = None,
    ):
        self.config = config or AptWalletConfig()
        client_cfg = self.config.client
        self.ledger = ledger or LedgerClient(
            node_url or client_cfg.node_url,
            txn_config=self.config.transactions,
            request_timeout_secs=client_cfg.request_timeout_secs,
        )
        self.faucet = faucet or FaucetClient(
            faucet_url or client_cfg.faucet_url,
            self.ledger,
            request_timeout_secs=client_cfg.request_timeout_secs,
        )
        self.cache = cache if cache is not None else TTLCache(self.config.cache.ttl_seconds)
        self.native_coin = self.config.coin.native_coin

        self.orchestrator = TransactionOrchestrator(self.ledger, self.config.transactions)
        self.discovery = AccountDiscoveryEngine(self.ledger, self.faucet)
        self.rotation = KeyRotationProtocol(self.orchestrator)
        self.tokens = TokenClient(self.ledger, self.orchestrator, self.cache)

    @classmethod
    def from_config(cls, config: AptWalletConfig) -> WalletClient:
        return cls(config=config)

    async def close(self) -> None:
        for part in (self.faucet, self.ledger):
            closer = getattr(part, "close", None)
            if closer is not None:
                await closer()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ── accounts ─────────────────────────────────────────────────

    async def import_wallet(self, code: str) -> Wallet:
        return await self.discovery.discover_accounts(code)

    async def create_wallet(self) -> Wallet:
        return await self.discovery.create_wallet()

    async def create_new_account(self, code: str) -> AccountRecord:
        return await self.discovery.create_account(code)

    @staticmethod
    def get_account_from_private_key(private_key: bytes, address: str | None = None) -> LocalAccount:
        return account_from_private_key(private_key, address)

    @staticmethod
    def get_account_from_mnemonic(code: str) -> LocalAccount:
        return account_from_mnemonic(code)

    @staticmethod
    def get_account_from_record(code: str, record: AccountRecord) -> LocalAccount:
        return account_from_record(code, record)

    @staticmethod
    def sign_message(account: LocalAccount, message: str) -> str:
        return sign_message(account, message)

    async def rotate_auth_key(self, code: str, record: AccountRecord) -> RotationResult:
        return await self.rotation.rotate_auth_key(code, record)

    # ── native coin ──────────────────────────────────────────────

    async def airdrop(self, address: str, amount: int) -> list[str]:
        return await self.faucet.fund_account(address, amount)

    async def get_balance(self, address: str) -> int:
        resources = await self.ledger.get_account_resources(address)
        for resource in resources:
            if resource.get("type") == _coin_store(self.native_coin):
                return int(resource["data"]["coin"]["value"])
        return 0

    async def transfer(
        self, account: LocalAccount, recipient: str, amount: int,
    ) -> TransactionOutcome:
        transfer = Transfer(recipient, amount, self.native_coin)
        if canonical_address(recipient) == canonical_address(account.address):
            raise ValueError("cannot transfer coins to self")
        return await self.orchestrator.submit(account, transfer)

    async def account_transactions(self, address: str) -> list[dict]:
        """Sent transactions flattened to the fields a history view shows."""
        history = []
        for item in await self.ledger.get_account_transactions(address):
            payload = item.get("payload") or {}
            args = payload.get("arguments") or []
            history.append({
                "data": payload,
                "from": item.get("sender"),
                "gas": item.get("gas_used"),
                "gasPrice": item.get("gas_unit_price"),
                "hash": item.get("hash"),
                "success": item.get("success"),
                "timestamp": item.get("timestamp"),
                "toAddress": args[0] if len(args) > 0 else None,
                "price": args[1] if len(args) > 1 else None,
                "type": item.get("type"),
                "version": item.get("version"),
                "vmStatus": item.get("vm_status"),
            })
        return history

    async def get_sent_events(self, address: str) -> list[dict]:
        return await self.ledger.get_account_transactions(address)

    async def get_received_events(self, address: str) -> list[dict]:
        return await self.ledger.get_events_by_event_handle(
            address, _coin_store(self.native_coin), "deposit_events",
        )

    async def get_event_stream(
        self,
        address: str,
        event_handle_struct: str,
        field_name: str,
        limit: int | None = None,
        start: int | None = None,
    ) -> list[dict]:
        return await self.ledger.get_events_by_event_handle(
            address, event_handle_struct, field_name, limit, start,
        )

    async def get_account_resource(self, address: str, resource_type: str) -> dict | None:
        return await self.ledger.get_account_resource(address, resource_type)

    # ── generic transactions ─────────────────────────────────────

    async def sign_generic_transaction(
        self,
        account: LocalAccount,
        function: str,
        args: Sequence[Any] = (),
        type_args: Sequence[str] = (),
    ) -> TransactionOutcome:
        intent = EntryFunctionCall(function, tuple(args), tuple(type_args))
        return await self.orchestrator.submit(account, intent)

    async def sign_and_submit_transaction(self, account: LocalAccount, request: dict) -> str:
        return await self.orchestrator.sign_and_submit_request(account, request)

    async def sign_and_submit_transactions(
        self, account: LocalAccount, requests: Sequence[dict],
    ) -> list[BatchResult]:
        return await self.orchestrator.sign_and_submit_requests(account, requests)

    async def sign_transaction(self, account: LocalAccount, request: dict) -> dict:
        return await self.orchestrator.sign_transaction(account, request)

    async def estimate_gas_fees(self, account: LocalAccount, request: dict) -> int:
        return await self.orchestrator.estimate_gas_for_request(account, request)

    async def submit_transaction(self, signed: dict) -> dict:
        return await self.ledger.submit_transaction(signed)

    async def submit_signed_bcs_transaction(self, signed_txn: bytes) -> dict:
        return await self.orchestrator.submit_prebuilt_signed(signed_txn)

    async def submit_bcs_simulation(self, bcs_body: bytes) -> dict:
        return await self.orchestrator.submit_prebuilt_simulation(bcs_body)

    # ── NFTs ─────────────────────────────────────────────────────

    async def create_collection(
        self, account: LocalAccount, name: str, description: str, uri: str,
    ) -> TransactionOutcome:
        return await self.tokens.create_collection(account, name, description, uri)

    async def create_token(
        self,
        account: LocalAccount,
        collection_name: str,
        name: str,
        description: str,
        supply: int,
        uri: str,
        royalty_payee_address: str | None = None,
        royalty_points_denominator: int = 0,
        royalty_points_numerator: int = 0,
        property_keys: Sequence[str] = (),
        property_values: Sequence[str] = (),
        property_types: Sequence[str] = (),
    ) -> TransactionOutcome:
        return await self.tokens.create_token(
            account, collection_name, name, description, supply, uri,
            royalty_payee_address, royalty_points_denominator, royalty_points_numerator,
            tuple(property_keys), tuple(property_values), tuple(property_types),
        )

    async def offer_token(
        self,
        account: LocalAccount,
        receiver: str,
        creator: str,
        collection_name: str,
        name: str,
        amount: int,
        property_version: int = 0,
    ) -> TransactionOutcome:
        return await self.tokens.offer_token(
            account, receiver, creator, collection_name, name, amount, property_version,
        )

    async def cancel_token_offer(
        self,
        account: LocalAccount,
        receiver: str,
        creator: str,
        collection_name: str,
        name: str,
        property_version: int = 0,
    ) -> TransactionOutcome:
        return await self.tokens.cancel_token_offer(
            account, receiver, creator, collection_name, name, property_version,
        )

    async def claim_token(
        self,
        account: LocalAccount,
        sender: str,
        creator: str,
        collection_name: str,
        name: str,
        property_version: int = 0,
    ) -> TransactionOutcome:
        return await self.tokens.claim_token(
            account, sender, creator, collection_name, name, property_version,
        )

    async def get_token_ids(self, address: str, limit: int | None = None,
                            start: int | None = None) -> list[dict]:
        return await self.tokens.get_token_ids(address, limit, start)

    async def get_tokens(self, address: str, limit: int | None = None,
                         start: int | None = None) -> list[dict]:
        return await self.tokens.get_tokens(address, limit, start)

    async def get_token(self, token_id: dict) -> Any:
        return await self.tokens.get_token(token_id)

    async def get_collection(self, address: str, collection_name: str) -> Any:
        return await self.tokens.get_collection(address, collection_name)

    async def get_custom_resource(
        self,
        address: str,
        resource_type: str,
        field_name: str,
        key_type: str,
        value_type: str,
        key: Any,
    ) -> Any:
        return await self.tokens.get_custom_resource(
            address, resource_type, field_name, key_type, value_type, key,
        )

    # ── managed coins ────────────────────────────────────────────

    async def initialize_coin(
        self,
        account: LocalAccount,
        coin_type_path: str,
        name: str,
        symbol: str,
        scaling_factor: int,
    ) -> TransactionOutcome:
        """The coin's module must already be published under *account*."""
        return await self.orchestrator.submit(
            account, InitializeCoin(coin_type_path, name, symbol, scaling_factor),
        )

    async def register_coin(self, account: LocalAccount, coin_type_path: str) -> TransactionOutcome:
        return await self.orchestrator.submit(account, RegisterCoin(coin_type_path))

    async def mint_coin(
        self, account: LocalAccount, coin_type_path: str, dst_address: str, amount: int,
    ) -> TransactionOutcome:
        return await self.orchestrator.submit(
            account, MintCoin(coin_type_path, dst_address, amount),
        )

    async def transfer_coin(
        self, account: LocalAccount, coin_type_path: str, to_address: str, amount: int,
    ) -> TransactionOutcome:
        return await self.orchestrator.submit(
            account, TransferCoin(coin_type_path, to_address, amount),
        )

    async def get_coin_data(self, coin_type_path: str) -> dict | None:
        owner = coin_type_path.split("::")[0]
        return await self.ledger.get_account_resource(owner, f"0x1::coin::CoinInfo<{coin_type_path}>")

    async def get_coin_balance(self, address: str, coin_type_path: str) -> int:
        store = await self.ledger.get_account_resource(address, _coin_store(coin_type_path))
        if store is None:
            logger.debug(f"No {coin_type_path} store", extra={"address": address})
            return 0
        return int(store["data"]["coin"]["value"])
