"""
NFT operations on the 0x3 token modules.

Writes go through the TransactionOrchestrator like every other
state-changing call. Reads walk an account's resources to the right
table handle and look the item up; ``get_tokens`` may hit the same
creator and token many times, so it reads through the injected cache.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from aptwallet_core.cache import TTLCache
from aptwallet_core.errors import LedgerError
from aptwallet_core.orchestrator import TransactionOrchestrator, TransactionOutcome
from aptwallet_core.payloads import (
    TOKEN_MODULE,
    CancelTokenOffer,
    ClaimToken,
    CreateCollection,
    CreateToken,
    OfferToken,
)

if TYPE_CHECKING:
    from aptwallet_core.wallet import LocalAccount

logger = logging.getLogger("aptwallet_tokens")

COLLECTIONS = f"{TOKEN_MODULE}::Collections"
TOKEN_STORE = f"{TOKEN_MODULE}::TokenStore"
STRING_TYPE = "0x1::string::String"


def _find_resource(resources: list[dict], resource_type: str, owner: str) -> dict:
    for resource in resources:
        if resource.get("type") == resource_type:
            return resource
    raise LedgerError(404, f"{resource_type} not found under {owner}")


def _id_key(token_id: Any) -> str:
    return json.dumps(token_id, sort_keys=True)


class TokenClient:
    """Create, transfer and list NFTs."""

    def __init__(
        self,
        ledger: Any,
        orchestrator: TransactionOrchestrator,
        cache: TTLCache | None = None,
    ):
        self.ledger = ledger
        self.orchestrator = orchestrator
        self.cache = cache if cache is not None else TTLCache()

    # ── writes ───────────────────────────────────────────────────

    async def create_collection(
        self, account: LocalAccount, name: str, description: str, uri: str,
    ) -> TransactionOutcome:
        return await self.orchestrator.submit(
            account, CreateCollection(name, description, uri),
        )

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
        property_keys: tuple[str, ...] = (),
        property_values: tuple[str, ...] = (),
        property_types: tuple[str, ...] = (),
    ) -> TransactionOutcome:
        """Royalties default to the creating account."""
        intent = CreateToken(
            collection_name=collection_name,
            name=name,
            description=description,
            supply=supply,
            uri=uri,
            royalty_payee_address=royalty_payee_address or account.address,
            royalty_points_denominator=royalty_points_denominator,
            royalty_points_numerator=royalty_points_numerator,
            property_keys=tuple(property_keys),
            property_values=tuple(property_values),
            property_types=tuple(property_types),
        )
        return await self.orchestrator.submit(account, intent)

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
        return await self.orchestrator.submit(
            account,
            OfferToken(receiver, creator, collection_name, name, amount, property_version),
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
        return await self.orchestrator.submit(
            account, ClaimToken(sender, creator, collection_name, name, property_version),
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
        return await self.orchestrator.submit(
            account,
            CancelTokenOffer(receiver, creator, collection_name, name, property_version),
        )

    # ── reads ────────────────────────────────────────────────────

    async def _collections(self, creator: str, *, cached: bool = False) -> dict:
        if not cached:
            resources = await self.ledger.get_account_resources(creator)
            return _find_resource(resources, COLLECTIONS, creator)
        key = f"resources--{creator}"
        if self.cache.has(key):
            resources = self.cache.get(key)
        else:
            resources = await self.ledger.get_account_resources(creator)
            self.cache.set(key, resources)
        return _find_resource(resources, COLLECTIONS, creator)

    async def get_collection_data(self, creator: str, collection_name: str) -> Any:
        collections = await self._collections(creator)
        request = {
            "key_type": STRING_TYPE,
            "value_type": f"{TOKEN_MODULE}::Collection",
            "key": collection_name,
        }
        return await self.ledger.get_table_item(
            collections["data"]["collection_data"]["handle"], request,
        )

    async def get_collection(self, address: str, collection_name: str) -> Any:
        collections = await self._collections(address)
        request = {
            "key_type": STRING_TYPE,
            "value_type": f"{TOKEN_MODULE}::Collection",
            "key": collection_name,
        }
        item = await self.ledger.get_table_item(
            collections["data"]["collections"]["handle"], request,
        )
        return item["data"]

    async def get_token_data(self, creator: str, collection_name: str, token_name: str) -> Any:
        """
        TokenData for *token_name* in the creator's collection.

        The TokenDataId key carries the name as plain text, the same way
        ``get_token`` and ``get_tokens`` key it. It is not hex-encoded,
        because the node decodes ``0x1::string::String`` key fields from
        JSON strings.
        """
        collections = await self._collections(creator)
        request = {
            "key_type": f"{TOKEN_MODULE}::TokenDataId",
            "value_type": f"{TOKEN_MODULE}::TokenData",
            "key": {"creator": creator, "collection": collection_name, "name": token_name},
        }
        item = await self.ledger.get_table_item(
            collections["data"]["token_data"]["handle"], request,
        )
        return item["data"]

    async def get_token_balance_for_account(self, address: str, token_id: dict) -> Any:
        store = await self.ledger.get_account_resource(address, TOKEN_STORE)
        if store is None:
            raise LedgerError(404, f"{TOKEN_STORE} not found under {address}")
        request = {
            "key_type": f"{TOKEN_MODULE}::TokenId",
            "value_type": f"{TOKEN_MODULE}::Token",
            "key": token_id,
        }
        item = await self.ledger.get_table_item(store["data"]["tokens"]["handle"], request)
        return item["data"]

    async def get_token_balance(
        self,
        creator: str,
        collection_name: str,
        token_name: str,
        property_version: str = "0",
    ) -> Any:
        """Balance held by the creator itself."""
        token_data_id = {"creator": creator, "collection": collection_name, "name": token_name}
        return await self.get_token_balance_for_account(
            creator, {"token_data_id": token_data_id, "property_version": property_version},
        )

    async def get_token_ids(
        self, address: str, limit: int | None = None, start: int | None = None,
    ) -> list[dict]:
        """
        Token ids currently held by *address*.

        A token is held when it has one more deposit than withdrawal
        event. Each id is reported once, with the sequence number of its
        latest deposit.
        """
        deposits = await self.ledger.get_events_by_event_handle(
            address, TOKEN_STORE, "deposit_events", limit, start,
        )
        withdrawals = await self.ledger.get_events_by_event_handle(
            address, TOKEN_STORE, "withdraw_events", limit, start,
        )

        balance: dict[str, int] = {}
        for event in deposits:
            key = _id_key(event["data"]["id"])
            balance[key] = balance.get(key, 0) + 1
        for event in withdrawals:
            key = _id_key(event["data"]["id"])
            balance[key] = balance.get(key, 0) - 1

        held: dict[str, dict] = {}
        for event in deposits:
            key = _id_key(event["data"]["id"])
            if balance[key] == 1:
                held[key] = {
                    "data": event["data"]["id"],
                    "sequence_number": event["sequence_number"],
                }
        return list(held.values())

    async def get_tokens(
        self, address: str, limit: int | None = None, start: int | None = None,
    ) -> list[dict]:
        """Token data for every held token, looked up one at a time."""
        tokens = []
        for token_id in await self.get_token_ids(address, limit, start):
            creator = token_id["data"]["creator"]
            collections = await self._collections(creator, cached=True)
            request = {
                "key_type": f"{TOKEN_MODULE}::TokenId",
                "value_type": f"{TOKEN_MODULE}::TokenData",
                "key": token_id["data"],
            }
            cache_key = _id_key(request)
            if self.cache.has(cache_key):
                token = self.cache.get(cache_key)
            else:
                item = await self.ledger.get_table_item(
                    collections["data"]["token_data"]["handle"], request,
                )
                token = item["data"]
                self.cache.set(cache_key, token)
            tokens.append({"token": token, "sequence_number": token_id["sequence_number"]})
        logger.debug(f"Listed {len(tokens)} tokens", extra={"address": address})
        return tokens

    async def get_token(self, token_id: dict) -> Any:
        collections = await self._collections(token_id["creator"])
        request = {
            "key_type": f"{TOKEN_MODULE}::TokenId",
            "value_type": f"{TOKEN_MODULE}::TokenData",
            "key": token_id,
        }
        item = await self.ledger.get_table_item(
            collections["data"]["token_data"]["handle"], request,
        )
        return item["data"]

    async def get_custom_resource(
        self,
        address: str,
        resource_type: str,
        field_name: str,
        key_type: str,
        value_type: str,
        key: Any,
    ) -> Any:
        """Look up *key* in the table stored at ``<resource_type>.<field_name>``."""
        resources = await self.ledger.get_account_resources(address)
        resource = _find_resource(resources, resource_type, address)
        request = {"key_type": key_type, "value_type": value_type, "key": key}
        item = await self.ledger.get_table_item(resource["data"][field_name]["handle"], request)
        return item["data"]
