"""
Transaction intents and their wire payloads.

Each state-changing operation the wallet can perform has its own frozen
dataclass carrying a typed argument set. ``to_payload()`` is the single
conversion to the JSON entry-point payload the node accepts:

    {
        "type": "script_function_payload",
        "function": "<address>::<module>::<entry>",
        "type_arguments": [...],
        "arguments": [...],
    }

Wire rules: integers become decimal strings, addresses ``0x`` hex strings,
and text passed to entry points that expect raw bytes is hex-encoded.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from aptwallet_core.crypto_utils import ensure_hex, strip_hex_prefix, utf8_hex

SCRIPT_FUNCTION_PAYLOAD = "script_function_payload"

# Largest integer the JS-based tooling round-trips; used as "no maximum".
NUMBER_MAX = 9007199254740991

NATIVE_COIN = "0x1::test_coin::TestCoin"
TOKEN_MODULE = "0x3::token"
TOKEN_TRANSFERS_MODULE = "0x3::token_transfers"


def _uint(value: Any, name: str) -> str:
    """Render a non-negative integer argument as a decimal string."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    return str(value)


def _address(value: str, name: str) -> str:
    if not isinstance(value, str) or not strip_hex_prefix(value.strip()):
        raise ValueError(f"{name} must be a hex address")
    return ensure_hex(value)


@dataclass(frozen=True)
class GasOptions:
    max_gas_amount: int | None = None
    gas_unit_price: int | None = None

    def to_options(self) -> dict[str, str]:
        opts: dict[str, str] = {}
        if self.max_gas_amount is not None:
            opts["max_gas_amount"] = _uint(self.max_gas_amount, "max_gas_amount")
        if self.gas_unit_price is not None:
            opts["gas_unit_price"] = _uint(self.gas_unit_price, "gas_unit_price")
        return opts


class TransactionIntent:
    """Base for all intents. Subclasses define function/type args/args."""

    function: str = ""

    def type_arguments(self) -> list[str]:
        return []

    def arguments(self) -> list[Any]:
        return []

    def to_payload(self) -> dict:
        return {
            "type": SCRIPT_FUNCTION_PAYLOAD,
            "function": self.function,
            "type_arguments": self.type_arguments(),
            "arguments": self.arguments(),
        }


# ── coin transfers ───────────────────────────────────────────────


@dataclass(frozen=True)
class Transfer(TransactionIntent):
    """Native coin transfer."""
    recipient: str
    amount: int
    coin_type: str = NATIVE_COIN

    function = "0x1::coin::transfer"

    def type_arguments(self) -> list[str]:
        return [self.coin_type]

    def arguments(self) -> list[Any]:
        return [_address(self.recipient, "recipient"), _uint(self.amount, "amount")]


@dataclass(frozen=True)
class TransferCoin(TransactionIntent):
    """Transfer of any registered coin type, e.g. 0xabc::moon_coin::MoonCoin."""
    coin_type_path: str
    to_address: str
    amount: int

    function = "0x1::coin::transfer"

    def type_arguments(self) -> list[str]:
        return [self.coin_type_path]

    def arguments(self) -> list[Any]:
        return [_address(self.to_address, "to_address"), _uint(self.amount, "amount")]


# ── managed coins ────────────────────────────────────────────────


@dataclass(frozen=True)
class InitializeCoin(TransactionIntent):
    """Requires the coin's module to be published under the signer."""
    coin_type_path: str
    name: str
    symbol: str
    scaling_factor: int
    monitor_supply: bool = False

    function = "0x1::managed_coin::initialize"

    def type_arguments(self) -> list[str]:
        return [self.coin_type_path]

    def arguments(self) -> list[Any]:
        return [
            utf8_hex(self.name),
            utf8_hex(self.symbol),
            _uint(self.scaling_factor, "scaling_factor"),
            self.monitor_supply,
        ]


@dataclass(frozen=True)
class RegisterCoin(TransactionIntent):
    coin_type_path: str

    function = "0x1::coin::register"

    def type_arguments(self) -> list[str]:
        return [self.coin_type_path]


@dataclass(frozen=True)
class MintCoin(TransactionIntent):
    """Only an account holding the mint capability may submit this."""
    coin_type_path: str
    dst_address: str
    amount: int

    function = "0x1::managed_coin::mint"

    def type_arguments(self) -> list[str]:
        return [self.coin_type_path]

    def arguments(self) -> list[Any]:
        return [_address(self.dst_address, "dst_address"), _uint(self.amount, "amount")]


# ── NFTs ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CreateCollection(TransactionIntent):
    name: str
    description: str
    uri: str
    maximum: int = NUMBER_MAX

    function = f"{TOKEN_MODULE}::create_collection_script"

    def arguments(self) -> list[Any]:
        return [
            self.name,
            self.description,
            self.uri,
            _uint(self.maximum, "maximum"),
            [False, False, False],
        ]


@dataclass(frozen=True)
class CreateToken(TransactionIntent):
    collection_name: str
    name: str
    description: str
    supply: int
    uri: str
    royalty_payee_address: str
    royalty_points_denominator: int = 0
    royalty_points_numerator: int = 0
    property_keys: tuple[str, ...] = ()
    property_values: tuple[str, ...] = ()
    property_types: tuple[str, ...] = ()
    maximum: int = NUMBER_MAX

    function = f"{TOKEN_MODULE}::create_token_script"

    def __post_init__(self):
        if not (len(self.property_keys) == len(self.property_values) == len(self.property_types)):
            raise ValueError("property keys, values and types must have equal length")

    def arguments(self) -> list[Any]:
        return [
            self.collection_name,
            self.name,
            self.description,
            _uint(self.supply, "supply"),
            _uint(self.maximum, "maximum"),
            self.uri,
            _address(self.royalty_payee_address, "royalty_payee_address"),
            _uint(self.royalty_points_denominator, "royalty_points_denominator"),
            _uint(self.royalty_points_numerator, "royalty_points_numerator"),
            [False, False, False, False, False],
            list(self.property_keys),
            list(self.property_values),
            list(self.property_types),
        ]


@dataclass(frozen=True)
class OfferToken(TransactionIntent):
    receiver: str
    creator: str
    collection_name: str
    name: str
    amount: int
    property_version: int = 0

    function = f"{TOKEN_TRANSFERS_MODULE}::offer_script"

    def arguments(self) -> list[Any]:
        return [
            _address(self.receiver, "receiver"),
            _address(self.creator, "creator"),
            self.collection_name,
            self.name,
            _uint(self.property_version, "property_version"),
            _uint(self.amount, "amount"),
        ]


@dataclass(frozen=True)
class ClaimToken(TransactionIntent):
    sender: str
    creator: str
    collection_name: str
    name: str
    property_version: int = 0

    function = f"{TOKEN_TRANSFERS_MODULE}::claim_script"

    def arguments(self) -> list[Any]:
        return [
            _address(self.sender, "sender"),
            _address(self.creator, "creator"),
            self.collection_name,
            self.name,
            _uint(self.property_version, "property_version"),
        ]


@dataclass(frozen=True)
class CancelTokenOffer(TransactionIntent):
    receiver: str
    creator: str
    collection_name: str
    name: str
    property_version: int = 0

    function = f"{TOKEN_TRANSFERS_MODULE}::cancel_offer_script"

    def arguments(self) -> list[Any]:
        return [
            _address(self.receiver, "receiver"),
            _address(self.creator, "creator"),
            self.collection_name,
            self.name,
            _uint(self.property_version, "property_version"),
        ]


# ── account ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class RotateAuthKey(TransactionIntent):
    new_auth_key: str

    function = "0x1::account::rotate_authentication_key"

    def arguments(self) -> list[Any]:
        # The entry point takes the raw key bytes, hex without prefix.
        return [strip_hex_prefix(_address(self.new_auth_key, "new_auth_key"))]


# ── escape hatch ─────────────────────────────────────────────────


@dataclass(frozen=True)
class EntryFunctionCall(TransactionIntent):
    """Arbitrary entry function; arguments are passed through verbatim."""
    function_id: str
    args: tuple[Any, ...] = ()
    type_args: tuple[str, ...] = ()

    def __post_init__(self):
        if self.function_id.count("::") != 2:
            raise ValueError(
                f"function must look like <address>::<module>::<entry>, got {self.function_id!r}"
            )

    @property
    def function(self) -> str:  # type: ignore[override]
        return self.function_id

    def type_arguments(self) -> list[str]:
        return list(self.type_args)

    def arguments(self) -> list[Any]:
        return list(self.args)
