"""
Deterministic key material for the wallet client.

Provides:
  - BIP-39 mnemonic generation, validation and seed derivation
  - BIP-44 derivation paths  m/44'/637'/<wallet>'/0/<address>
  - HD key derivation (BIP-32, secp256k1 arithmetic)
  - Ed25519 local accounts seeded from the derived private key

Everything here is pure: no network access, no caching of private keys.
Every caller re-derives from the mnemonic it is handed.
"""

from __future__ import annotations

import hashlib
import hmac
import re
import struct
from dataclasses import dataclass

from ecdsa import SECP256k1, SigningKey as ECSigningKey
from mnemonic import Mnemonic
from nacl.signing import SigningKey

from aptwallet_core.crypto_utils import auth_key_for, ensure_hex
from aptwallet_core.errors import InvalidMnemonic

COIN_TYPE = 637
MAX_ACCOUNTS = 5
ADDRESS_GAP = 10


# ===================================================================
#  BIP-39 Mnemonic Support
# ===================================================================

_MNEMONIC = Mnemonic("english")


def generate_mnemonic(strength: int = 128) -> str:
    """Generate a new BIP-39 mnemonic phrase (128 bits -> 12 words)."""
    if strength not in (128, 160, 192, 224, 256):
        raise ValueError("Strength must be 128/160/192/224/256")
    return _MNEMONIC.generate(strength=strength)


def validate_mnemonic(code: str) -> bool:
    """Check word count, wordlist membership and checksum."""
    if not isinstance(code, str):
        return False
    return _MNEMONIC.check(code)


def mnemonic_to_seed(code: str, passphrase: str = "") -> bytes:
    """Convert a validated mnemonic phrase to a 64-byte seed."""
    if not validate_mnemonic(code):
        raise InvalidMnemonic()
    return Mnemonic.to_seed(code, passphrase)


# ===================================================================
#  Derivation paths
# ===================================================================

_PATH_RE = re.compile(r"^m/44'/(\d+)'/(\d+)'/0/(\d+)$")


@dataclass(frozen=True)
class DerivationPath:
    """(purpose=44, coin_type, wallet_index, change=0, address_index)."""
    wallet_index: int
    address_index: int
    coin_type: int = COIN_TYPE

    def __post_init__(self):
        if self.wallet_index < 0 or self.address_index < 0:
            raise ValueError("derivation indices must be non-negative")

    def __str__(self) -> str:
        return f"m/44'/{self.coin_type}'/{self.wallet_index}'/0/{self.address_index}"

    @classmethod
    def parse(cls, text: str) -> DerivationPath:
        match = _PATH_RE.match(text.strip())
        if match is None:
            raise ValueError(f"Unsupported derivation path: {text!r}")
        coin, wallet_index, address_index = (int(g) for g in match.groups())
        return cls(wallet_index, address_index, coin)

    def next_address(self) -> DerivationPath:
        return DerivationPath(self.wallet_index, self.address_index + 1, self.coin_type)


# ===================================================================
#  HD Key Derivation (BIP-32 / BIP-44 style)
# ===================================================================

class HDNode:
    """
    Hierarchical Deterministic key derivation node.

    Implements BIP-32 derivation with HMAC-SHA512 over secp256k1.
    The resulting 32-byte private keys seed Ed25519 accounts.
    """

    HARDENED = 0x80000000

    def __init__(self, private_key: bytes, chain_code: bytes, depth: int = 0,
                 index: int = 0):
        self.private_key = private_key
        self.chain_code = chain_code
        self.depth = depth
        self.index = index

    @classmethod
    def from_seed(cls, seed: bytes) -> HDNode:
        """Create master node from a BIP-39 seed."""
        I = hmac.new(b"Bitcoin seed", seed, hashlib.sha512).digest()
        return cls(private_key=I[:32], chain_code=I[32:])

    def derive_child(self, index: int) -> HDNode:
        """Derive a child node at the given index."""
        if index >= self.HARDENED:
            data = b"\x00" + self.private_key + struct.pack(">I", index)
        else:
            data = self._get_compressed_pub() + struct.pack(">I", index)

        I = hmac.new(self.chain_code, data, hashlib.sha512).digest()
        child_key_int = (int.from_bytes(I[:32], "big") +
                         int.from_bytes(self.private_key, "big"))
        child_key_int %= SECP256k1.order

        return HDNode(
            private_key=child_key_int.to_bytes(32, "big"),
            chain_code=I[32:],
            depth=self.depth + 1,
            index=index,
        )

    def derive_path(self, path: str | DerivationPath) -> HDNode:
        """
        Derive from a BIP-44 path like "m/44'/637'/0'/0/0".
        """
        path = str(path)
        if path == "m":
            return self
        if path.startswith("m/"):
            path = path[2:]

        node = self
        for component in path.split("/"):
            if component.endswith("'"):
                index = int(component[:-1]) + self.HARDENED
            else:
                index = int(component)
            node = node.derive_child(index)
        return node

    def _get_compressed_pub(self) -> bytes:
        """Get compressed (33-byte) secp256k1 public key."""
        sk = ECSigningKey.from_string(self.private_key, curve=SECP256k1)
        raw = sk.get_verifying_key().to_string()
        x, y = raw[:32], raw[32:]
        prefix = b"\x02" if y[-1] % 2 == 0 else b"\x03"
        return prefix + x

    def to_account(self, address: str | None = None) -> LocalAccount:
        return LocalAccount(self.private_key, address)


# ===================================================================
#  Ed25519 accounts
# ===================================================================

class LocalAccount:
    """
    Ed25519 key pair plus the on-chain address it signs for.

    The address defaults to the key's own authentication key, which is
    the address an account receives on creation. After a key rotation the
    address stays fixed while the signing key moves, so callers pin it.
    """

    def __init__(self, private_key: bytes, address: str | None = None):
        self._signing_key = SigningKey(bytes(private_key[:32]))
        self.public_key: bytes = bytes(self._signing_key.verify_key)
        self.address: str = ensure_hex(address) if address else self.auth_key()

    @property
    def public_key_hex(self) -> str:
        return ensure_hex(self.public_key)

    def auth_key(self) -> str:
        return auth_key_for(self.public_key)

    def sign(self, message: bytes) -> bytes:
        return bytes(self._signing_key.sign(message).signature)

    def sign_hex(self, message: bytes) -> str:
        return ensure_hex(self.sign(message))

    def __repr__(self) -> str:
        return f"LocalAccount({self.address})"


def derive_account(seed: bytes, path: str | DerivationPath,
                   address: str | None = None) -> LocalAccount:
    return HDNode.from_seed(seed).derive_path(path).to_account(address)


def account_from_private_key(private_key: bytes, address: str | None = None) -> LocalAccount:
    return LocalAccount(private_key, address)


def account_from_mnemonic(code: str) -> LocalAccount:
    """Account at m/44'/637'/0'/0/0."""
    return derive_account(mnemonic_to_seed(code), DerivationPath(0, 0))


def sign_message(account: LocalAccount, message: str) -> str:
    """Sign an arbitrary UTF-8 message; returns the hex signature."""
    return account.sign_hex(message.encode("utf-8"))
