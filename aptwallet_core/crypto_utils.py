"""
Hashing and hex helpers shared by the key, payload and client layers.
"""

from __future__ import annotations

import hashlib

# Single-signer Ed25519 authentication-key scheme byte.
ED25519_SCHEME = b"\x00"


def sha3_256(data: bytes) -> bytes:
    return hashlib.sha3_256(data).digest()


def ensure_hex(value: str | bytes) -> str:
    """Return *value* as a lowercase ``0x``-prefixed hex string."""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = value.strip().lower()
    if text.startswith("0x"):
        return text
    return "0x" + text


def strip_hex_prefix(value: str) -> str:
    return value[2:] if value.lower().startswith("0x") else value


def canonical_address(value: str) -> str:
    """Full-width form of an account address, so ``0xabc`` equals ``0x0abc``."""
    return "0x" + strip_hex_prefix(ensure_hex(value)).zfill(64)


def hex_to_bytes(value: str) -> bytes:
    return bytes.fromhex(strip_hex_prefix(value))


def utf8_hex(text: str) -> str:
    """Hex-encode a UTF-8 string for entry points expecting raw bytes."""
    return text.encode("utf-8").hex()


def auth_key_for(public_key: bytes) -> str:
    """Authentication key of an Ed25519 public key: sha3-256(pubkey || 0x00)."""
    return ensure_hex(sha3_256(public_key + ED25519_SCHEME))
