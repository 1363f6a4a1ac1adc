"""
aptwallet - HD wallet client for Move-based ledgers.

Key features:
- BIP-39 mnemonics and BIP-44 derivation (m/44'/637'/<wallet>'/0/<address>)
- Account discovery across wallet indices, including rotated keys
- Orchestrated sign -> submit -> confirm for every ledger write
- Authentication-key rotation within the discovery gap window
- NFT collections, tokens and offers; managed coins
"""

__version__ = "0.4.0"
__all__ = [
    "account",
    "cache",
    "config",
    "crypto_utils",
    "discovery",
    "errors",
    "ledger_client",
    "logging_config",
    "orchestrator",
    "payloads",
    "rotation",
    "tokens",
    "wallet",
    "wallet_client",
]
