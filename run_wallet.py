#!/usr/bin/env python3
"""
aptwallet command line - wallet operations against a ledger node.

Subcommands:
  - create        new mnemonic plus its first on-chain account
  - import        discover every account owned by a mnemonic
  - new-account   register the next free wallet-index
  - balance       native coin balance of an address
  - airdrop       fund an address from the faucet
  - transfer      send native coins from an account
  - rotate        move an account's signing key to the next address-index

Usage:
    python run_wallet.py create
    APTWALLET_MNEMONIC="..." python run_wallet.py import
    python run_wallet.py transfer --path "m/44'/637'/0'/0/0" --address 0xabc.. 0xdef.. 100

The mnemonic is read from --mnemonic or APTWALLET_MNEMONIC. Results are
printed to stdout as JSON; logs go to stderr.

Environment variables (alternative to flags):
    APTWALLET_NODE_URL, APTWALLET_FAUCET_URL, APTWALLET_MNEMONIC
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import os
import sys

import aiohttp

# ---------------------------------------------------------------------------
# Ensure the project root is in sys.path so imports work before pip install
# ---------------------------------------------------------------------------
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from aptwallet_core.account import AccountRecord, account_from_record  # noqa: E402
from aptwallet_core.config import AptWalletConfig, load_config  # noqa: E402
from aptwallet_core.errors import WalletError  # noqa: E402
from aptwallet_core.logging_config import setup_logging  # noqa: E402
from aptwallet_core.wallet_client import WalletClient  # noqa: E402

logger = logging.getLogger("aptwallet_cli")


# ===================================================================
#  Argument parsing
# ===================================================================

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="aptwallet", description="HD wallet client")
    p.add_argument("--config", default=None, help="Path to aptwallet.toml config file")
    p.add_argument("--node-url", default=None, help="Ledger node REST endpoint")
    p.add_argument("--faucet-url", default=None, help="Faucet endpoint")
    p.add_argument("--mnemonic", default=os.environ.get("APTWALLET_MNEMONIC", ""),
                   help="Mnemonic phrase (prefer APTWALLET_MNEMONIC)")
    p.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")

    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("create", help="Create a new wallet")
    sub.add_parser("import", help="Discover the accounts of a mnemonic")
    sub.add_parser("new-account", help="Create the next account of a mnemonic")

    balance = sub.add_parser("balance", help="Native coin balance")
    balance.add_argument("address")

    airdrop = sub.add_parser("airdrop", help="Fund an address from the faucet")
    airdrop.add_argument("address")
    airdrop.add_argument("amount", type=int)

    transfer = sub.add_parser("transfer", help="Send native coins")
    _add_record_args(transfer)
    transfer.add_argument("recipient")
    transfer.add_argument("amount", type=int)

    rotate = sub.add_parser("rotate", help="Rotate an account's authentication key")
    _add_record_args(rotate)
    return p


def _add_record_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--path", required=True, help="Derivation path of the signing key")
    p.add_argument("--address", required=True, help="On-chain address of the account")


def _require_mnemonic(args: argparse.Namespace) -> str:
    if not args.mnemonic:
        raise SystemExit("a mnemonic is required (--mnemonic or APTWALLET_MNEMONIC)")
    return args.mnemonic.strip()


def _apply_overrides(cfg: AptWalletConfig, args: argparse.Namespace) -> AptWalletConfig:
    if args.node_url:
        cfg.client.node_url = args.node_url
    if args.faucet_url:
        cfg.client.faucet_url = args.faucet_url
    if args.log_level:
        cfg.logging.level = args.log_level.upper()
    return cfg


# ===================================================================
#  Commands
# ===================================================================

async def run_command(client: WalletClient, args: argparse.Namespace) -> object:
    cmd = args.command
    if cmd == "create":
        return (await client.create_wallet()).to_dict()
    if cmd == "import":
        return (await client.import_wallet(_require_mnemonic(args))).to_dict()
    if cmd == "new-account":
        return (await client.create_new_account(_require_mnemonic(args))).to_dict()
    if cmd == "balance":
        return {"address": args.address, "balance": await client.get_balance(args.address)}
    if cmd == "airdrop":
        return {"hashes": await client.airdrop(args.address, args.amount)}

    record = AccountRecord(args.path, args.address)
    code = _require_mnemonic(args)
    if cmd == "transfer":
        account = account_from_record(code, record)
        outcome = await client.transfer(account, args.recipient, args.amount)
        return outcome.to_dict()
    if cmd == "rotate":
        result = await client.rotate_auth_key(code, record)
        out = result.to_dict()
        if result.record is not None:
            out["record"] = result.record.to_dict()
        return out
    raise ValueError(f"unknown command {cmd!r}")


async def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    # Load config (TOML + env overrides), then CLI flags
    cfg = _apply_overrides(load_config(args.config), args)
    setup_logging(level=cfg.logging.level, fmt=cfg.logging.format, log_file=cfg.logging.file)

    async with WalletClient.from_config(cfg) as client:
        try:
            result = await run_command(client, args)
        except (WalletError, ValueError, aiohttp.ClientError) as exc:
            logger.error(f"{args.command} failed: {exc}")
            return 1
    print(json.dumps(result, indent=2))
    return 0


def main_sync() -> None:
    """Synchronous entry point for console_scripts."""
    with contextlib.suppress(KeyboardInterrupt):
        sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    main_sync()
