"""
Structured logging configuration for the wallet client.

Supports two output formats:
  - **human** – coloured, single-line, readable
  - **json**  – newline-delimited JSON for log aggregators

Records may carry wallet context through ``extra=`` (``address``,
``txn_hash``, ``path``); both formatters render it. A filter on every
handler masks anything that looks like a mnemonic phrase so key material
never reaches a log sink.

Usage:
    from aptwallet_core.logging_config import setup_logging
    setup_logging(level="DEBUG", fmt="json", log_file="aptwallet.log")
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

CONTEXT_FIELDS = ("address", "txn_hash", "path")

# Twelve or more consecutive lowercase words: the shape of a BIP-39 phrase.
_MNEMONIC_RE = re.compile(r"\b(?:[a-z]{3,8}\s+){11,23}[a-z]{3,8}\b")
_REDACTED = "<redacted mnemonic>"


def _context(record: logging.LogRecord) -> dict:
    return {k: getattr(record, k) for k in CONTEXT_FIELDS if hasattr(record, k)}


class MnemonicRedactingFilter(logging.Filter):
    """Replace mnemonic-shaped substrings in the rendered message."""

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        redacted = _MNEMONIC_RE.sub(_REDACTED, msg)
        if redacted != msg:
            record.msg = redacted
            record.args = None
        return True


class _JSONFormatter(logging.Formatter):
    """Emit each log record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        log_obj.update(_context(record))
        if record.exc_info and record.exc_info[1]:
            log_obj["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_obj, default=str)


class _HumanFormatter(logging.Formatter):
    """Coloured, concise single-line format."""

    COLOURS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        colour = self.COLOURS.get(record.levelname, "")
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = (
            f"{colour}{ts} [{record.levelname:<7}]{self.RESET} "
            f"{record.name}: {record.getMessage()}"
        )
        ctx = _context(record)
        if ctx:
            line += " " + " ".join(f"{k}={v}" for k, v in ctx.items())
        if record.exc_info and record.exc_info[1]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str = "INFO",
    fmt: str = "human",
    log_file: Optional[str] = None,
    quiet_http: bool = True,
) -> None:
    """
    Configure the root logger for the wallet client.

    Parameters
    ----------
    level : str
        One of DEBUG, INFO, WARNING, ERROR, CRITICAL.
    fmt : str
        ``"human"`` or ``"json"``.
    log_file : str, optional
        Also write to this file, always as JSON.
    quiet_http : bool
        Raise aiohttp's own loggers to WARNING.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    redact = MnemonicRedactingFilter()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(_JSONFormatter() if fmt == "json" else _HumanFormatter())
    console.addFilter(redact)
    root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(path))
        fh.setFormatter(_JSONFormatter())
        fh.addFilter(redact)
        root.addHandler(fh)

    if quiet_http:
        for name in ("aiohttp.client", "aiohttp.access", "aiohttp.internal"):
            logging.getLogger(name).setLevel(logging.WARNING)
