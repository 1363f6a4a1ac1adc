"""
Tests for aptwallet_core.logging_config — formatters, context and redaction.
"""

from __future__ import annotations

import json
import logging
import unittest

from aptwallet_core.logging_config import (
    MnemonicRedactingFilter,
    _HumanFormatter,
    _JSONFormatter,
    setup_logging,
)

PHRASE = "abandon " * 11 + "about"


def _record(msg: str, *args, **extra) -> logging.LogRecord:
    record = logging.LogRecord("aptwallet_test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestRedaction(unittest.TestCase):

    def test_mnemonic_masked(self):
        record = _record(f"importing {PHRASE}")
        MnemonicRedactingFilter().filter(record)
        self.assertEqual(record.getMessage(), "importing <redacted mnemonic>")

    def test_mnemonic_in_args_masked(self):
        record = _record("code=%s", PHRASE)
        MnemonicRedactingFilter().filter(record)
        self.assertNotIn("abandon", record.getMessage())

    def test_ordinary_message_untouched(self):
        record = _record("Submitted txn seq=%d", 4)
        self.assertTrue(MnemonicRedactingFilter().filter(record))
        self.assertEqual(record.getMessage(), "Submitted txn seq=4")
        self.assertEqual(record.args, (4,))


class TestFormatters(unittest.TestCase):

    def test_json_includes_context(self):
        out = json.loads(_JSONFormatter().format(_record("hi", address="0x1", txn_hash="0xab")))
        self.assertEqual(out["msg"], "hi")
        self.assertEqual(out["level"], "INFO")
        self.assertEqual(out["address"], "0x1")
        self.assertEqual(out["txn_hash"], "0xab")
        self.assertNotIn("path", out)

    def test_human_appends_context(self):
        line = _HumanFormatter().format(_record("hi", address="0x1"))
        self.assertIn("aptwallet_test: hi", line)
        self.assertTrue(line.endswith("address=0x1"))


class TestSetupLogging(unittest.TestCase):

    def setUp(self):
        self._saved = logging.getLogger().handlers[:]

    def tearDown(self):
        root = logging.getLogger()
        root.handlers[:] = self._saved

    def test_console_handler_has_filter(self):
        setup_logging(level="debug", fmt="json")
        root = logging.getLogger()
        self.assertEqual(root.level, logging.DEBUG)
        self.assertEqual(len(root.handlers), 1)
        handler = root.handlers[0]
        self.assertIsInstance(handler.formatter, _JSONFormatter)
        self.assertTrue(any(isinstance(f, MnemonicRedactingFilter) for f in handler.filters))

    def test_file_handler_is_json(self):
        import tempfile
        from pathlib import Path

        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "logs" / "wallet.log"
            setup_logging(level="INFO", fmt="human", log_file=str(path))
            root = logging.getLogger()
            self.assertEqual(len(root.handlers), 2)
            self.assertIsInstance(root.handlers[1].formatter, _JSONFormatter)
            logging.getLogger("aptwallet_test").info(f"restoring {PHRASE}")
            for h in root.handlers:
                h.flush()
            content = path.read_text()
            root.handlers[1].close()
        self.assertIn("<redacted mnemonic>", content)
        self.assertNotIn("abandon", content)

    def test_quiet_http(self):
        setup_logging()
        self.assertEqual(logging.getLogger("aiohttp.access").level, logging.WARNING)


if __name__ == "__main__":
    unittest.main()
