"""
Test suite for HD key derivation, BIP-39 mnemonics and Ed25519 accounts.

Covers:
  - BIP-39 mnemonic generation and validation
  - mnemonic_to_seed derivation and the InvalidMnemonic failure
  - DerivationPath formatting, parsing and next_address
  - HDNode from_seed, derive_child (normal + hardened), derive_path
  - LocalAccount keys, authentication key, address pinning, signing
  - Edge cases: invalid strength, non-canonical paths, negative indices
"""

import unittest

from nacl.signing import VerifyKey

from aptwallet_core.crypto_utils import auth_key_for, sha3_256
from aptwallet_core.errors import InvalidMnemonic, WalletError
from aptwallet_core.wallet import (
    ADDRESS_GAP,
    COIN_TYPE,
    MAX_ACCOUNTS,
    DerivationPath,
    HDNode,
    LocalAccount,
    account_from_mnemonic,
    account_from_private_key,
    derive_account,
    generate_mnemonic,
    mnemonic_to_seed,
    sign_message,
    validate_mnemonic,
)

ABANDON = "abandon " * 11 + "about"


class TestConstants(unittest.TestCase):

    def test_values(self):
        self.assertEqual(COIN_TYPE, 637)
        self.assertEqual(MAX_ACCOUNTS, 5)
        self.assertEqual(ADDRESS_GAP, 10)


class TestBIP39Mnemonic(unittest.TestCase):

    def test_generate_mnemonic_12_words(self):
        m = generate_mnemonic(128)
        self.assertEqual(len(m.split()), 12)

    def test_generate_mnemonic_24_words(self):
        m = generate_mnemonic(256)
        self.assertEqual(len(m.split()), 24)

    def test_invalid_entropy_strength(self):
        with self.assertRaises(ValueError):
            generate_mnemonic(100)

    def test_generated_mnemonic_validates(self):
        self.assertTrue(validate_mnemonic(generate_mnemonic()))

    def test_validate_known_vector(self):
        self.assertTrue(validate_mnemonic(ABANDON))

    def test_validate_bad_checksum(self):
        self.assertFalse(validate_mnemonic("abandon " * 12))

    def test_validate_invalid_word_count(self):
        self.assertFalse(validate_mnemonic("one two three"))

    def test_validate_non_string(self):
        self.assertFalse(validate_mnemonic(None))

    def test_mnemonic_to_seed_known_vector(self):
        seed = mnemonic_to_seed(ABANDON)
        self.assertEqual(len(seed), 64)
        self.assertTrue(seed.hex().startswith("5eb00bbddcf069084889a8ab9155568165f5c453"))

    def test_mnemonic_to_seed_passphrase_changes_seed(self):
        self.assertNotEqual(mnemonic_to_seed(ABANDON), mnemonic_to_seed(ABANDON, "x"))

    def test_mnemonic_to_seed_invalid_raises(self):
        with self.assertRaises(InvalidMnemonic) as ctx:
            mnemonic_to_seed("not a real mnemonic phrase at all")
        self.assertIsInstance(ctx.exception, WalletError)
        self.assertEqual(str(ctx.exception), "Incorrect mnemonic passed")


class TestDerivationPath(unittest.TestCase):

    def test_str(self):
        self.assertEqual(str(DerivationPath(2, 3)), "m/44'/637'/2'/0/3")

    def test_parse_roundtrip(self):
        path = DerivationPath.parse("m/44'/637'/4'/0/9")
        self.assertEqual(path, DerivationPath(4, 9))

    def test_parse_other_coin(self):
        self.assertEqual(DerivationPath.parse("m/44'/1'/0'/0/0").coin_type, 1)

    def test_parse_rejects_non_canonical(self):
        for bad in ("m/44'/637'/0'/0'/0'", "44'/637'/0'/0/0", "m/44'/637'/0'/1/0", ""):
            with self.subTest(path=bad):
                with self.assertRaises(ValueError):
                    DerivationPath.parse(bad)

    def test_next_address(self):
        nxt = DerivationPath(1, 4).next_address()
        self.assertEqual(nxt, DerivationPath(1, 5))

    def test_negative_index_rejected(self):
        with self.assertRaises(ValueError):
            DerivationPath(-1, 0)


class TestHDNode(unittest.TestCase):

    def setUp(self):
        self.master = HDNode.from_seed(mnemonic_to_seed(ABANDON))

    def test_from_seed(self):
        self.assertEqual(self.master.depth, 0)
        self.assertEqual(len(self.master.private_key), 32)
        self.assertEqual(len(self.master.chain_code), 32)

    def test_derive_child_normal(self):
        child = self.master.derive_child(0)
        self.assertEqual(child.depth, 1)
        self.assertNotEqual(child.private_key, self.master.private_key)

    def test_derive_child_hardened(self):
        hardened = self.master.derive_child(HDNode.HARDENED + 44)
        normal = self.master.derive_child(44)
        self.assertEqual(hardened.depth, 1)
        self.assertNotEqual(hardened.private_key, normal.private_key)

    def test_derive_path(self):
        self.assertEqual(self.master.derive_path("44'/637'/0'/0/0").depth, 5)

    def test_derive_path_m_prefix_matches(self):
        a = self.master.derive_path("m/44'/637'/0'/0/0")
        b = self.master.derive_path("44'/637'/0'/0/0")
        self.assertEqual(a.private_key, b.private_key)

    def test_derive_path_accepts_derivation_path(self):
        a = self.master.derive_path(DerivationPath(0, 1))
        b = self.master.derive_path("m/44'/637'/0'/0/1")
        self.assertEqual(a.private_key, b.private_key)

    def test_derive_path_m_only(self):
        self.assertIs(self.master.derive_path("m"), self.master)

    def test_derivation_is_deterministic(self):
        other = HDNode.from_seed(mnemonic_to_seed(ABANDON))
        path = DerivationPath(3, 7)
        self.assertEqual(
            self.master.derive_path(path).private_key,
            other.derive_path(path).private_key,
        )

    def test_different_indices_different_keys(self):
        keys = {
            self.master.derive_path(DerivationPath(w, a)).private_key
            for w in range(2) for a in range(3)
        }
        self.assertEqual(len(keys), 6)


class TestLocalAccount(unittest.TestCase):

    def setUp(self):
        self.seed = mnemonic_to_seed(ABANDON)

    def test_auth_key_is_sha3_of_key_and_scheme(self):
        acc = derive_account(self.seed, DerivationPath(0, 0))
        expected = "0x" + sha3_256(acc.public_key + b"\x00").hex()
        self.assertEqual(acc.auth_key(), expected)
        self.assertEqual(acc.auth_key(), auth_key_for(acc.public_key))

    def test_address_defaults_to_auth_key(self):
        acc = derive_account(self.seed, DerivationPath(0, 0))
        self.assertEqual(acc.address, acc.auth_key())
        self.assertEqual(len(acc.address), 66)

    def test_pinned_address(self):
        origin = derive_account(self.seed, DerivationPath(0, 0))
        rotated = derive_account(self.seed, DerivationPath(0, 1), origin.address)
        self.assertEqual(rotated.address, origin.address)
        self.assertNotEqual(rotated.auth_key(), origin.auth_key())

    def test_pinned_address_normalised(self):
        acc = account_from_private_key(b"\x01" * 32, "ABCDEF")
        self.assertEqual(acc.address, "0xabcdef")

    def test_public_key_hex(self):
        acc = account_from_private_key(b"\x07" * 32)
        self.assertEqual(len(acc.public_key), 32)
        self.assertEqual(acc.public_key_hex, "0x" + acc.public_key.hex())

    def test_sign_verifies(self):
        acc = account_from_private_key(b"\x02" * 32)
        sig = acc.sign(b"hello")
        self.assertEqual(len(sig), 64)
        VerifyKey(acc.public_key).verify(b"hello", sig)

    def test_sign_message_hex(self):
        acc = account_from_private_key(b"\x03" * 32)
        sig_hex = sign_message(acc, "hello")
        self.assertEqual(sig_hex, "0x" + acc.sign(b"hello").hex())

    def test_account_from_mnemonic_is_first_path(self):
        acc = account_from_mnemonic(ABANDON)
        expected = derive_account(self.seed, "m/44'/637'/0'/0/0")
        self.assertEqual(acc.address, expected.address)

    def test_account_from_mnemonic_invalid(self):
        with self.assertRaises(InvalidMnemonic):
            account_from_mnemonic("abandon abandon")

    def test_repr_hides_key(self):
        acc = LocalAccount(b"\x05" * 32)
        self.assertNotIn((b"\x05" * 32).hex(), repr(acc))
        self.assertIn(acc.address, repr(acc))


if __name__ == "__main__":
    unittest.main()
