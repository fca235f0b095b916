"""
Canonical encoding, hashing, configuration and logging tests.
"""

import json
import logging
import unittest

from heirvault.canonicalization import canonicalize, canonicalize_str
from heirvault.config import KDF_PROFILES, VaultConfig, kdf_limits
from heirvault.errors import ErrorCode, InputError, ReentrancyError, StateError
from heirvault.hashing import SNARK_SCALAR_FIELD, claim_signal, external_nullifier, field_hash
from heirvault.logging_config import StructuredFormatter, VaultEventLogger, configure_logging
from heirvault.util import is_zero_address, mask_sensitive


class TestCanonicalization(unittest.TestCase):

    def test_key_order_and_whitespace(self):
        self.assertEqual(canonicalize_str({"b": 1, "a": [2, {"d": 3, "c": None}]}),
                         '{"a":[2,{"c":null,"d":3}],"b":1}')

    def test_equivalent_records_match(self):
        self.assertEqual(canonicalize({"x": 1, "y": "z"}), canonicalize({"y": "z", "x": 1}))

    def test_unicode_is_utf8(self):
        self.assertEqual(canonicalize({"k": "é"}), '{"k":"é"}'.encode("utf-8"))

    def test_floats_rejected(self):
        with self.assertRaises(ValueError):
            canonicalize({"amount": 1.5})

    def test_non_string_keys_rejected(self):
        with self.assertRaises(ValueError):
            canonicalize({1: "a"})

    def test_unknown_types_rejected(self):
        with self.assertRaises(ValueError):
            canonicalize({"when": object()})


class TestHashing(unittest.TestCase):

    def test_field_hash_in_field(self):
        for obj in ({"a": 1}, [1, 2, 3], "x", 0):
            self.assertLess(field_hash(obj), SNARK_SCALAR_FIELD)

    def test_external_nullifier_scoping(self):
        vault = "0x000000000000000000000000000000000000fa17"
        self.assertEqual(external_nullifier(vault, 1), external_nullifier(vault.upper().replace("0X", "0x"), 1))
        self.assertNotEqual(external_nullifier(vault, 1), external_nullifier(vault, 2))
        self.assertNotEqual(external_nullifier(vault, 1), external_nullifier(vault[:-1] + "8", 1))

    def test_claim_signal_binds_every_parameter(self):
        base = claim_signal("0xabc", 10, 1)
        self.assertNotEqual(base, claim_signal("0xabd", 10, 1))
        self.assertNotEqual(base, claim_signal("0xabc", 11, 1))
        self.assertNotEqual(base, claim_signal("0xabc", 10, 2))

    def test_domains_are_separated(self):
        """A signal can never collide with an external nullifier for the same inputs."""
        self.assertNotEqual(claim_signal("0xabc", 0, 1), external_nullifier("0xabc", 1))


class TestConfig(unittest.TestCase):

    def test_defaults(self):
        config = VaultConfig(heartbeat_interval=86400, challenge_window=604800)
        self.assertEqual(config.claim_round, 1)

    def test_negative_round_rejected(self):
        with self.assertRaises(InputError) as cm:
            VaultConfig(claim_round=-1)
        self.assertEqual(cm.exception.code, ErrorCode.INVALID_PARAMETER)

    def test_kdf_profiles(self):
        self.assertEqual(kdf_limits("interactive"), KDF_PROFILES["interactive"])
        with self.assertRaises(InputError):
            kdf_limits("fast")


class TestErrors(unittest.TestCase):

    def test_to_dict(self):
        err = InputError(ErrorCode.INVALID_AMOUNT, "bad amount", {"amount": 0})
        self.assertEqual(err.to_dict(), {
            "error": "InputError",
            "code": "INVALID_AMOUNT",
            "message": "bad amount",
            "details": {"amount": 0},
        })

    def test_default_message_is_code(self):
        self.assertEqual(str(StateError(ErrorCode.NOT_ALIVE)), "NOT_ALIVE")

    def test_reentrancy_is_state_error(self):
        err = ReentrancyError("claim")
        self.assertIsInstance(err, StateError)
        self.assertEqual(err.details, {"operation": "claim"})


class TestUtil(unittest.TestCase):

    def test_zero_address(self):
        for addr in ("", "0x", "0x" + "0" * 40, "0X0000", "000"):
            self.assertTrue(is_zero_address(addr), addr)
        self.assertFalse(is_zero_address("0x01"))

    def test_mask(self):
        self.assertEqual(mask_sensitive(1234567890), "****567890")
        self.assertEqual(mask_sensitive("abc"), "***")


class TestStructuredLogging(unittest.TestCase):

    def test_formatter_merges_extra_fields(self):
        record = logging.LogRecord("heirvault.test", logging.INFO, __file__, 1, "hello", (), None)
        record.extra_fields = {"event_type": "CLAIMED", "vault": "0xfa17"}
        data = json.loads(StructuredFormatter().format(record))
        self.assertEqual(data["message"], "hello")
        self.assertEqual(data["level"], "INFO")
        self.assertEqual(data["event_type"], "CLAIMED")
        self.assertTrue(data["timestamp"].endswith("Z"))

    def test_configure_logging(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_logging(level="debug", json_format=True)
            self.assertEqual(root.level, logging.DEBUG)
            self.assertEqual(len(root.handlers), 1)
            self.assertIsInstance(root.handlers[0].formatter, StructuredFormatter)

            configure_logging(level="WARNING", json_format=False)
            self.assertNotIsInstance(root.handlers[0].formatter, StructuredFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_event_logger_masks_identifiers(self):
        events = VaultEventLogger(name="heirvault.test.events", vault_address="0xfa17")
        commitment = 123456789012345
        with self.assertLogs("heirvault.test.events", level="INFO") as cm:
            events.heir_added(commitment, 1)
        fields = cm.records[0].extra_fields
        self.assertEqual(fields["vault"], "0xfa17")
        self.assertNotIn(str(commitment), json.dumps(fields))


if __name__ == "__main__":
    unittest.main(verbosity=2)
