"""
Equal-split ledger tests.

Conservation: over any claim order, every asset pays out exactly its
snapshot and nothing is left behind.
"""

import itertools
import unittest

from heirvault.errors import ErrorCode, InputError, ResourceExhaustionError
from heirvault.ledger import NATIVE_ASSET, AssetLedger, compute_payout

TOKEN = "0x00000000000000000000000000000000000070c3"
OTHER = "0x0000000000000000000000000000000000000b0b"


def drain(ledger: AssetLedger):
    """Claim until nothing is left; returns the per-claim payout dicts."""
    paid = []
    while ledger.heirs_remaining:
        plan = ledger.plan_payout()
        ledger.apply(plan)
        paid.append(dict(plan.payouts))
    return paid


class TestComputePayout(unittest.TestCase):

    def test_three_heirs_ten_units(self):
        """Shares of 10 over 3 heirs are 3, 3, 4."""
        remaining = {NATIVE_ASSET: 10}
        shares = []
        for n in (3, 2, 1):
            plan = compute_payout(remaining, [NATIVE_ASSET], n)
            shares.append(plan.total(NATIVE_ASSET))
            remaining = plan.remaining_after
        self.assertEqual(shares, [3, 3, 4])
        self.assertEqual(remaining[NATIVE_ASSET], 0)

    def test_final_claim_takes_dust(self):
        plan = compute_payout({NATIVE_ASSET: 7, TOKEN: 1}, [NATIVE_ASSET, TOKEN], 1)
        self.assertTrue(plan.is_final)
        self.assertEqual(plan.payouts, [(NATIVE_ASSET, 7), (TOKEN, 1)])
        self.assertEqual(plan.remaining_after, {NATIVE_ASSET: 0, TOKEN: 0})

    def test_zero_share_assets_skipped(self):
        """An asset whose share rounds to zero is not paid until the final claim."""
        plan = compute_payout({NATIVE_ASSET: 100, TOKEN: 2}, [NATIVE_ASSET, TOKEN], 3)
        self.assertEqual(plan.payouts, [(NATIVE_ASSET, 33)])
        self.assertEqual(plan.remaining_after[TOKEN], 2)

    def test_empty_vault_pays_nothing(self):
        plan = compute_payout({NATIVE_ASSET: 0}, [NATIVE_ASSET], 2)
        self.assertEqual(plan.payouts, [])
        self.assertEqual(plan.heirs_remaining_after, 1)

    def test_no_heirs_left(self):
        with self.assertRaises(ResourceExhaustionError) as cm:
            compute_payout({NATIVE_ASSET: 10}, [NATIVE_ASSET], 0)
        self.assertEqual(cm.exception.code, ErrorCode.ALL_HEIRS_CLAIMED)

    def test_does_not_mutate_input(self):
        remaining = {NATIVE_ASSET: 10}
        compute_payout(remaining, [NATIVE_ASSET], 3)
        self.assertEqual(remaining, {NATIVE_ASSET: 10})


class TestConservation(unittest.TestCase):

    def test_every_snapshot_is_paid_exactly(self):
        for heirs, native, token in itertools.product((1, 2, 3, 7), (0, 1, 10, 999), (0, 5, 101)):
            ledger = AssetLedger()
            ledger.register_asset(TOKEN)
            ledger.take_snapshot({NATIVE_ASSET: native, TOKEN: token}, heirs)
            paid = drain(ledger)

            self.assertEqual(len(paid), heirs)
            self.assertEqual(sum(p.get(NATIVE_ASSET, 0) for p in paid), native)
            self.assertEqual(sum(p.get(TOKEN, 0) for p in paid), token)
            self.assertGreaterEqual(paid[-1].get(NATIVE_ASSET, 0), native // heirs)
            self.assertGreaterEqual(paid[-1].get(TOKEN, 0), token // heirs)
            self.assertEqual(ledger.remaining_of(NATIVE_ASSET), 0)
            self.assertEqual(ledger.remaining_of(TOKEN), 0)

    def test_last_claimant_collects_dust(self):
        ledger = AssetLedger()
        ledger.take_snapshot({NATIVE_ASSET: 10}, 3)
        shares = [p[NATIVE_ASSET] for p in drain(ledger)]
        self.assertEqual(shares, [3, 3, 4])
        self.assertEqual(shares[-1], max(shares))

    def test_share_never_exceeds_remaining_over_remaining_heirs(self):
        ledger = AssetLedger()
        ledger.take_snapshot({NATIVE_ASSET: 1001}, 6)
        while ledger.heirs_remaining > 1:
            before = ledger.remaining_of(NATIVE_ASSET)
            n = ledger.heirs_remaining
            plan = ledger.plan_payout()
            self.assertLessEqual(plan.total(NATIVE_ASSET), before // n)
            ledger.apply(plan)


class TestAssetLedger(unittest.TestCase):

    def setUp(self):
        self.ledger = AssetLedger()

    def test_native_always_tracked(self):
        self.assertEqual(self.ledger.tracked_assets(), [NATIVE_ASSET])
        self.assertEqual(self.ledger.known_assets(), [])

    def test_register_asset_first_time_only(self):
        self.assertTrue(self.ledger.register_asset(TOKEN))
        self.assertFalse(self.ledger.register_asset(TOKEN))
        self.assertFalse(self.ledger.register_asset(NATIVE_ASSET))
        self.assertTrue(self.ledger.register_asset(OTHER))
        self.assertEqual(self.ledger.known_assets(), [TOKEN, OTHER])
        self.assertEqual(self.ledger.tracked_assets(), [NATIVE_ASSET, TOKEN, OTHER])

    def test_validate_deposit(self):
        for bad in (0, -1, True, 1.5, "10"):
            with self.assertRaises(InputError) as cm:
                AssetLedger.validate_deposit(NATIVE_ASSET, bad)
            self.assertEqual(cm.exception.code, ErrorCode.INVALID_AMOUNT)

        with self.assertRaises(InputError) as cm:
            AssetLedger.validate_deposit("0x" + "0" * 40, 5)
        self.assertEqual(cm.exception.code, ErrorCode.ZERO_ADDRESS)

        AssetLedger.validate_deposit(TOKEN, 1)

    def test_snapshot_covers_every_tracked_asset(self):
        self.ledger.register_asset(TOKEN)
        self.ledger.take_snapshot({NATIVE_ASSET: 50}, 2)
        self.assertEqual(self.ledger.snapshot_of(NATIVE_ASSET), 50)
        self.assertEqual(self.ledger.snapshot_of(TOKEN), 0)
        self.assertEqual(self.ledger.heirs_total, 2)
        self.assertEqual(self.ledger.heirs_remaining, 2)

    def test_reset_zeroes_snapshot(self):
        self.ledger.register_asset(TOKEN)
        self.ledger.take_snapshot({NATIVE_ASSET: 50, TOKEN: 9}, 2)
        self.ledger.reset()
        self.assertEqual(self.ledger.heirs_total, 0)
        self.assertEqual(self.ledger.heirs_remaining, 0)
        self.assertEqual(self.ledger.snapshot_of(TOKEN), 0)
        self.assertEqual(self.ledger.remaining_of(NATIVE_ASSET), 0)

    def test_checkpoint_restore(self):
        self.ledger.take_snapshot({NATIVE_ASSET: 10}, 3)
        saved = self.ledger.checkpoint()
        self.ledger.apply(self.ledger.plan_payout())
        self.assertEqual(self.ledger.remaining_of(NATIVE_ASSET), 7)

        self.ledger.restore(saved)
        self.assertEqual(self.ledger.remaining_of(NATIVE_ASSET), 10)
        self.assertEqual(self.ledger.heirs_remaining, 3)

        # The checkpoint is not aliased to live state
        self.ledger.apply(self.ledger.plan_payout())
        self.assertEqual(saved.remaining[NATIVE_ASSET], 10)


if __name__ == "__main__":
    unittest.main(verbosity=2)
