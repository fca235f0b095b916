"""
Asset Ledger & Equal-Split Distribution

Freezes a snapshot of every tracked asset when expiry starts and pays
out shares as heirs claim, stranding no value.

For each claim, with n = heirs_remaining before the claim:

    share[a] = remaining[a] // n          (skipped when 0)
    remaining[a] -= share[a]
    heirs_remaining -= 1
    if heirs_remaining == 0:
        share[a] += remaining[a]          (the floor-division dust)
        remaining[a] = 0

Summed over any claim order, each asset pays out exactly its snapshot.
Whoever empties heirs_remaining collects the dust; earlier claimants may
receive less than snapshot // heirs_total once the pool has shrunk. Both
are accepted consequences of unordered, anonymous claimants.
"""

import copy
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence, Set

from .errors import ErrorCode, InputError, ResourceExhaustionError
from .treasury import Payout
from .util import is_zero_address

NATIVE_ASSET = "native"


@dataclass
class LedgerState:
    heirs_total: int = 0
    heirs_remaining: int = 0
    snapshot: Dict[str, int] = field(default_factory=dict)
    remaining: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class PayoutPlan:
    """Outcome of one claim, computed before anything is mutated."""
    payouts: List[Payout]
    remaining_after: Dict[str, int]
    heirs_remaining_after: int

    @property
    def is_final(self) -> bool:
        return self.heirs_remaining_after == 0

    def total(self, asset: str) -> int:
        return sum(amount for a, amount in self.payouts if a == asset)


def compute_payout(
    remaining: Mapping[str, int],
    assets: Sequence[str],
    heirs_remaining: int
) -> PayoutPlan:
    """
    Compute one claimant's payout.

    Pure: reads remaining balances, returns the plan. Assets are visited
    in the given order, which is also the order of the resulting payouts.

    Raises:
        ResourceExhaustionError: heirs_remaining is zero
    """
    if heirs_remaining <= 0:
        raise ResourceExhaustionError(ErrorCode.ALL_HEIRS_CLAIMED, "All heirs have claimed")

    after = {asset: remaining.get(asset, 0) for asset in assets}
    paid: Dict[str, int] = {}

    for asset in assets:
        balance = after[asset]
        if balance <= 0:
            continue
        share = balance // heirs_remaining
        if share > 0:
            after[asset] = balance - share
            paid[asset] = share

    left = heirs_remaining - 1
    if left == 0:
        for asset in assets:
            dust = after[asset]
            if dust > 0:
                paid[asset] = paid.get(asset, 0) + dust
                after[asset] = 0

    return PayoutPlan(
        payouts=[(asset, paid[asset]) for asset in assets if asset in paid],
        remaining_after=after,
        heirs_remaining_after=left,
    )


class AssetLedger:
    """
    Known assets plus the frozen snapshot/remaining accounting.

    The native asset is always tracked. Fungible assets are tracked once
    deposited: an ordered list fixes iteration order, a set answers
    "seen before?".
    """

    def __init__(self):
        self._assets: List[str] = []
        self._known: Set[str] = set()
        self.state = LedgerState()

    # -- assets ---------------------------------------------------------

    @staticmethod
    def validate_deposit(asset: str, amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InputError(ErrorCode.INVALID_AMOUNT, "Deposit amount must be a positive integer",
                             {"amount": amount})
        if not isinstance(asset, str):
            raise InputError(ErrorCode.INVALID_PARAMETER, "Asset identifier must be a string",
                             {"asset": type(asset).__name__})
        if asset != NATIVE_ASSET and is_zero_address(asset):
            raise InputError(ErrorCode.ZERO_ADDRESS, "Asset identifier is the zero address",
                             {"asset": asset})

    def register_asset(self, asset: str) -> bool:
        """Track an asset. Returns True the first time it is seen."""
        if asset == NATIVE_ASSET or asset in self._known:
            return False
        self._known.add(asset)
        self._assets.append(asset)
        return True

    def known_assets(self) -> List[str]:
        """Fungible assets in first-deposit order (native excluded)."""
        return list(self._assets)

    def tracked_assets(self) -> List[str]:
        return [NATIVE_ASSET] + self._assets

    # -- snapshot -------------------------------------------------------

    @property
    def heirs_total(self) -> int:
        return self.state.heirs_total

    @property
    def heirs_remaining(self) -> int:
        return self.state.heirs_remaining

    def snapshot_of(self, asset: str) -> int:
        return self.state.snapshot.get(asset, 0)

    def remaining_of(self, asset: str) -> int:
        return self.state.remaining.get(asset, 0)

    def take_snapshot(self, balances: Mapping[str, int], heirs: int) -> None:
        snap = {asset: balances.get(asset, 0) for asset in self.tracked_assets()}
        self.state = LedgerState(
            heirs_total=heirs,
            heirs_remaining=heirs,
            snapshot=snap,
            remaining=dict(snap),
        )

    def reset(self) -> None:
        self.state = LedgerState(
            snapshot={asset: 0 for asset in self.tracked_assets()},
            remaining={asset: 0 for asset in self.tracked_assets()},
        )

    # -- payout ---------------------------------------------------------

    def plan_payout(self) -> PayoutPlan:
        return compute_payout(self.state.remaining, self.tracked_assets(), self.state.heirs_remaining)

    def apply(self, plan: PayoutPlan) -> None:
        self.state.remaining.update(plan.remaining_after)
        self.state.heirs_remaining = plan.heirs_remaining_after

    def checkpoint(self) -> LedgerState:
        return copy.deepcopy(self.state)

    def restore(self, saved: LedgerState) -> None:
        self.state = copy.deepcopy(saved)
