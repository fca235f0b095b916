"""
Anonymous Claim Authorizer

The enforcement point between a submitted membership proof and a payout.
A claim is authorized only if:

1. The payout address is not the zero address
2. The tree depth is one a membership proof can have
3. The signal equals the binding hash of (payout address, amount, round)
4. The Merkle root is one the group registry currently recognises
5. The nullifier has not been consumed
6. The external verifier accepts the proof for exactly these public inputs

Only then is the nullifier consumed. The verifier is a pure boolean check,
so the consumed-nullifier set is kept here and committed in the same vault
transition as the payout. Nothing about which commitment produced the
proof is ever learned or stored.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, FrozenSet, Set

from .config import MAX_TREE_DEPTH, MIN_TREE_DEPTH
from .errors import AuthorizationError, ErrorCode, InputError
from .hashing import claim_signal, external_nullifier
from .registry import HeirRegistry
from .util import is_zero_address, mask_sensitive

logger = logging.getLogger("heirvault.authorizer")


class Verifier(ABC):
    """
    Membership proof verifier capability.

    Substitute a real proving backend in production and a deterministic
    double in tests.
    """

    @abstractmethod
    def verify(
        self,
        root: int,
        nullifier: int,
        external_nullifier: int,
        signal: int,
        proof: Any
    ) -> bool:
        """True iff proof shows membership under root for these public inputs."""
        pass


@dataclass(frozen=True)
class ClaimRequest:
    """Everything an heir submits with a claim."""
    tree_depth: int
    root: int
    nullifier: int
    signal: int
    proof: Any
    payout_address: str
    amount: int


@dataclass(frozen=True)
class AuthorizedClaim:
    """A claim that passed every check; its nullifier is now consumed."""
    nullifier: int
    signal: int
    payout_address: str
    amount: int


class ConsumedNullifiers:
    """Append-only nullifier set with checkpoint/restore for rollback."""

    def __init__(self):
        self._used: Set[int] = set()

    def __contains__(self, nullifier: int) -> bool:
        return nullifier in self._used

    def __len__(self) -> int:
        return len(self._used)

    def consume(self, nullifier: int) -> None:
        self._used.add(nullifier)

    def checkpoint(self) -> FrozenSet[int]:
        return frozenset(self._used)

    def restore(self, saved: FrozenSet[int]) -> None:
        self._used = set(saved)


class ClaimAuthorizer:
    """
    Verifies claim proofs for one vault and consumes their nullifiers.

    Not thread-safe on its own; the vault serialises calls.
    """

    def __init__(
        self,
        verifier: Verifier,
        heirs: HeirRegistry,
        vault_address: str,
        claim_round: int
    ):
        self.verifier = verifier
        self.heirs = heirs
        self.vault_address = vault_address
        self.claim_round = claim_round
        self.external_nullifier = external_nullifier(vault_address, claim_round)
        self.nullifiers = ConsumedNullifiers()

    def expected_signal(self, payout_address: str, amount: int) -> int:
        return claim_signal(payout_address, amount, self.claim_round)

    def is_consumed(self, nullifier: int) -> bool:
        return nullifier in self.nullifiers

    def authorize(self, request: ClaimRequest) -> AuthorizedClaim:
        """
        Check a claim and consume its nullifier.

        Raises:
            InputError: mistyped parameters, zero payout address, bad
                amount or tree depth
            AuthorizationError: mis-bound signal, unknown root, reused
                nullifier, or a proof the verifier rejects
        """
        if not isinstance(request.payout_address, str):
            raise InputError(ErrorCode.INVALID_PARAMETER, "Payout address must be a string",
                             {"payout_address": type(request.payout_address).__name__})

        for name in ("root", "nullifier", "signal"):
            value = getattr(request, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InputError(ErrorCode.INVALID_PARAMETER, f"{name} must be an integer",
                                 {name: type(value).__name__})

        if is_zero_address(request.payout_address):
            raise InputError(ErrorCode.ZERO_ADDRESS, "Payout address is the zero address")

        if isinstance(request.amount, bool) or not isinstance(request.amount, int) or request.amount < 0:
            raise InputError(ErrorCode.INVALID_AMOUNT, "Claim amount must be a non-negative integer",
                             {"amount": request.amount})

        if (isinstance(request.tree_depth, bool) or not isinstance(request.tree_depth, int)
                or not MIN_TREE_DEPTH <= request.tree_depth <= MAX_TREE_DEPTH):
            raise InputError(
                ErrorCode.INVALID_TREE_DEPTH,
                f"Tree depth must be between {MIN_TREE_DEPTH} and {MAX_TREE_DEPTH}",
                {"tree_depth": request.tree_depth},
            )

        if request.signal != self.expected_signal(request.payout_address, request.amount):
            raise AuthorizationError(
                ErrorCode.SIGNAL_MISMATCH,
                "Signal does not bind the submitted payout address and amount",
            )

        if not self.heirs.is_valid_root(request.root):
            raise AuthorizationError(ErrorCode.UNKNOWN_ROOT, "Merkle root is not valid for the heir group")

        if request.nullifier in self.nullifiers:
            raise AuthorizationError(
                ErrorCode.NULLIFIER_ALREADY_USED,
                "Nullifier has already been used",
                {"nullifier": mask_sensitive(request.nullifier)},
            )

        try:
            valid = self.verifier.verify(
                request.root,
                request.nullifier,
                self.external_nullifier,
                request.signal,
                request.proof,
            )
        except Exception as e:
            # Verifier failure = fail closed
            logger.error("Verifier raised %s; rejecting proof", type(e).__name__)
            raise AuthorizationError(ErrorCode.INVALID_PROOF, "Proof verification failed") from e

        if valid is not True:
            raise AuthorizationError(ErrorCode.INVALID_PROOF, "Invalid membership proof")

        self.nullifiers.consume(request.nullifier)
        return AuthorizedClaim(
            nullifier=request.nullifier,
            signal=request.signal,
            payout_address=request.payout_address,
            amount=request.amount,
        )
