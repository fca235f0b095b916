"""
heirvault error taxonomy.

Every failure aborts the triggering operation with no partial state
mutation. Errors fall into four families:

    StateError               operation invalid for the current lifecycle state
    AuthorizationError       caller lacks the role, or the proof is invalid/used
    InputError               zero address, zero amount, malformed parameters
    ResourceExhaustionError  no heirs, all heirs claimed, deposits while frozen

TransferError (a failed payout) and ReentrancyError (a nested call into a
guarded operation) complete the set. Callers may switch on ``error.code``.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Failure codes raised by vault operations."""
    # State
    NOT_ALIVE = "NOT_ALIVE"
    STILL_ALIVE = "STILL_ALIVE"
    EXPIRY_ALREADY_STARTED = "EXPIRY_ALREADY_STARTED"
    EXPIRY_NOT_STARTED = "EXPIRY_NOT_STARTED"
    CHALLENGE_WINDOW_OVER = "CHALLENGE_WINDOW_OVER"
    CLAIM_NOT_OPEN = "CLAIM_NOT_OPEN"
    REENTRANT_CALL = "REENTRANT_CALL"

    # Authorization
    NOT_OWNER = "NOT_OWNER"
    INVALID_PROOF = "INVALID_PROOF"
    SIGNAL_MISMATCH = "SIGNAL_MISMATCH"
    UNKNOWN_ROOT = "UNKNOWN_ROOT"
    NULLIFIER_ALREADY_USED = "NULLIFIER_ALREADY_USED"

    # Input
    ZERO_ADDRESS = "ZERO_ADDRESS"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_TREE_DEPTH = "INVALID_TREE_DEPTH"
    INVALID_COMMITMENT = "INVALID_COMMITMENT"
    DUPLICATE_COMMITMENT = "DUPLICATE_COMMITMENT"
    INVALID_PARAMETER = "INVALID_PARAMETER"

    # Resource exhaustion
    NO_HEIRS = "NO_HEIRS"
    ALL_HEIRS_CLAIMED = "ALL_HEIRS_CLAIMED"
    DEPOSITS_FROZEN = "DEPOSITS_FROZEN"

    # Transfer
    TRANSFER_FAILED = "TRANSFER_FAILED"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"


class VaultError(Exception):
    """Base class for all heirvault failures."""

    def __init__(
        self,
        code: ErrorCode,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        self.details = details or {}
        super().__init__(message or code.value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "code": self.code.value,
            "message": str(self),
            "details": self.details,
        }


class StateError(VaultError):
    """Operation is not valid in the current lifecycle state."""


class ReentrancyError(StateError):
    """A guarded operation was entered again before it completed."""

    def __init__(self, operation: str):
        super().__init__(
            ErrorCode.REENTRANT_CALL,
            f"Re-entrant call into {operation}",
            {"operation": operation},
        )


class AuthorizationError(VaultError):
    """Caller lacks the required role, or the claim proof is not acceptable."""


class InputError(VaultError):
    """Malformed or out-of-range operation parameters."""


class ResourceExhaustionError(VaultError):
    """Nothing left to act on: no heirs, no unclaimed shares, or frozen deposits."""


class TransferError(VaultError):
    """A payout transfer failed; the surrounding claim was rolled back."""
