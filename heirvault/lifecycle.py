"""
Liveness & Expiry State Machine

Owns the time-based lifecycle of a vault:

    ALIVE ──(deadline passes)──> LAPSED ──start_expiry──> CHALLENGE_WINDOW
      ^                                                        │
      └──────────────────────revoke_expiry─────────────────────┤
                                                               │ (window ends)
                                                               v
                                                           CLAIMABLE

LAPSED and CLAIMABLE are derived from the clock; only next_deadline and
challenge_window_end are stored. Every guard is a plain timestamp
comparison, so arbitrarily long gaps between calls are harmless.
"""

from dataclasses import dataclass
from enum import Enum

from .errors import ErrorCode, StateError


class LifecyclePhase(str, Enum):
    """Lifecycle phase at a given instant."""
    ALIVE = "ALIVE"                        # heartbeat deadline not yet passed
    LAPSED = "LAPSED"                      # deadline missed, expiry not started
    CHALLENGE_WINDOW = "CHALLENGE_WINDOW"  # expiry started, owner may revoke
    CLAIMABLE = "CLAIMABLE"                # window over, heirs may claim


@dataclass
class LifecycleState:
    next_deadline: int
    challenge_window_end: int = 0  # 0 = not in expiry
    frozen: bool = False


class LivenessStateMachine:
    """
    Heartbeat and expiry transitions.

    Holds no clock of its own: every query and transition takes ``now``
    so the vault can evaluate a whole operation against one instant.
    Guards raise StateError; transitions mutate only after all guards pass.
    """

    def __init__(self, heartbeat_interval: int, challenge_window: int, created_at: int):
        self.heartbeat_interval = heartbeat_interval
        self.challenge_window = challenge_window
        self.state = LifecycleState(next_deadline=created_at + heartbeat_interval)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def next_deadline(self) -> int:
        return self.state.next_deadline

    @property
    def challenge_window_end(self) -> int:
        return self.state.challenge_window_end

    @property
    def frozen(self) -> bool:
        return self.state.frozen

    def in_expiry(self) -> bool:
        return self.state.challenge_window_end != 0

    def is_alive(self, now: int) -> bool:
        return not self.in_expiry() and now <= self.state.next_deadline

    def in_challenge_window(self, now: int) -> bool:
        return self.in_expiry() and now <= self.state.challenge_window_end

    def claim_open(self, now: int) -> bool:
        return self.in_expiry() and now > self.state.challenge_window_end

    def phase(self, now: int) -> LifecyclePhase:
        if self.claim_open(now):
            return LifecyclePhase.CLAIMABLE
        if self.in_challenge_window(now):
            return LifecyclePhase.CHALLENGE_WINDOW
        if self.is_alive(now):
            return LifecyclePhase.ALIVE
        return LifecyclePhase.LAPSED

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def require_alive(self, now: int) -> None:
        if not self.is_alive(now):
            raise StateError(
                ErrorCode.NOT_ALIVE,
                "Vault is not alive",
                {"now": now, "next_deadline": self.state.next_deadline,
                 "challenge_window_end": self.state.challenge_window_end},
            )

    def require_claim_open(self, now: int) -> None:
        if not self.claim_open(now):
            raise StateError(
                ErrorCode.CLAIM_NOT_OPEN,
                "Claims are not open",
                {"now": now, "challenge_window_end": self.state.challenge_window_end},
            )

    def check_can_start_expiry(self, now: int) -> None:
        if self.in_expiry():
            raise StateError(
                ErrorCode.EXPIRY_ALREADY_STARTED,
                "Expiry already started",
                {"challenge_window_end": self.state.challenge_window_end},
            )
        if now <= self.state.next_deadline:
            raise StateError(
                ErrorCode.STILL_ALIVE,
                "Heartbeat deadline has not passed",
                {"now": now, "next_deadline": self.state.next_deadline},
            )

    def check_can_revoke(self, now: int) -> None:
        if not self.in_expiry():
            raise StateError(ErrorCode.EXPIRY_NOT_STARTED, "Expiry has not started")
        if now > self.state.challenge_window_end:
            raise StateError(
                ErrorCode.CHALLENGE_WINDOW_OVER,
                "Challenge window is over",
                {"now": now, "challenge_window_end": self.state.challenge_window_end},
            )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def renew(self, now: int) -> int:
        """Heartbeat. Returns the new deadline."""
        self.require_alive(now)
        self.state.next_deadline = now + self.heartbeat_interval
        return self.state.next_deadline

    def begin_expiry(self, now: int) -> int:
        """Freeze and open the challenge window. Returns its end."""
        self.check_can_start_expiry(now)
        self.state.frozen = True
        self.state.challenge_window_end = now + self.challenge_window
        return self.state.challenge_window_end

    def revoke(self, now: int) -> int:
        """Cancel expiry and return to ALIVE. Returns the new deadline."""
        self.check_can_revoke(now)
        self.state.challenge_window_end = 0
        self.state.frozen = False
        self.state.next_deadline = now + self.heartbeat_interval
        return self.state.next_deadline
