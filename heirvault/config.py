"""
Configuration module for heirvault.

Centralizes all configuration with environment variable support
and validation of per-vault parameters.
"""

import os
from dataclasses import dataclass
from typing import Dict, Tuple

import nacl.pwhash

from .errors import ErrorCode, InputError

# ============================================================
# Environment Configuration
# ============================================================

ENV = os.getenv("HEIRVAULT_ENV", "dev")  # dev|stage|prod

# Lifecycle defaults (seconds)
HEARTBEAT_INTERVAL = int(os.getenv("HEIRVAULT_HEARTBEAT_INTERVAL", "86400"))
CHALLENGE_WINDOW = int(os.getenv("HEIRVAULT_CHALLENGE_WINDOW", "604800"))

# Membership proofs
TREE_DEPTH = int(os.getenv("HEIRVAULT_TREE_DEPTH", "20"))
MIN_TREE_DEPTH = 1
MAX_TREE_DEPTH = 32

# Bound into both the external nullifier and the claim signal.
CLAIM_ROUND = int(os.getenv("HEIRVAULT_CLAIM_ROUND", "1"))

# Group registry root history retained for proofs built against older roots
ROOT_HISTORY_SIZE = int(os.getenv("HEIRVAULT_ROOT_HISTORY_SIZE", "30"))

# Claim kit key derivation
KDF_PROFILE = os.getenv("HEIRVAULT_KDF_PROFILE", "moderate")

# Logging
LOG_LEVEL = os.getenv("HEIRVAULT_LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("HEIRVAULT_LOG_JSON", "true").lower() in ("1", "true", "yes")

# Event log retention
EVENT_LOG_MAX_RECORDS = int(os.getenv("HEIRVAULT_EVENT_LOG_MAX_RECORDS", "10000"))


# ============================================================
# Claim kit KDF profiles
# ============================================================

# (opslimit, memlimit) pairs for Argon2id
KDF_PROFILES: Dict[str, Tuple[int, int]] = {
    "interactive": (
        nacl.pwhash.argon2id.OPSLIMIT_INTERACTIVE,
        nacl.pwhash.argon2id.MEMLIMIT_INTERACTIVE,
    ),
    "moderate": (
        nacl.pwhash.argon2id.OPSLIMIT_MODERATE,
        nacl.pwhash.argon2id.MEMLIMIT_MODERATE,
    ),
    "sensitive": (
        nacl.pwhash.argon2id.OPSLIMIT_SENSITIVE,
        nacl.pwhash.argon2id.MEMLIMIT_SENSITIVE,
    ),
}


def kdf_limits(profile: str) -> Tuple[int, int]:
    """Resolve a KDF profile name to (opslimit, memlimit)."""
    try:
        return KDF_PROFILES[profile]
    except KeyError:
        raise InputError(
            ErrorCode.INVALID_PARAMETER,
            f"Unknown KDF profile '{profile}'",
            {"known": sorted(KDF_PROFILES)},
        )


# ============================================================
# Per-vault parameters
# ============================================================

@dataclass(frozen=True)
class VaultConfig:
    """
    Parameters fixed when a vault is created.

    heartbeat_interval: seconds the owner has to renew liveness
    challenge_window: seconds after expiry starts during which the owner may revoke
    claim_round: round bound into external nullifier and claim signal
    """
    heartbeat_interval: int = HEARTBEAT_INTERVAL
    challenge_window: int = CHALLENGE_WINDOW
    claim_round: int = CLAIM_ROUND

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        if self.heartbeat_interval <= 0:
            raise InputError(
                ErrorCode.INVALID_PARAMETER,
                "heartbeat_interval must be positive",
                {"heartbeat_interval": self.heartbeat_interval},
            )
        if self.challenge_window <= 0:
            raise InputError(
                ErrorCode.INVALID_PARAMETER,
                "challenge_window must be positive",
                {"challenge_window": self.challenge_window},
            )
        if self.claim_round < 0:
            raise InputError(
                ErrorCode.INVALID_PARAMETER,
                "claim_round must not be negative",
                {"claim_round": self.claim_round},
            )

    @classmethod
    def from_env(cls) -> 'VaultConfig':
        return cls(
            heartbeat_interval=HEARTBEAT_INTERVAL,
            challenge_window=CHALLENGE_WINDOW,
            claim_round=CLAIM_ROUND,
        )


# ============================================================
# Feature Flags
# ============================================================

def is_production() -> bool:
    """Check if running in production mode."""
    return ENV == "prod"
