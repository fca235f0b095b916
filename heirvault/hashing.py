"""
heirvault Hashing

All hashes use SHA-256 over canonical JSON. Values that enter a
membership proof as public inputs (signal, external nullifier, Merkle
nodes, commitments) are reduced to field elements by dropping the low
byte of the digest, so they always fit below the BN254 scalar field.
"""

import hashlib
from typing import Any

from .canonicalization import canonicalize

# BN254 scalar field order used by Semaphore-style circuits.
SNARK_SCALAR_FIELD = 21888242871839275222246405745257275088548364400416034343698204186575808495617


def field_hash(obj: Any) -> int:
    """
    Hash a canonicalizable object to a field element.

    SHA-256(CJE(obj)) >> 8, always < 2**248 < SNARK_SCALAR_FIELD.
    """
    digest = hashlib.sha256(canonicalize(obj)).digest()
    return int.from_bytes(digest, "big") >> 8


def external_nullifier(vault_address: str, claim_round: int) -> int:
    """
    Domain separation value for one vault instance and claim round.

    A proof generated for one vault (or one round) yields a different
    nullifier everywhere else, so it cannot be replayed across them.
    """
    return field_hash({
        "domain": "heirvault.external_nullifier",
        "vault": vault_address.lower(),
        "round": claim_round,
    })


def claim_signal(payout_address: str, amount: int, claim_round: int) -> int:
    """
    Binding commitment over the claim parameters.

    The heir proves with this signal; the authorizer recomputes it from
    the submitted payout address and amount and rejects any mismatch, so
    a captured proof cannot be resubmitted with a different recipient.
    """
    return field_hash({
        "domain": "heirvault.claim_signal",
        "payout": payout_address.lower(),
        "amount": amount,
        "round": claim_round,
    })


def merkle_node(left: int, right: int) -> int:
    """Parent of two Merkle nodes."""
    return field_hash(["heirvault.merkle", left, right])
