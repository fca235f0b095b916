"""
heirvault: Anonymous Dead-Man's-Switch Inheritance Vault

Version: 0.1.0
License: Apache 2.0

An owner places custodial assets under a dead-man's switch. If the owner
stops renewing a heartbeat, any party may start expiry; after a challenge
window during which the owner can still revoke, a pre-registered set of
heirs claims equal shares, each with a zero-knowledge membership proof
that reveals nothing about which heir is claiming.

Components:
- LivenessStateMachine: heartbeat, expiry and challenge window guards
- AssetLedger: snapshot at expiry, equal-split payouts, exact dust handling
- ClaimAuthorizer: signal binding, root check, single-use nullifiers
- HeirRegistry: forwards heir commitments to the membership group
- ClaimKitPackager: seals an heir's identity into a password bundle

Usage:
    from heirvault import (
        Vault,
        HeirIdentity,
        InMemoryGroupRegistry,
        unseal,
    )

    vault = Vault(owner="0xOwner", vault_address="0xVault",
                  verifier=my_verifier, groups=InMemoryGroupRegistry())

    heir = HeirIdentity.generate()
    vault.add_heir("0xOwner", heir.commitment)
    vault.deposit_native("0xOwner", 10_000)
    kit = vault.claim_kit_packager().generate(heir.export(), claim_code)

    # Later, after a missed heartbeat and the challenge window:
    vault.start_expiry()
    restored = unseal(kit, claim_code)
    # ... build a membership proof with restored.identity_secret ...
    receipt = vault.claim(depth, root, nullifier, signal, proof, "0xHeir", amount)
"""

__version__ = "0.1.0"
__license__ = "Apache-2.0"

# Errors
from .errors import (
    ErrorCode,
    VaultError,
    StateError,
    ReentrancyError,
    AuthorizationError,
    InputError,
    ResourceExhaustionError,
    TransferError,
)

# Configuration
from .config import VaultConfig

# Hashing
from .canonicalization import canonicalize, canonicalize_str
from .hashing import (
    SNARK_SCALAR_FIELD,
    field_hash,
    external_nullifier,
    claim_signal,
)

# Identities
from .identity import HeirIdentity

# Lifecycle
from .lifecycle import LifecyclePhase, LivenessStateMachine

# Ledger
from .ledger import NATIVE_ASSET, AssetLedger, PayoutPlan, compute_payout

# Collaborators
from .treasury import Treasury, InMemoryTreasury
from .registry import GroupRegistry, InMemoryGroupRegistry, HeirRegistry, merkle_root

# Authorization
from .authorizer import (
    Verifier,
    ClaimRequest,
    AuthorizedClaim,
    ClaimAuthorizer,
)

# Claim kits
from .claim_kit import ClaimKit, ClaimKitPackager, seal, unseal

# Events
from .events import EventType, VaultEvent, EventLog, InMemoryEventLog

# Vault
from .vault import Vault, VaultInfo, ClaimReceipt

# Logging
from .logging_config import configure_logging


__all__ = [
    "__version__",

    # Errors
    "ErrorCode",
    "VaultError",
    "StateError",
    "ReentrancyError",
    "AuthorizationError",
    "InputError",
    "ResourceExhaustionError",
    "TransferError",

    # Configuration
    "VaultConfig",

    # Hashing
    "canonicalize",
    "canonicalize_str",
    "SNARK_SCALAR_FIELD",
    "field_hash",
    "external_nullifier",
    "claim_signal",

    # Identities
    "HeirIdentity",

    # Lifecycle
    "LifecyclePhase",
    "LivenessStateMachine",

    # Ledger
    "NATIVE_ASSET",
    "AssetLedger",
    "PayoutPlan",
    "compute_payout",

    # Collaborators
    "Treasury",
    "InMemoryTreasury",
    "GroupRegistry",
    "InMemoryGroupRegistry",
    "HeirRegistry",
    "merkle_root",

    # Authorization
    "Verifier",
    "ClaimRequest",
    "AuthorizedClaim",
    "ClaimAuthorizer",

    # Claim kits
    "ClaimKit",
    "ClaimKitPackager",
    "seal",
    "unseal",

    # Events
    "EventType",
    "VaultEvent",
    "EventLog",
    "InMemoryEventLog",

    # Vault
    "Vault",
    "VaultInfo",
    "ClaimReceipt",

    # Logging
    "configure_logging",
]
