"""
Claim Kit Packager

Seals an heir's identity secret together with the vault coordinates into
a password-encrypted bundle, delivered to the heir out-of-band, and
unseals it again when the heir is ready to claim.

Format: base64 of the canonical JSON envelope

    {"box": b64(SecretBox(nonce || ciphertext)),
     "kdf": "argon2id", "mem": <memlimit>, "ops": <opslimit>,
     "salt": b64(salt), "v": 1}

The key is Argon2id(claim_code, salt). The plaintext is the canonical
JSON of the ClaimKit record.

Unsealing never explains itself: a wrong claim code, a truncated bundle
and random bytes all yield None, so the packager cannot be used as an
oracle to confirm a guessed code against tampered data.
"""

import json
import logging
from typing import Literal, Optional

import nacl.pwhash
import nacl.secret
import nacl.utils
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .canonicalization import canonicalize
from .config import KDF_PROFILE, KDF_PROFILES, MAX_TREE_DEPTH, MIN_TREE_DEPTH, TREE_DEPTH, kdf_limits
from .errors import ErrorCode, InputError
from .util import b64d, b64e

logger = logging.getLogger("heirvault.claim_kit")

ENVELOPE_VERSION = 1


class ClaimKit(BaseModel):
    """Everything an heir needs to rebuild their identity and claim."""
    model_config = ConfigDict(frozen=True, extra="forbid", strict=True)

    identity_secret: str = Field(min_length=1)
    group_id: int
    vault_address: str = Field(min_length=1)
    tree_depth: int = Field(default=TREE_DEPTH, ge=MIN_TREE_DEPTH, le=MAX_TREE_DEPTH)


class SealedEnvelope(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", strict=True)

    v: Literal[1]
    kdf: Literal["argon2id"]
    ops: int
    mem: int
    salt: str
    box: str


def _derive_key(claim_code: str, salt: bytes, opslimit: int, memlimit: int) -> bytes:
    return nacl.pwhash.argon2id.kdf(
        nacl.secret.SecretBox.KEY_SIZE,
        claim_code.encode("utf-8"),
        salt,
        opslimit=opslimit,
        memlimit=memlimit,
    )


def seal(
    identity_secret: str,
    group_id: int,
    vault_address: str,
    tree_depth: int,
    claim_code: str,
    kdf_profile: str = KDF_PROFILE
) -> str:
    """
    Encrypt a claim kit under a claim code.

    Args:
        identity_secret: exported heir identity (HeirIdentity.export())
        group_id: heir group the identity belongs to
        vault_address: vault the heir will claim from
        tree_depth: Merkle tree depth proofs are built at
        claim_code: shared secret delivered to the heir separately
        kdf_profile: Argon2id cost profile ("interactive", "moderate", "sensitive")

    Returns:
        Opaque ciphertext string
    """
    if not claim_code:
        raise InputError(ErrorCode.INVALID_PARAMETER, "Claim code must not be empty")

    try:
        kit = ClaimKit(
            identity_secret=identity_secret,
            group_id=group_id,
            vault_address=vault_address,
            tree_depth=tree_depth,
        )
    except ValidationError as e:
        raise InputError(ErrorCode.INVALID_PARAMETER, "Invalid claim kit fields",
                         {"errors": [err["loc"] for err in e.errors()]})

    opslimit, memlimit = kdf_limits(kdf_profile)
    salt = nacl.utils.random(nacl.pwhash.argon2id.SALTBYTES)
    box = nacl.secret.SecretBox(_derive_key(claim_code, salt, opslimit, memlimit))
    encrypted = box.encrypt(canonicalize(kit.model_dump()))

    envelope = SealedEnvelope(
        v=ENVELOPE_VERSION,
        kdf="argon2id",
        ops=opslimit,
        mem=memlimit,
        salt=b64e(salt),
        box=b64e(bytes(encrypted)),
    )
    return b64e(canonicalize(envelope.model_dump()))


def unseal(ciphertext: str, claim_code: str) -> Optional[ClaimKit]:
    """
    Decrypt a claim kit.

    Returns:
        The ClaimKit, or None on any failure (wrong code, corrupted or
        foreign data). Failures are deliberately indistinguishable.
    """
    try:
        envelope = SealedEnvelope.model_validate(json.loads(b64d(ciphertext)))
        # Only our own cost profiles; a forged envelope must not pick the KDF cost.
        if (envelope.ops, envelope.mem) not in KDF_PROFILES.values():
            return None
        salt = b64d(envelope.salt)
        key = _derive_key(claim_code, salt, envelope.ops, envelope.mem)
        plaintext = nacl.secret.SecretBox(key).decrypt(b64d(envelope.box))
        return ClaimKit.model_validate(json.loads(plaintext))
    except Exception:
        logger.debug("Claim kit could not be unsealed")
        return None


class ClaimKitPackager:
    """
    Claim kit helper bound to one vault's coordinates.

    Owner side: generate() a kit per heir. Heir side: decrypt() it.
    """

    def __init__(
        self,
        group_id: int,
        vault_address: str,
        tree_depth: int = TREE_DEPTH,
        kdf_profile: str = KDF_PROFILE
    ):
        self.group_id = group_id
        self.vault_address = vault_address
        self.tree_depth = tree_depth
        self.kdf_profile = kdf_profile

    def generate(self, identity_secret: str, claim_code: str) -> str:
        return seal(
            identity_secret,
            self.group_id,
            self.vault_address,
            self.tree_depth,
            claim_code,
            kdf_profile=self.kdf_profile,
        )

    @staticmethod
    def decrypt(ciphertext: str, claim_code: str) -> Optional[ClaimKit]:
        return unseal(ciphertext, claim_code)
