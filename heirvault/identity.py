"""
Heir identities.

An heir identity is a 32-byte secret. The owner registers only its public
commitment; the secret travels to the heir inside a sealed claim kit and
is used client-side to build a membership proof. This is a hash-based
reference scheme; the proving backend that consumes it is external.
"""

import binascii
from dataclasses import dataclass

import nacl.utils

from .errors import ErrorCode, InputError
from .hashing import field_hash
from .util import b64d, b64e

SECRET_BYTES = 32


@dataclass(frozen=True)
class HeirIdentity:
    """An heir's identity secret and the values derived from it."""
    secret: bytes

    def __post_init__(self):
        if len(self.secret) != SECRET_BYTES:
            raise InputError(
                ErrorCode.INVALID_PARAMETER,
                f"Identity secret must be {SECRET_BYTES} bytes",
                {"length": len(self.secret)},
            )

    def __repr__(self) -> str:
        return f"HeirIdentity(commitment={self.commitment})"

    @classmethod
    def generate(cls) -> 'HeirIdentity':
        return cls(secret=nacl.utils.random(SECRET_BYTES))

    @classmethod
    def import_secret(cls, exported: str) -> 'HeirIdentity':
        """Rebuild an identity from the string produced by export()."""
        try:
            secret = b64d(exported)
        except (binascii.Error, ValueError, UnicodeEncodeError):
            raise InputError(ErrorCode.INVALID_PARAMETER, "Identity secret is not valid base64")
        return cls(secret=secret)

    def export(self) -> str:
        return b64e(self.secret)

    @property
    def commitment(self) -> int:
        """Public commitment registered with the heir group."""
        return field_hash({"domain": "heirvault.commitment", "secret": self.secret.hex()})

    def nullifier_for(self, external_nullifier: int) -> int:
        """One-time value for this identity within one vault/round scope."""
        return field_hash({
            "domain": "heirvault.nullifier",
            "secret": self.secret.hex(),
            "scope": external_nullifier,
        })
