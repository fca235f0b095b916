"""
Utility functions for heirvault.

Provides time, encoding, address and masking helpers shared by the
vault components and the claim kit packager.
"""

import base64
import time
from typing import Any, Callable, Union

from .errors import ErrorCode, InputError

# A clock returns the current Unix timestamp in whole seconds.
Clock = Callable[[], int]

ZERO_ADDRESS = "0x" + "0" * 40


def now_epoch() -> int:
    """Get current Unix timestamp as integer."""
    return int(time.time())


def b64e(b: bytes) -> str:
    """Base64 encode bytes to string."""
    return base64.b64encode(b).decode('ascii')


def b64d(s: str) -> bytes:
    """Base64 decode string to bytes (strict alphabet)."""
    return base64.b64decode(s.encode('ascii'), validate=True)


def is_zero_address(address: Any) -> bool:
    """
    True for the empty string and for any all-zero hex address.

    Both "0x000...0" and "0X000...0" count; case is irrelevant.

    Raises:
        InputError: address is not a string
    """
    if not isinstance(address, str):
        raise InputError(ErrorCode.INVALID_PARAMETER, "Address must be a string",
                         {"type": type(address).__name__})
    if not address:
        return True
    body = address[2:] if address[:2] in ("0x", "0X") else address
    return body == "" or set(body) == {"0"}


def mask_sensitive(value: Union[str, int], visible_chars: int = 6) -> str:
    """
    Mask a sensitive value, showing only the last N characters.
    Useful for logging commitments and nullifiers.
    """
    value = str(value)
    if len(value) <= visible_chars:
        return '*' * len(value)
    return '*' * (len(value) - visible_chars) + value[-visible_chars:]
