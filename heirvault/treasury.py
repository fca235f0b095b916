"""
Custody treasury.

The treasury holds the vault's live balances and performs payouts. It is
an external, effectful collaborator: the vault commits its own state
before calling transfer_batch and rolls that state back if the batch
fails.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Tuple

from .errors import ErrorCode, TransferError

logger = logging.getLogger("heirvault.treasury")

Payout = Tuple[str, int]  # (asset, amount)


class Treasury(ABC):
    """
    Abstract interface for custodial value storage.

    Implementations must make transfer_batch all-or-nothing: either every
    payout in the batch is credited, or none is and TransferError is raised.
    """

    @abstractmethod
    def deposit(self, asset: str, amount: int) -> None:
        """Credit the vault's live balance of an asset."""
        pass

    @abstractmethod
    def balance_of(self, asset: str) -> int:
        """Current live balance of an asset held for the vault."""
        pass

    @abstractmethod
    def transfer_batch(self, recipient: str, payouts: List[Payout]) -> None:
        """Pay every (asset, amount) in payouts to recipient, atomically."""
        pass


class InMemoryTreasury(Treasury):
    """
    In-memory treasury for development/testing.

    WARNING: Not suitable for production.
    - Not persistent
    - Recipient credits are only bookkeeping

    on_transfer, if set, is invoked after the batch is applied and before
    it is final, the way a receiving contract's fallback runs mid-transfer.
    If it raises, the batch is undone.
    """

    def __init__(self, on_transfer: Optional[Callable[[str, List[Payout]], None]] = None):
        self._holdings: Dict[str, int] = defaultdict(int)
        self._credits: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self._lock = threading.RLock()
        self.on_transfer = on_transfer

    def deposit(self, asset: str, amount: int) -> None:
        with self._lock:
            self._holdings[asset] += amount

    def balance_of(self, asset: str) -> int:
        with self._lock:
            return self._holdings.get(asset, 0)

    def credited(self, recipient: str, asset: str) -> int:
        """Total of an asset paid out to a recipient so far."""
        with self._lock:
            return self._credits.get(recipient, {}).get(asset, 0)

    def transfer_batch(self, recipient: str, payouts: List[Payout]) -> None:
        with self._lock:
            for asset, amount in payouts:
                if amount > self._holdings.get(asset, 0):
                    raise TransferError(
                        ErrorCode.INSUFFICIENT_BALANCE,
                        f"Insufficient {asset} balance for payout",
                        {"asset": asset, "amount": amount,
                         "balance": self._holdings.get(asset, 0)},
                    )

            for asset, amount in payouts:
                self._holdings[asset] -= amount
                self._credits[recipient][asset] += amount

            if self.on_transfer is None:
                return
            try:
                self.on_transfer(recipient, payouts)
            except Exception as e:
                for asset, amount in payouts:
                    self._holdings[asset] += amount
                    self._credits[recipient][asset] -= amount
                logger.warning("Recipient hook failed, batch undone: %s", e)
                raise TransferError(
                    ErrorCode.TRANSFER_FAILED,
                    f"Transfer to {recipient} failed",
                    {"recipient": recipient, "cause": type(e).__name__},
                ) from e
