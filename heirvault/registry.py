"""
Heir Registry

Heir commitments live in an externally owned membership group. The vault
only forwards commitments to it and asks it two questions: how many
members are there, and is this Merkle root one you currently recognise.

The group registry is an external capability; InMemoryGroupRegistry is
a reference implementation for development and tests.
"""

import itertools
import logging
import threading
from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, Dict, List

from .config import ROOT_HISTORY_SIZE
from .errors import ErrorCode, InputError
from .hashing import SNARK_SCALAR_FIELD, merkle_node

logger = logging.getLogger("heirvault.registry")


def validate_commitment(commitment: int) -> None:
    if isinstance(commitment, bool) or not isinstance(commitment, int):
        raise InputError(ErrorCode.INVALID_COMMITMENT, "Commitment must be an integer",
                         {"type": type(commitment).__name__})
    if not 0 < commitment < SNARK_SCALAR_FIELD:
        raise InputError(ErrorCode.INVALID_COMMITMENT, "Commitment outside the scalar field")


def merkle_root(leaves: List[int]) -> int:
    """
    Root of a lean incremental Merkle tree over leaves.

    Odd nodes are carried up unchanged, so a one-leaf tree's root is the
    leaf itself. The empty tree's root is 0.
    """
    if not leaves:
        return 0
    level = list(leaves)
    while len(level) > 1:
        nxt = []
        for i in range(0, len(level), 2):
            if i + 1 < len(level):
                nxt.append(merkle_node(level[i], level[i + 1]))
            else:
                nxt.append(level[i])
        level = nxt
    return level[0]


class GroupRegistry(ABC):
    """
    Abstract interface for membership groups.

    Implementations own duplicate detection and Merkle tree maintenance.
    """

    @abstractmethod
    def create_group(self) -> int:
        """Create an empty group and return its identifier."""
        pass

    @abstractmethod
    def add_member(self, group_id: int, commitment: int) -> None:
        """Append a commitment to a group."""
        pass

    @abstractmethod
    def members(self, group_id: int) -> List[int]:
        """Commitments in insertion order."""
        pass

    @abstractmethod
    def size(self, group_id: int) -> int:
        pass

    @abstractmethod
    def root(self, group_id: int) -> int:
        """Current Merkle root (0 for an empty group)."""
        pass

    @abstractmethod
    def is_valid_root(self, group_id: int, root: int) -> bool:
        """True if proofs against root are currently accepted for the group."""
        pass


class InMemoryGroupRegistry(GroupRegistry):
    """
    In-memory group registry for development/testing.

    Keeps the last root_history_size roots per group so a proof built just
    before another member was added still verifies.
    """

    def __init__(self, root_history_size: int = ROOT_HISTORY_SIZE):
        self._members: Dict[int, List[int]] = {}
        self._roots: Dict[int, Deque[int]] = {}
        self._ids = itertools.count(1)
        self._history = max(1, root_history_size)
        self._lock = threading.Lock()

    def _group(self, group_id: int) -> List[int]:
        try:
            return self._members[group_id]
        except KeyError:
            raise InputError(ErrorCode.INVALID_PARAMETER, f"Unknown group {group_id}")

    def create_group(self) -> int:
        with self._lock:
            group_id = next(self._ids)
            self._members[group_id] = []
            self._roots[group_id] = deque(maxlen=self._history)
        return group_id

    def add_member(self, group_id: int, commitment: int) -> None:
        validate_commitment(commitment)
        with self._lock:
            members = self._group(group_id)
            if commitment in members:
                raise InputError(ErrorCode.DUPLICATE_COMMITMENT, "Commitment already in group",
                                 {"group_id": group_id})
            members.append(commitment)
            self._roots[group_id].append(merkle_root(members))
        logger.debug("Group %s now has %d members", group_id, len(members))

    def members(self, group_id: int) -> List[int]:
        with self._lock:
            return list(self._group(group_id))

    def size(self, group_id: int) -> int:
        with self._lock:
            return len(self._group(group_id))

    def root(self, group_id: int) -> int:
        with self._lock:
            self._group(group_id)
            roots = self._roots[group_id]
            return roots[-1] if roots else 0

    def is_valid_root(self, group_id: int, root: int) -> bool:
        with self._lock:
            if group_id not in self._roots:
                return False
            return root != 0 and root in self._roots[group_id]


class HeirRegistry:
    """The vault's view of its heir group."""

    def __init__(self, groups: GroupRegistry, group_id: int):
        self.groups = groups
        self.group_id = group_id

    def add(self, commitment: int) -> int:
        """Register an heir commitment. Returns the new group size."""
        validate_commitment(commitment)
        self.groups.add_member(self.group_id, commitment)
        return self.groups.size(self.group_id)

    def heirs(self) -> List[int]:
        return self.groups.members(self.group_id)

    def size(self) -> int:
        return self.groups.size(self.group_id)

    def current_root(self) -> int:
        return self.groups.root(self.group_id)

    def is_valid_root(self, root: int) -> bool:
        return self.groups.is_valid_root(self.group_id, root)
