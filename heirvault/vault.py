"""
heirvault Vault

The single owned aggregate. All mutation goes through the operations
below; each one runs to completion under one lock, evaluates every guard
against one clock reading, and either commits fully or raises without
changing anything.

Claim ordering:

    guards ─> authorize (consume nullifier) ─> plan ─> commit ledger ─> transfer
                                                                          │
                                      restore ledger + nullifiers <─ (fails)

State is committed before the treasury is called, and the whole claim
runs inside a non-reentrant guard, so a recipient that calls back into
the vault mid-transfer sees the post-claim state and cannot re-enter.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from .authorizer import ClaimAuthorizer, ClaimRequest, Verifier
from .claim_kit import ClaimKitPackager
from .config import KDF_PROFILE, TREE_DEPTH, VaultConfig, is_production
from .errors import (
    AuthorizationError,
    ErrorCode,
    InputError,
    ReentrancyError,
    ResourceExhaustionError,
    TransferError,
    VaultError,
)
from .events import EventIdGenerator, EventLog, EventType, InMemoryEventLog, VaultEvent
from .ledger import NATIVE_ASSET, AssetLedger
from .lifecycle import LifecyclePhase, LivenessStateMachine
from .logging_config import VaultEventLogger
from .registry import GroupRegistry, HeirRegistry
from .treasury import InMemoryTreasury, Treasury
from .util import Clock, is_zero_address, now_epoch

logger = logging.getLogger("heirvault.vault")


@dataclass
class VaultInfo:
    """Read-only summary of a vault, as shown to owners and heirs."""
    vault_address: str
    group_id: int
    owner: str
    heartbeat_interval: int
    challenge_window: int
    next_deadline: int
    challenge_window_end: int
    is_alive: bool
    claim_open: bool
    heirs_total: int
    heirs_remaining: int

    def to_dict(self) -> Dict[str, Any]:
        return dict(vars(self))


@dataclass
class ClaimReceipt:
    """Outcome of a successful claim."""
    nullifier: int
    recipient: str
    amount: int
    signal: int
    payouts: Dict[str, int] = field(default_factory=dict)
    heirs_remaining: int = 0

    @property
    def final(self) -> bool:
        """True for the claim that drained the vault."""
        return self.heirs_remaining == 0


class Vault:
    """
    Dead-man's-switch vault.

    Usage:
        vault = Vault(owner="0xOwner", vault_address="0xVault",
                      verifier=verifier, groups=InMemoryGroupRegistry())
        vault.add_heir("0xOwner", identity.commitment)
        vault.deposit_native("0xOwner", 10)
        kit = vault.claim_kit_packager().generate(identity.export(), "code")

        # heartbeat missed...
        vault.start_expiry()
        # challenge window over...
        vault.claim(depth, root, nullifier, signal, proof, "0xHeir", amount)
    """

    def __init__(
        self,
        owner: str,
        vault_address: str,
        verifier: Verifier,
        groups: GroupRegistry,
        treasury: Optional[Treasury] = None,
        config: Optional[VaultConfig] = None,
        clock: Clock = now_epoch,
        event_log: Optional[EventLog] = None,
        group_id: Optional[int] = None
    ):
        if is_zero_address(owner):
            raise InputError(ErrorCode.ZERO_ADDRESS, "Owner is the zero address")
        if is_zero_address(vault_address):
            raise InputError(ErrorCode.ZERO_ADDRESS, "Vault address is the zero address")

        self.owner = owner
        self.vault_address = vault_address
        self.config = config or VaultConfig.from_env()
        self._clock = clock

        self.lifecycle = LivenessStateMachine(
            self.config.heartbeat_interval,
            self.config.challenge_window,
            created_at=clock(),
        )
        self.group_id = group_id if group_id is not None else groups.create_group()
        self.heirs = HeirRegistry(groups, self.group_id)
        self.ledger = AssetLedger()
        self.authorizer = ClaimAuthorizer(verifier, self.heirs, vault_address, self.config.claim_round)
        if treasury is None:
            if is_production():
                logger.warning("Vault %s is using the in-memory treasury in production", vault_address)
            treasury = InMemoryTreasury()
        self.treasury = treasury
        self.events = event_log or InMemoryEventLog()

        self._event_ids = EventIdGenerator(f"evt-{vault_address.lower()[-8:]}")
        self._event_logger = VaultEventLogger(vault_address=vault_address)
        self._lock = threading.RLock()
        self._entered = False

        logger.info(
            "Vault %s created: group %s, heartbeat %ss, challenge window %ss",
            vault_address, self.group_id,
            self.config.heartbeat_interval, self.config.challenge_window,
        )

    # ==================================================================
    # Internals
    # ==================================================================

    @contextmanager
    def _guard(self, operation: str) -> Iterator[int]:
        """Serialise, refuse re-entry, yield one clock reading, log rejections."""
        with self._lock:
            if self._entered:
                self._event_logger.operation_rejected(
                    operation, ErrorCode.REENTRANT_CALL.value, "re-entrant call")
                raise ReentrancyError(operation)
            self._entered = True
            try:
                yield self._clock()
            except VaultError as e:
                self._event_logger.operation_rejected(operation, e.code.value, str(e))
                raise
            except Exception as e:
                self._event_logger.operation_failed(operation, e)
                raise
            finally:
                self._entered = False

    def _require_owner(self, caller: str) -> None:
        if not isinstance(caller, str) or not caller or caller.lower() != self.owner.lower():
            raise AuthorizationError(ErrorCode.NOT_OWNER, "Caller is not the owner", {"caller": caller})

    def _emit(self, event_type: EventType, now: int, **data) -> VaultEvent:
        event = VaultEvent(
            event_id=self._event_ids.next_id(),
            event_type=event_type,
            timestamp=now,
            data=data,
        )
        self.events.record(event)
        return event

    # ==================================================================
    # Owner operations
    # ==================================================================

    def keep_alive(self, caller: str) -> int:
        """Renew the heartbeat. Returns the new deadline."""
        with self._guard("keep_alive") as now:
            self._require_owner(caller)
            deadline = self.lifecycle.renew(now)
            self._emit(EventType.HEARTBEAT_RENEWED, now, next_deadline=deadline)
            self._event_logger.heartbeat_renewed(deadline)
            return deadline

    def add_heir(self, caller: str, commitment: int) -> int:
        """Register an heir commitment. Returns the heir group size."""
        with self._guard("add_heir") as now:
            self._require_owner(caller)
            self.lifecycle.require_alive(now)
            size = self.heirs.add(commitment)
            self._emit(EventType.HEIR_ADDED, now, commitment=commitment, group_size=size)
            self._event_logger.heir_added(commitment, size)
            return size

    def deposit_native(self, caller: str, amount: int) -> None:
        with self._guard("deposit_native") as now:
            self._deposit(caller, NATIVE_ASSET, amount, now)

    def deposit_asset(self, caller: str, asset_id: str, amount: int) -> None:
        with self._guard("deposit_asset") as now:
            if asset_id == NATIVE_ASSET:
                raise InputError(ErrorCode.INVALID_PARAMETER,
                                 "Use deposit_native for the native asset")
            self._deposit(caller, asset_id, amount, now)

    def _deposit(self, caller: str, asset: str, amount: int, now: int) -> None:
        self._require_owner(caller)
        if self.lifecycle.frozen:
            raise ResourceExhaustionError(ErrorCode.DEPOSITS_FROZEN, "Deposits are frozen during expiry")
        self.lifecycle.require_alive(now)
        self.ledger.validate_deposit(asset, amount)

        self.treasury.deposit(asset, amount)
        new_asset = self.ledger.register_asset(asset)
        self._emit(EventType.DEPOSITED, now, asset=asset, amount=amount, new_asset=new_asset)
        self._event_logger.deposited(asset, amount)

    def revoke_expiry(self, caller: str) -> int:
        """Cancel expiry inside the challenge window. Returns the new deadline."""
        with self._guard("revoke_expiry") as now:
            self._require_owner(caller)
            deadline = self.lifecycle.revoke(now)
            self.ledger.reset()
            self._emit(EventType.EXPIRY_REVOKED, now, next_deadline=deadline)
            self._event_logger.expiry_revoked(deadline)
            return deadline

    # ==================================================================
    # Permissionless operations
    # ==================================================================

    def start_expiry(self) -> int:
        """
        Open the challenge window after a missed heartbeat.

        Anyone may call this. Freezes deposits, fixes the heir count to
        the current group size and snapshots every tracked asset.

        Returns:
            The challenge window end timestamp
        """
        with self._guard("start_expiry") as now:
            self.lifecycle.check_can_start_expiry(now)
            heir_count = self.heirs.size()
            if heir_count == 0:
                raise ResourceExhaustionError(ErrorCode.NO_HEIRS, "No heirs registered")

            balances = {asset: self.treasury.balance_of(asset) for asset in self.ledger.tracked_assets()}
            end = self.lifecycle.begin_expiry(now)
            self.ledger.take_snapshot(balances, heir_count)

            self._emit(EventType.EXPIRY_STARTED, now, challenge_window_end=end)
            self._emit(
                EventType.SNAPSHOT_TAKEN, now,
                heirs=heir_count,
                native_amount=balances[NATIVE_ASSET],
                assets=self.ledger.known_assets(),
                snapshot=dict(balances),
            )
            self._event_logger.expiry_started(end)
            self._event_logger.snapshot_taken(heir_count, balances[NATIVE_ASSET], self.ledger.known_assets())
            return end

    def claim(
        self,
        tree_depth: int,
        root: int,
        nullifier: int,
        signal: int,
        proof: Any,
        payout_address: str,
        amount: int
    ) -> ClaimReceipt:
        """
        Claim one heir's share with an anonymous membership proof.

        Raises:
            StateError: claims not open yet, or re-entrant call
            ResourceExhaustionError: every heir has already claimed
            InputError: zero payout address, malformed parameters
            AuthorizationError: invalid, mis-bound or already used proof
            TransferError: payout failed; nothing was changed
        """
        with self._guard("claim") as now:
            self.lifecycle.require_claim_open(now)
            if self.ledger.heirs_remaining == 0:
                raise ResourceExhaustionError(ErrorCode.ALL_HEIRS_CLAIMED, "All heirs have claimed")

            request = ClaimRequest(
                tree_depth=tree_depth,
                root=root,
                nullifier=nullifier,
                signal=signal,
                proof=proof,
                payout_address=payout_address,
                amount=amount,
            )
            saved_ledger = self.ledger.checkpoint()
            saved_nullifiers = self.authorizer.nullifiers.checkpoint()

            authorized = self.authorizer.authorize(request)
            plan = self.ledger.plan_payout()
            self.ledger.apply(plan)

            try:
                if plan.payouts:
                    self.treasury.transfer_batch(payout_address, plan.payouts)
            except Exception as e:
                self.ledger.restore(saved_ledger)
                self.authorizer.nullifiers.restore(saved_nullifiers)
                if isinstance(e, TransferError):
                    raise
                raise TransferError(ErrorCode.TRANSFER_FAILED, f"Payout to {payout_address} failed") from e

            payouts = dict(plan.payouts)
            self._emit(
                EventType.CLAIMED, now,
                nullifier=authorized.nullifier,
                recipient=authorized.payout_address,
                amount=authorized.amount,
                signal=authorized.signal,
                payouts=payouts,
            )
            self._event_logger.claimed(
                authorized.nullifier, authorized.payout_address, authorized.amount,
                authorized.signal, payouts, plan.heirs_remaining_after,
            )
            return ClaimReceipt(
                nullifier=authorized.nullifier,
                recipient=authorized.payout_address,
                amount=authorized.amount,
                signal=authorized.signal,
                payouts=payouts,
                heirs_remaining=plan.heirs_remaining_after,
            )

    # ==================================================================
    # Queries
    # ==================================================================

    def is_alive(self) -> bool:
        return self.lifecycle.is_alive(self._clock())

    def claim_open(self) -> bool:
        return self.lifecycle.claim_open(self._clock())

    def in_expiry(self) -> bool:
        return self.lifecycle.in_expiry()

    def in_challenge_window(self) -> bool:
        return self.lifecycle.in_challenge_window(self._clock())

    def phase(self) -> LifecyclePhase:
        return self.lifecycle.phase(self._clock())

    @property
    def next_deadline(self) -> int:
        return self.lifecycle.next_deadline

    @property
    def challenge_window_end(self) -> int:
        return self.lifecycle.challenge_window_end

    @property
    def frozen(self) -> bool:
        return self.lifecycle.frozen

    @property
    def heirs_total(self) -> int:
        return self.ledger.heirs_total

    @property
    def heirs_remaining(self) -> int:
        return self.ledger.heirs_remaining

    def snapshot_of(self, asset: str = NATIVE_ASSET) -> int:
        return self.ledger.snapshot_of(asset)

    def remaining_of(self, asset: str = NATIVE_ASSET) -> int:
        return self.ledger.remaining_of(asset)

    def known_assets(self) -> List[str]:
        return self.ledger.known_assets()

    def is_nullifier_used(self, nullifier: int) -> bool:
        return self.authorizer.is_consumed(nullifier)

    @property
    def external_nullifier(self) -> int:
        return self.authorizer.external_nullifier

    def expected_signal(self, payout_address: str, amount: int) -> int:
        """The signal a claim for these parameters must carry."""
        return self.authorizer.expected_signal(payout_address, amount)

    def info(self) -> VaultInfo:
        now = self._clock()
        return VaultInfo(
            vault_address=self.vault_address,
            group_id=self.group_id,
            owner=self.owner,
            heartbeat_interval=self.config.heartbeat_interval,
            challenge_window=self.config.challenge_window,
            next_deadline=self.lifecycle.next_deadline,
            challenge_window_end=self.lifecycle.challenge_window_end,
            is_alive=self.lifecycle.is_alive(now),
            claim_open=self.lifecycle.claim_open(now),
            heirs_total=self.ledger.heirs_total,
            heirs_remaining=self.ledger.heirs_remaining,
        )

    def claim_kit_packager(self, tree_depth: int = TREE_DEPTH, kdf_profile: str = KDF_PROFILE) -> ClaimKitPackager:
        return ClaimKitPackager(self.group_id, self.vault_address, tree_depth, kdf_profile)
