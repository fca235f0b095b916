"""
Shared fixtures for the heirvault test suites.

SimulatedMembershipVerifier stands in for a real proving backend: it
accepts exactly the proofs SimulatedProver has issued, and only for the
public inputs they were issued for. The prover refuses identities that
are not members of the group, so a valid proof implies membership just
as it would with a real circuit.
"""

from typing import List, Optional, Tuple

from heirvault import (
    HeirIdentity,
    InMemoryGroupRegistry,
    InMemoryTreasury,
    Vault,
    VaultConfig,
    Verifier,
    field_hash,
    merkle_root,
)

OWNER = "0x00000000000000000000000000000000000a11ce"
VAULT_ADDRESS = "0x000000000000000000000000000000000000fa17"
HEARTBEAT = 86400
WINDOW = 604800
T0 = 1_700_000_000


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        self.now += seconds
        return self.now


class SimulatedMembershipVerifier(Verifier):

    def __init__(self):
        self.issued = set()
        self.calls = 0

    def verify(self, root, nullifier, external_nullifier, signal, proof) -> bool:
        self.calls += 1
        try:
            key = (root, nullifier, external_nullifier, signal, tuple(proof))
        except TypeError:
            return False
        return key in self.issued


class RaisingVerifier(Verifier):
    """Verifier whose backend is down."""

    def verify(self, root, nullifier, external_nullifier, signal, proof) -> bool:
        raise RuntimeError("proving backend unavailable")


class SimulatedProver:
    """Builds proofs the paired verifier accepts."""

    def __init__(self, verifier: SimulatedMembershipVerifier, groups: InMemoryGroupRegistry):
        self.verifier = verifier
        self.groups = groups

    def prove(
        self,
        identity: HeirIdentity,
        group_id: int,
        external_nullifier: int,
        signal: int,
        tree_depth: int = 20
    ) -> Tuple[int, int, List[int]]:
        """Returns (root, nullifier, proof)."""
        members = self.groups.members(group_id)
        if identity.commitment not in members:
            raise ValueError("identity is not a group member")

        root = merkle_root(members)
        nullifier = identity.nullifier_for(external_nullifier)
        proof = [
            field_hash(["proof", i, tree_depth, root, nullifier, external_nullifier, signal])
            for i in range(8)
        ]
        self.verifier.issued.add((root, nullifier, external_nullifier, signal, tuple(proof)))
        return root, nullifier, proof


class VaultFixture:
    """A vault wired to in-memory collaborators and a fake clock."""

    def __init__(self, treasury: Optional[InMemoryTreasury] = None, verifier: Optional[Verifier] = None):
        self.clock = FakeClock()
        self.groups = InMemoryGroupRegistry()
        self.verifier = verifier or SimulatedMembershipVerifier()
        self.treasury = treasury or InMemoryTreasury()
        self.vault = Vault(
            owner=OWNER,
            vault_address=VAULT_ADDRESS,
            verifier=self.verifier,
            groups=self.groups,
            treasury=self.treasury,
            config=VaultConfig(heartbeat_interval=HEARTBEAT, challenge_window=WINDOW),
            clock=self.clock,
        )
        self.prover = None
        if isinstance(self.verifier, SimulatedMembershipVerifier):
            self.prover = SimulatedProver(self.verifier, self.groups)

    def add_heirs(self, count: int) -> List[HeirIdentity]:
        heirs = [HeirIdentity.generate() for _ in range(count)]
        for heir in heirs:
            self.vault.add_heir(OWNER, heir.commitment)
        return heirs

    def open_claims(self) -> None:
        """Miss the heartbeat, start expiry, and let the window run out."""
        self.clock.now = self.vault.next_deadline + 1
        self.vault.start_expiry()
        self.clock.now = self.vault.challenge_window_end + 1

    def proof_for(self, heir: HeirIdentity, payout: str, amount: int = 0) -> dict:
        """Claim arguments for an heir, ready to pass to Vault.claim."""
        signal = self.vault.expected_signal(payout, amount)
        root, nullifier, proof = self.prover.prove(
            heir, self.vault.group_id, self.vault.external_nullifier, signal)
        return {
            "tree_depth": 20,
            "root": root,
            "nullifier": nullifier,
            "signal": signal,
            "proof": proof,
            "payout_address": payout,
            "amount": amount,
        }

    def claim(self, heir: HeirIdentity, payout: str, amount: int = 0):
        return self.vault.claim(**self.proof_for(heir, payout, amount))


def payout_address(n: int) -> str:
    return "0x" + format(0xbeef0000 + n, "040x")


def make_vault(**kwargs) -> VaultFixture:
    return VaultFixture(**kwargs)
