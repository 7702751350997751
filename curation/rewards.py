"""
Reward Distributor — voter payouts from resolved challenges.

Resolution leaves the part of the losing deposit that was not dispensed to
the winner with the coordinator as a pool for the vote. Each voter on the
winning side claims once:

    reward = pool * voter_winning_stake // winning_total_stake
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set, Tuple

from .logger import get_logger
from .collaborators.voting import VotingApp
from .effects import StagedEffects
from .exceptions import AlreadyClaimedError, NoRewardError, StateConflictError

if TYPE_CHECKING:
    from .coordinator import Curation

logger = get_logger(__name__)


def reward_share(pool: int, voter_stake: int, winning_total_stake: int) -> int:
    """Voter's floor share of *pool* proportional to winning stake."""
    if winning_total_stake <= 0:
        raise NoRewardError("Vote has no winning stake")
    if voter_stake < 0 or voter_stake > winning_total_stake:
        raise StateConflictError(
            f"Voter stake {voter_stake} outside [0, {winning_total_stake}]"
        )
    return pool * voter_stake // winning_total_stake


@dataclass
class VoteSnapshot:
    """
    Reward state of a resolved vote, fixed at resolution time.

    Fields:
        vote_id:              Vote on the voting collaborator
        entry_id:             Entry the vote decided
        accepted:             True if the challenge was accepted
        pool:                 Tokens held by the coordinator for voters
        winning_total_stake:  Stake on the winning side
        resolved_at:          Coordinator clock at resolution
        voting:               Voting collaborator that owns ``vote_id``
        claimed:              Voters that have claimed
        paid:                 Sum of rewards paid so far
    """
    vote_id: int
    entry_id: str
    accepted: bool
    pool: int
    winning_total_stake: int
    resolved_at: int
    voting: VotingApp = field(compare=False, repr=False)
    claimed: Set[str] = field(default_factory=set)
    paid: int = 0

    @property
    def remaining(self) -> int:
        return self.pool - self.paid

    def copy(self) -> "VoteSnapshot":
        return VoteSnapshot(
            vote_id=self.vote_id,
            entry_id=self.entry_id,
            accepted=self.accepted,
            pool=self.pool,
            winning_total_stake=self.winning_total_stake,
            resolved_at=self.resolved_at,
            voting=self.voting,
            claimed=set(self.claimed),
            paid=self.paid,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "voteId": self.vote_id,
            "entryId": self.entry_id,
            "accepted": self.accepted,
            "pool": self.pool,
            "winningTotalStake": self.winning_total_stake,
            "resolvedAt": self.resolved_at,
            "claimed": sorted(self.claimed),
            "paid": self.paid,
            "remaining": self.remaining,
        }


SnapshotKey = Tuple[int, int]


class RewardDistributor:
    """
    Keeps vote snapshots and pays voter rewards out of their pools.

    Vote ids are only unique within one voting app, so snapshots are keyed
    by (voting app, vote id). Lookups without an explicit app use the
    coordinator's current one.
    """

    def __init__(self, curation: "Curation"):
        self.curation = curation
        self._snapshots: Dict[SnapshotKey, VoteSnapshot] = {}

    @staticmethod
    def key(voting: VotingApp, vote_id: int) -> SnapshotKey:
        # snapshots hold a reference to their app, so id() stays unique
        return (id(voting), vote_id)

    def _voting(self, voting: Optional[VotingApp]) -> VotingApp:
        return voting if voting is not None else self.curation.params.voting

    def get(self, vote_id: int, voting: Optional[VotingApp] = None) -> Optional[VoteSnapshot]:
        return self._snapshots.get(self.key(self._voting(voting), vote_id))

    def all(self) -> List[VoteSnapshot]:
        return list(self._snapshots.values())

    def record(self, snapshot: VoteSnapshot):
        key = self.key(snapshot.voting, snapshot.vote_id)
        if key in self._snapshots:
            raise StateConflictError(f"Vote #{snapshot.vote_id} already has a reward pool")
        self._snapshots[key] = snapshot

    def _mark_claimed(self, key: SnapshotKey, voter: str, reward: int):
        snap = self._snapshots[key]
        snap.claimed.add(voter)
        snap.paid += reward

    def claim_reward(self, vote_id: int, voter: str, voting: Optional[VotingApp] = None) -> int:
        """
        Pay *voter* their share of the vote's pool. Returns the reward.

        *voting* selects the app that owns *vote_id*; defaults to the
        current voting app.
        """
        cur = self.curation
        key = self.key(self._voting(voting), vote_id)
        snap = self._snapshots.get(key)
        if snap is None:
            raise NoRewardError(f"Vote #{vote_id} has no resolved challenge")
        if voter in snap.claimed:
            raise AlreadyClaimedError(f"{voter} already claimed reward for vote #{vote_id}")

        stake = snap.voting.get_voter_winning_stake(vote_id, voter)
        if stake <= 0:
            raise NoRewardError(f"{voter} has no winning stake in vote #{vote_id}")

        reward = reward_share(snap.pool, stake, snap.winning_total_stake)
        if reward > snap.remaining:
            raise StateConflictError(
                f"Reward {reward} exceeds remaining pool {snap.remaining} of vote #{vote_id}"
            )

        effects = StagedEffects(f"claim vote #{vote_id}")
        effects.commit(self._mark_claimed, key, voter, reward)
        cur.stage_token_move(effects, cur.address, voter, reward)
        effects.apply()

        logger.info(
            f"Reward claimed: vote #{vote_id} {voter} stake={stake} reward={reward} "
            f"(pool={snap.pool}, paid={snap.paid})"
        )
        return reward

    # ── Atomic-step support ───────────────────────────────────────────

    def snapshot(self) -> Dict[SnapshotKey, VoteSnapshot]:
        return {k: v.copy() for k, v in self._snapshots.items()}

    def restore(self, state: Dict[SnapshotKey, VoteSnapshot]):
        self._snapshots = state

    def to_dict(self) -> List[Dict[str, Any]]:
        return [v.to_dict() for v in self._snapshots.values()]
