"""
Stake-Weighted Binary Voting — arbitration collaborator

Implements:
  - VoteOutcome      : result contract read by the coordinator
  - VotingApp        : contract consumed by the coordinator
  - StakeVoting      : binary votes where stake backs "accept" or "reject"
  - Execution script : callable registered at vote creation, run once on execute()

A vote's ``result`` is True when the challenge is accepted, i.e. stake in
favour strictly exceeds stake against. Ties reject the challenge.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..logger import get_logger
from .errors import CollaboratorError

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class VotingError(CollaboratorError):
    """Base voting error."""


class VoteNotFoundError(VotingError):
    """Unknown vote id."""


class AlreadyVotedError(VotingError):
    """Voter already cast a vote in this vote."""


class VotingClosedError(VotingError):
    """Vote is closed (or not yet closed, for execution)."""


class AlreadyExecutedError(VotingError):
    """Execution script already ran."""


# ══════════════════════════════════════════════════════════════════════
#  VOTE DATA
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class VoteOutcome:
    """What the coordinator reads from a vote."""
    closed: bool
    result: bool
    winning_total_stake: int
    total_stake: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "closed": self.closed,
            "result": self.result,
            "winningTotalStake": self.winning_total_stake,
            "totalStake": self.total_stake,
        }


@dataclass
class BinaryVote:
    """State of a single vote."""
    vote_id: int
    metadata: str = ""
    script: Optional[Callable[[], Any]] = field(default=None, repr=False)
    stake_yea: int = 0
    stake_nay: int = 0
    closed: bool = False
    executed: bool = False
    ballots: Dict[str, "Ballot"] = field(default_factory=dict)

    @property
    def result(self) -> bool:
        return self.stake_yea > self.stake_nay

    @property
    def total_stake(self) -> int:
        return self.stake_yea + self.stake_nay

    @property
    def winning_total_stake(self) -> int:
        return self.stake_yea if self.result else self.stake_nay

    def outcome(self) -> VoteOutcome:
        return VoteOutcome(
            closed=self.closed,
            result=self.result,
            winning_total_stake=self.winning_total_stake,
            total_stake=self.total_stake,
        )


@dataclass(frozen=True)
class Ballot:
    """A single voter's stake-weighted choice."""
    voter: str
    supports: bool
    stake: int


# ══════════════════════════════════════════════════════════════════════
#  CONTRACT
# ══════════════════════════════════════════════════════════════════════

class VotingApp(ABC):
    """
    Contract consumed by the coordinator.

        new_vote(script, metadata)            → vote_id
        get_vote(vote_id)                     → VoteOutcome
        get_voter_winning_stake(vote_id, v)   → int
    """

    @abstractmethod
    def new_vote(self, script: Optional[Callable[[], Any]] = None, metadata: str = "") -> int:
        ...

    @abstractmethod
    def get_vote(self, vote_id: int) -> VoteOutcome:
        ...

    @abstractmethod
    def get_voter_winning_stake(self, vote_id: int, voter: str) -> int:
        ...


# ══════════════════════════════════════════════════════════════════════
#  STAKE VOTING
# ══════════════════════════════════════════════════════════════════════

class StakeVoting(VotingApp):
    """
    Binary stake-weighted voting.

    Responsibilities:
        - Open votes on request, optionally with an execution script
        - Accept one stake-weighted ballot per voter while open
        - Report closure, result and winning stake
        - Run the execution script once after closure
    """

    def __init__(self):
        self._votes: Dict[int, BinaryVote] = {}
        self._next_vote_id = 1

    def _get(self, vote_id: int) -> BinaryVote:
        vote = self._votes.get(vote_id)
        if vote is None:
            raise VoteNotFoundError(f"Vote #{vote_id} does not exist")
        return vote

    # ── Lifecycle ─────────────────────────────────────────────────────

    def new_vote(self, script: Optional[Callable[[], Any]] = None, metadata: str = "") -> int:
        vote_id = self._next_vote_id
        self._next_vote_id += 1
        self._votes[vote_id] = BinaryVote(vote_id=vote_id, metadata=metadata, script=script)
        logger.info(f"Vote #{vote_id} opened ({metadata or 'no metadata'})")
        return vote_id

    def cast_vote(self, vote_id: int, voter: str, supports: bool, stake: int) -> Ballot:
        """
        Back the challenge (``supports=True``) or the entry with *stake*.
        """
        vote = self._get(vote_id)
        if vote.closed:
            raise VotingClosedError(f"Vote #{vote_id} is closed")
        if voter in vote.ballots:
            raise AlreadyVotedError(f"{voter} has already voted in vote #{vote_id}")
        if stake <= 0:
            raise VotingError(f"{voter} has no stake to vote with")

        ballot = Ballot(voter=voter, supports=supports, stake=stake)
        vote.ballots[voter] = ballot
        if supports:
            vote.stake_yea += stake
        else:
            vote.stake_nay += stake

        logger.info(
            f"Vote #{vote_id}: {voter} → {'YEA' if supports else 'NAY'} (stake={stake})"
        )
        return ballot

    def close_vote(self, vote_id: int) -> VoteOutcome:
        vote = self._get(vote_id)
        if vote.closed:
            raise VotingClosedError(f"Vote #{vote_id} already closed")
        vote.closed = True
        logger.info(
            f"Vote #{vote_id} closed: result={vote.result} "
            f"(yea={vote.stake_yea}, nay={vote.stake_nay})"
        )
        return vote.outcome()

    def execute(self, vote_id: int) -> Any:
        """Run the vote's execution script. Only once, only after closure."""
        vote = self._get(vote_id)
        if not vote.closed:
            raise VotingClosedError(f"Vote #{vote_id} is still open")
        if vote.executed:
            raise AlreadyExecutedError(f"Vote #{vote_id} already executed")
        vote.executed = True
        logger.info(f"Vote #{vote_id} executed")
        if vote.script is None:
            return None
        try:
            return vote.script()
        except Exception:
            vote.executed = False
            raise

    # ── Queries ───────────────────────────────────────────────────────

    def get_vote(self, vote_id: int) -> VoteOutcome:
        return self._get(vote_id).outcome()

    def get_voter_winning_stake(self, vote_id: int, voter: str) -> int:
        vote = self._get(vote_id)
        ballot = vote.ballots.get(voter)
        if not vote.closed or ballot is None or ballot.supports != vote.result:
            return 0
        return ballot.stake

    def get_ballots(self, vote_id: int) -> List[Ballot]:
        return list(self._get(vote_id).ballots.values())

    def has_voted(self, vote_id: int, voter: str) -> bool:
        return voter in self._get(vote_id).ballots

    def to_dict(self) -> Dict[str, Any]:
        return {
            "votes": {
                vid: {**v.outcome().to_dict(), "executed": v.executed, "voters": len(v.ballots)}
                for vid, v in self._votes.items()
            },
        }

    def __repr__(self) -> str:
        return f"<StakeVoting votes={len(self._votes)}>"
