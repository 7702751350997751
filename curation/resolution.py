"""
Resolution Engine — settles a challenge once its vote closes.

Outcomes:
  - Challenge REJECTED (vote result False): the entry stays (and is
    registered if it was still pending); the challenger loses.
  - Challenge ACCEPTED (vote result True): the entry is removed from the
    registry and its application deleted; the applicant loses.

The loser's deposit is split into

    amount = deposit * dispensation_pct // PCT_BASE   → winner
    pool   = deposit - amount                         → coordinator (voter rewards)

with ``dispensation_pct`` taken from the challenge snapshot. Ledger
commits (challenge deletion, application update, lock freeing, reward
pool) happen before any registry or staking call.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

from .logger import get_logger
from .constants import PCT_BASE
from .collaborators.voting import VotingApp
from .effects import StagedEffects
from .exceptions import ChallengeNotFoundError, VoteNotClosedError
from .parameters import require_pct
from .rewards import VoteSnapshot

if TYPE_CHECKING:
    from .coordinator import Curation

logger = get_logger(__name__)


def dispensation_amount(deposit: int, dispensation_pct: int) -> int:
    """Part of a losing *deposit* paid to the winner (floor)."""
    require_pct("dispensation_pct", dispensation_pct)
    if deposit < 0:
        raise ValueError("Deposit cannot be negative")
    return deposit * dispensation_pct // PCT_BASE


@dataclass(frozen=True)
class ResolutionReceipt:
    """What a resolution did."""
    entry_id: str
    vote_id: int
    accepted: bool
    winner: str
    loser: str
    amount: int
    pool: int
    winning_total_stake: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entryId": self.entry_id,
            "voteId": self.vote_id,
            "outcome": "ACCEPTED" if self.accepted else "REJECTED",
            "winner": self.winner,
            "loser": self.loser,
            "amount": self.amount,
            "pool": self.pool,
            "winningTotalStake": self.winning_total_stake,
        }


class ResolutionEngine:

    def __init__(self, curation: "Curation"):
        self.curation = curation

    def resolve_challenge(
        self,
        entry_id: str,
        vote_id: Optional[int] = None,
        voting: Optional[VotingApp] = None,
    ) -> ResolutionReceipt:
        """
        Settle the live challenge on *entry_id*.

        When *vote_id* (and *voting*) are given the challenge must be the
        one that vote decides.

        Collaborator calls run as: lock releases, token moves, registry
        update. A retry after a failed move skips locks staking no longer
        holds and finds the registry untouched.
        """
        cur = self.curation
        challenge = cur.challenges.require(entry_id)
        if vote_id is not None and challenge.vote_id != vote_id:
            raise ChallengeNotFoundError(
                f"Live challenge on {entry_id} belongs to vote #{challenge.vote_id}, not #{vote_id}"
            )
        if voting is not None and challenge.voting is not voting:
            raise ChallengeNotFoundError(
                f"Live challenge on {entry_id} belongs to another voting app"
            )
        app = cur.applications.require(entry_id)

        outcome = challenge.voting.get_vote(challenge.vote_id)
        if not outcome.closed:
            raise VoteNotClosedError(f"Vote #{challenge.vote_id} has not closed")

        accepted = bool(outcome.result)
        if accepted:
            winner, loser, loser_deposit = challenge.challenger, app.applicant, app.deposit_amount
        else:
            winner, loser, loser_deposit = app.applicant, challenge.challenger, challenge.deposit_amount

        amount = dispensation_amount(loser_deposit, challenge.dispensation_pct)
        pool = loser_deposit - amount
        in_registry = cur.registry.exists(app.data)

        effects = StagedEffects(f"resolve {entry_id[:16]}")
        effects.commit(cur.challenges.delete, entry_id)
        effects.commit(cur.rewards.record, VoteSnapshot(
            vote_id=challenge.vote_id,
            entry_id=entry_id,
            accepted=accepted,
            pool=pool,
            winning_total_stake=outcome.winning_total_stake,
            resolved_at=cur.now(),
            voting=challenge.voting,
        ))
        if accepted:
            effects.commit(cur.applications.delete, entry_id)
        elif not app.registered:
            effects.commit(cur.applications.mark_registered, entry_id)

        cur.stage_lock_release(effects, app.applicant, app.lock_id)
        cur.stage_lock_release(effects, challenge.challenger, challenge.lock_id)
        cur.stage_token_move(effects, loser, winner, amount)
        cur.stage_token_move(effects, loser, cur.address, pool)

        if accepted and in_registry:
            effects.interact(cur.registry.remove, app.data)
        elif not accepted and not in_registry:
            effects.interact(cur.registry.add, app.data)
        effects.apply()

        receipt = ResolutionReceipt(
            entry_id=entry_id,
            vote_id=challenge.vote_id,
            accepted=accepted,
            winner=winner,
            loser=loser,
            amount=amount,
            pool=pool,
            winning_total_stake=outcome.winning_total_stake,
        )
        logger.info(
            f"Challenge on {entry_id[:16]} {'ACCEPTED' if accepted else 'REJECTED'}: "
            f"{loser} → {winner} amount={amount}, pool={pool} (vote #{challenge.vote_id})"
        )
        return receipt
