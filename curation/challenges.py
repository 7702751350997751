"""
Challenge Ledger — disputes over pending or admitted entries.

A challenge locks a deposit against an entry and opens a vote on the
voting collaborator. If the entry's own deposit no longer meets the
current minimum, or no longer backs it (an entry that survived an earlier
challenge got its lock back), the challenge short-circuits into
touch-and-remove: the entry is dropped, any held deposit returned, and no
vote is opened.
"""

import dataclasses
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .logger import get_logger
from .collaborators.voting import VotingApp
from .effects import StagedEffects
from .events import ChallengeCreatedEvent
from .exceptions import AlreadyChallengedError, ChallengeNotFoundError

if TYPE_CHECKING:
    from .applications import Application
    from .coordinator import Curation

logger = get_logger(__name__)


class ResolutionScript:
    """
    Execution script handed to the voting app.

    Executing the vote resolves the challenge that vote decides, and only
    that one. Vote ids repeat across voting apps, so the script checks both.
    """

    def __init__(self, curation: "Curation", entry_id: str, voting: VotingApp):
        self.curation = curation
        self.entry_id = entry_id
        self.voting = voting
        self.vote_id: Optional[int] = None

    def __call__(self):
        return self.curation.resolve_challenge(
            self.entry_id, vote_id=self.vote_id, voting=self.voting,
        )

    def __repr__(self) -> str:
        return f"<ResolutionScript entry={self.entry_id[:16]} vote={self.vote_id}>"


@dataclass
class Challenge:
    """
    A live dispute over an entry.

    Fields:
        entry_id:          Entry being contested
        challenger:        Challenging account
        submitted_at:      Coordinator clock at creation
        deposit_amount:    Locked stake backing the challenge
        lock_id:           Challenger's lock id in staking
        vote_id:           Vote opened on the voting collaborator
        dispensation_pct:  Dispensation percentage at challenge time
        voting:            Voting collaborator that owns ``vote_id``
    """
    entry_id: str
    challenger: str
    submitted_at: int
    deposit_amount: int
    lock_id: int
    vote_id: int
    dispensation_pct: int
    voting: VotingApp = field(compare=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entryId": self.entry_id,
            "challenger": self.challenger,
            "submittedAt": self.submitted_at,
            "depositAmount": self.deposit_amount,
            "lockId": self.lock_id,
            "voteId": self.vote_id,
            "dispensationPct": str(self.dispensation_pct),
        }


class ChallengeLedger:
    """Owns Challenge records, keyed by the entry id they contest."""

    def __init__(self, curation: "Curation"):
        self.curation = curation
        self._challenges: Dict[str, Challenge] = {}

    # ── Records ───────────────────────────────────────────────────────

    def get(self, entry_id: str) -> Optional[Challenge]:
        return self._challenges.get(entry_id)

    def require(self, entry_id: str) -> Challenge:
        challenge = self._challenges.get(entry_id)
        if challenge is None:
            raise ChallengeNotFoundError(f"No live challenge for entry {entry_id}")
        return challenge

    def exists(self, entry_id: str) -> bool:
        return entry_id in self._challenges

    def delete(self, entry_id: str):
        self._challenges.pop(entry_id, None)

    def all(self) -> List[Challenge]:
        return list(self._challenges.values())

    def __len__(self) -> int:
        return len(self._challenges)

    # ── Operations ────────────────────────────────────────────────────

    def challenge_application(
        self,
        entry_id: str,
        lock_id: int,
        challenger: str,
    ) -> Optional[Challenge]:
        """
        Contest an entry.

        Returns the new Challenge, or None when the entry was
        touched-and-removed instead.
        """
        cur = self.curation
        app = cur.applications.require(entry_id)
        if entry_id in self._challenges:
            raise AlreadyChallengedError(f"Entry {entry_id} is already challenged")

        if app.deposit_amount < cur.params.min_deposit:
            self._touch_and_remove(
                app, challenger,
                f"deposit {app.deposit_amount} < min deposit {cur.params.min_deposit}",
            )
            return None
        if not cur.used_locks.is_used(app.applicant, app.lock_id):
            # lock released when the entry survived an earlier challenge
            self._touch_and_remove(app, challenger, f"lock #{app.lock_id} no longer held")
            return None

        cur.used_locks.require_unused(challenger, lock_id)
        now = cur.now()
        lock = cur.lock_adapter.get_valid_lock(
            challenger,
            lock_id,
            min_deposit=cur.params.min_deposit,
            now=now,
            apply_stage_len=cur.params.apply_stage_len,
        )

        voting = cur.params.voting
        script = ResolutionScript(cur, entry_id, voting)
        vote_id = voting.new_vote(script=script, metadata=f"Challenge entry {entry_id}")
        script.vote_id = vote_id

        challenge = Challenge(
            entry_id=entry_id,
            challenger=challenger,
            submitted_at=now,
            deposit_amount=lock.amount,
            lock_id=lock_id,
            vote_id=vote_id,
            dispensation_pct=cur.params.dispensation_pct,
            voting=voting,
        )
        self._challenges[entry_id] = challenge
        cur.used_locks.mark(challenger, lock_id)
        cur.emit(ChallengeCreatedEvent(
            entry_id=entry_id,
            challenger=challenger,
            deposit_amount=lock.amount,
            vote_id=vote_id,
            timestamp=now,
        ))
        logger.info(
            f"Challenge on {entry_id[:16]}: {challenger} deposited amount={lock.amount} "
            f"(lock #{lock_id}, vote #{vote_id})"
        )
        return challenge

    def _touch_and_remove(self, app: "Application", challenger: str, reason: str):
        cur = self.curation
        logger.warning(f"Touch-and-remove {app.entry_id[:16]}: {reason}")
        effects = StagedEffects(f"touch-and-remove {app.entry_id[:16]}")
        effects.commit(cur.applications.delete, app.entry_id)
        cur.stage_lock_release(effects, app.applicant, app.lock_id)
        if app.registered:
            effects.interact(cur.registry.remove, app.data)
        effects.apply()

        cur.emit(ChallengeCreatedEvent(
            entry_id=app.entry_id,
            challenger=challenger,
            deposit_amount=0,
            vote_id=None,
            timestamp=cur.now(),
            touched_and_removed=True,
        ))

    # ── Atomic-step support ───────────────────────────────────────────

    def snapshot(self) -> Dict[str, Challenge]:
        return {k: dataclasses.replace(v) for k, v in self._challenges.items()}

    def restore(self, state: Dict[str, Challenge]):
        self._challenges = state

    def to_dict(self) -> Dict[str, Any]:
        return {k: v.to_dict() for k, v in self._challenges.items()}
