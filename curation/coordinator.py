"""
Curation Coordinator — token-curated registry state machine.

Entry points:
    new_application / register_unchallenged_application / remove_application
    challenge_application / resolve_challenge / claim_reward
    set_min_deposit / set_apply_stage_len / set_dispensation_pct / set_voting_app

Each entry point is one atomic step: ledgers are snapshotted before the
step and restored if it raises, so a failed call leaves applications,
challenges, used locks, reward pools and parameters exactly as they were.
"""

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from .logger import get_logger
from .applications import Application, ApplicationLedger, entry_id_for
from .challenges import Challenge, ChallengeLedger
from .clock import Clock, SystemClock
from .collaborators.access import AccessControl, RoleAccessControl
from .collaborators.registry import Registry
from .collaborators.staking import Staking
from .collaborators.voting import VotingApp
from .constants import DEFAULT_COORDINATOR_ADDRESS
from .effects import StagedEffects
from .events import LockReleasedEvent, TokensMovedEvent
from .exceptions import (
    AlreadyInitializedError,
    NotInitializedError,
    ValidationError,
)
from .locks import LockAdapter, UsedLockTracker
from .parameters import Parameters, ParameterStore
from .resolution import ResolutionEngine, ResolutionReceipt
from .rewards import RewardDistributor, VoteSnapshot

if TYPE_CHECKING:
    from .config import CurationConfig

logger = get_logger(__name__)


class Curation:
    """
    Token-curated registry coordinator.

    Construct, then ``initialize`` exactly once with the registry, staking
    and voting collaborators and the economic parameters. ``address`` is
    the coordinator's own account: locks must name it as unlocker and it
    holds voter reward pools.
    """

    def __init__(
        self,
        address: str = DEFAULT_COORDINATOR_ADDRESS,
        clock: Optional[Clock] = None,
        acl: Optional[AccessControl] = None,
    ):
        if not address:
            raise ValidationError("Coordinator address is required")
        self.address = address
        self.clock = clock or SystemClock()
        self.acl = acl or RoleAccessControl()

        self.registry: Optional[Registry] = None
        self.staking: Optional[Staking] = None
        self._params: Optional[ParameterStore] = None
        self.lock_adapter: Optional[LockAdapter] = None

        self.used_locks = UsedLockTracker()
        self.applications = ApplicationLedger(self)
        self.challenges = ChallengeLedger(self)
        self.resolution = ResolutionEngine(self)
        self.rewards = RewardDistributor(self)

        self._events: List[Any] = []
        self._initialized = False

    # ── Initialization ────────────────────────────────────────────────

    def initialize(
        self,
        registry: Registry,
        staking: Staking,
        voting: VotingApp,
        min_deposit: int,
        apply_stage_len: int,
        dispensation_pct: int,
    ):
        if self._initialized:
            raise AlreadyInitializedError("Coordinator is already initialized")
        if not isinstance(registry, Registry):
            raise ValidationError("A Registry collaborator is required")
        if not isinstance(staking, Staking):
            raise ValidationError("A Staking collaborator is required")

        parameters = Parameters(
            min_deposit=min_deposit,
            apply_stage_len=apply_stage_len,
            dispensation_pct=dispensation_pct,
        )
        self._params = ParameterStore(parameters, voting, self.acl)
        self.registry = registry
        self.staking = staking
        self.lock_adapter = LockAdapter(staking, self.address)
        self._initialized = True
        logger.info(
            f"Curation {self.address} initialized: min_deposit={min_deposit}, "
            f"apply_stage_len={apply_stage_len}, dispensation_pct={dispensation_pct}"
        )

    @classmethod
    def from_config(
        cls,
        config: "CurationConfig",
        registry: Registry,
        staking: Staking,
        voting: VotingApp,
        clock: Optional[Clock] = None,
        acl: Optional[AccessControl] = None,
    ) -> "Curation":
        """Build and initialize a coordinator from a loaded configuration."""
        config.validate()
        section = config.curation
        curation = cls(address=section.address, clock=clock, acl=acl)
        curation.initialize(
            registry,
            staking,
            voting,
            min_deposit=section.min_deposit,
            apply_stage_len=section.apply_stage_len,
            dispensation_pct=section.dispensation_pct,
        )
        return curation

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def _require_initialized(self):
        if not self._initialized:
            raise NotInitializedError(f"Curation {self.address} is not initialized")

    # ── Atomic step ───────────────────────────────────────────────────

    def _snapshot(self):
        return (
            self.applications.snapshot(),
            self.challenges.snapshot(),
            self.used_locks.snapshot(),
            self.rewards.snapshot(),
            self._params.snapshot(),
            len(self._events),
        )

    def _restore(self, state):
        apps, challenges, used, rewards, params, n_events = state
        self.applications.restore(apps)
        self.challenges.restore(challenges)
        self.used_locks.restore(used)
        self.rewards.restore(rewards)
        self._params.restore(params)
        del self._events[n_events:]

    @contextmanager
    def _atomic(self, operation: str):
        self._require_initialized()
        state = self._snapshot()
        try:
            yield
        except Exception as e:
            self._restore(state)
            logger.warning(f"{operation} aborted: {type(e).__name__}: {e}")
            raise

    # ── Shared helpers for ledgers ────────────────────────────────────

    def now(self) -> int:
        return self.clock.now()

    @property
    def params(self) -> ParameterStore:
        self._require_initialized()
        return self._params

    def emit(self, event: Any):
        self._events.append(event)

    def stage_lock_release(self, effects: StagedEffects, owner: str, lock_id: int):
        """
        Free (owner, lock_id) and unlock it in staking, if it still backs a
        live record.
        """
        if not self.used_locks.is_used(owner, lock_id):
            return
        effects.commit(self.used_locks.free, owner, lock_id)
        effects.interact(self._unlock, owner, lock_id)

    def stage_token_move(self, effects: StagedEffects, sender: str, recipient: str, amount: int):
        if amount <= 0:
            return
        effects.interact(self._move_tokens, sender, recipient, amount)

    def _unlock(self, owner: str, lock_id: int):
        if self.staking.get_lock(owner, lock_id) is None:
            # released by an earlier attempt of a step that was rolled back
            logger.debug(f"Lock #{lock_id} of {owner} already released in staking")
        else:
            self.staking.unlock(owner, self.address, lock_id)
        self.emit(LockReleasedEvent(
            owner=owner, unlocker=self.address, lock_id=lock_id, timestamp=self.now(),
        ))

    def _move_tokens(self, sender: str, recipient: str, amount: int):
        self.staking.move_tokens(sender, recipient, amount)
        self.emit(TokensMovedEvent(
            sender=sender, recipient=recipient, amount=amount, timestamp=self.now(),
        ))
        logger.debug(f"Tokens moved: {sender} → {recipient} amount={amount}")

    # ── Applications ──────────────────────────────────────────────────

    def new_application(self, data: Union[bytes, str], lock_id: int, sender: str) -> str:
        with self._atomic("newApplication"):
            return self.applications.new_application(data, lock_id, sender)

    def register_unchallenged_application(self, entry_id: str):
        with self._atomic("registerUnchallengedApplication"):
            self.applications.register_unchallenged(entry_id)

    def remove_application(self, entry_id: str, sender: str):
        with self._atomic("removeApplication"):
            self.applications.remove_application(entry_id, sender)

    # ── Challenges ────────────────────────────────────────────────────

    def challenge_application(self, entry_id: str, lock_id: int, sender: str) -> Optional[Challenge]:
        with self._atomic("challengeApplication"):
            return self.challenges.challenge_application(entry_id, lock_id, sender)

    def resolve_challenge(
        self,
        entry_id: str,
        vote_id: Optional[int] = None,
        voting: Optional[VotingApp] = None,
    ) -> ResolutionReceipt:
        with self._atomic("resolveChallenge"):
            return self.resolution.resolve_challenge(entry_id, vote_id=vote_id, voting=voting)

    def claim_reward(self, vote_id: int, sender: str, voting: Optional[VotingApp] = None) -> int:
        """Claim from *vote_id* of *voting* (default: the current voting app)."""
        with self._atomic("claimReward"):
            return self.rewards.claim_reward(vote_id, sender, voting=voting)

    # ── Parameters ────────────────────────────────────────────────────

    def set_min_deposit(self, value: int, sender: str):
        with self._atomic("setMinDeposit"):
            self._params.set_min_deposit(value, sender)

    def set_apply_stage_len(self, value: int, sender: str):
        with self._atomic("setApplyStageLen"):
            self._params.set_apply_stage_len(value, sender)

    def set_dispensation_pct(self, value: int, sender: str):
        with self._atomic("setDispensationPct"):
            self._params.set_dispensation_pct(value, sender)

    def set_voting_app(self, voting: VotingApp, sender: str):
        with self._atomic("setVotingApp"):
            self._params.set_voting_app(voting, sender)

    # ── Read accessors ────────────────────────────────────────────────

    @staticmethod
    def entry_id_for(data: Union[bytes, str]) -> str:
        return entry_id_for(data)

    def get_application(self, entry_id: str) -> Optional[Application]:
        return self.applications.get(entry_id)

    def get_challenge(self, entry_id: str) -> Optional[Challenge]:
        return self.challenges.get(entry_id)

    def get_vote_snapshot(
        self, vote_id: int, voting: Optional[VotingApp] = None,
    ) -> Optional[VoteSnapshot]:
        return self.rewards.get(vote_id, voting=voting)

    def is_lock_used(self, owner: str, lock_id: int) -> bool:
        return self.used_locks.is_used(owner, lock_id)

    @property
    def parameters(self) -> Parameters:
        return self.params.parameters

    @property
    def min_deposit(self) -> int:
        return self.params.min_deposit

    @property
    def apply_stage_len(self) -> int:
        return self.params.apply_stage_len

    @property
    def dispensation_pct(self) -> int:
        return self.params.dispensation_pct

    @property
    def voting(self) -> VotingApp:
        return self.params.voting

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    def events_of(self, event_type: type) -> List[Any]:
        return [e for e in self._events if isinstance(e, event_type)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "initialized": self._initialized,
            "parameters": self._params.to_dict() if self._params else None,
            "applications": self.applications.to_dict(),
            "challenges": self.challenges.to_dict(),
            "usedLocks": self.used_locks.to_dict(),
            "rewardPools": self.rewards.to_dict(),
            "events": [e.to_dict() for e in self._events],
        }

    def __repr__(self) -> str:
        return (
            f"<Curation {self.address} initialized={self._initialized} "
            f"applications={len(self.applications)} challenges={len(self.challenges)}>"
        )
