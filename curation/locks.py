"""
Deposit locks — validation and usage tracking.

Provides:
  - LockAdapter      : reads a lock from staking and checks it can back a deposit
  - UsedLockTracker  : (owner, lockId) pairs currently backing a live record
"""

from typing import Any, Dict, List, Set, Tuple

from .logger import get_logger
from .collaborators.staking import Lock, Staking, TimeUnit
from .exceptions import InvalidLockError, LockInUseError

logger = get_logger(__name__)


class LockAdapter:
    """
    Interprets locks reported by the staking collaborator.

    A lock may back an application or a challenge when:
        - it exists for (owner, lockId)
        - amount ≥ min_deposit
        - it is expressed in seconds
        - unlock_time ≥ now + apply_stage_len
        - the coordinator is its unlocker
    """

    def __init__(self, staking: Staking, coordinator_address: str):
        self.staking = staking
        self.coordinator_address = coordinator_address

    def get_valid_lock(
        self,
        owner: str,
        lock_id: int,
        min_deposit: int,
        now: int,
        apply_stage_len: int,
    ) -> Lock:
        lock = self.staking.get_lock(owner, lock_id)
        if lock is None or lock.amount == 0:
            raise InvalidLockError(f"No lock #{lock_id} for {owner}")
        if lock.amount < min_deposit:
            raise InvalidLockError(
                f"Lock #{lock_id} amount {lock.amount} < min deposit {min_deposit}"
            )
        if lock.time_unit != TimeUnit.SECONDS:
            raise InvalidLockError(
                f"Lock #{lock_id} must use SECONDS (got {TimeUnit(lock.time_unit).name})"
            )
        if lock.unlock_time < now + apply_stage_len:
            raise InvalidLockError(
                f"Lock #{lock_id} ends at {lock.unlock_time}, "
                f"before {now + apply_stage_len}"
            )
        if lock.unlocker != self.coordinator_address:
            raise InvalidLockError(
                f"Lock #{lock_id} unlocker is {lock.unlocker}, "
                f"expected {self.coordinator_address}"
            )
        return lock


class UsedLockTracker:
    """Set of (owner, lockId) pairs backing a live application or challenge."""

    def __init__(self):
        self._used: Set[Tuple[str, int]] = set()

    def is_used(self, owner: str, lock_id: int) -> bool:
        return (owner, lock_id) in self._used

    def require_unused(self, owner: str, lock_id: int):
        if self.is_used(owner, lock_id):
            raise LockInUseError(f"Lock #{lock_id} of {owner} is already in use")

    def mark(self, owner: str, lock_id: int):
        self.require_unused(owner, lock_id)
        self._used.add((owner, lock_id))
        logger.debug(f"Lock #{lock_id} of {owner} marked used")

    def free(self, owner: str, lock_id: int):
        self._used.discard((owner, lock_id))
        logger.debug(f"Lock #{lock_id} of {owner} freed")

    def snapshot(self) -> Set[Tuple[str, int]]:
        return set(self._used)

    def restore(self, state: Set[Tuple[str, int]]):
        self._used = set(state)

    def pairs(self) -> List[Tuple[str, int]]:
        return sorted(self._used)

    def __len__(self) -> int:
        return len(self._used)

    def to_dict(self) -> Dict[str, Any]:
        return {"used": [f"{owner}:{lock_id}" for owner, lock_id in self.pairs()]}
