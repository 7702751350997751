"""
Staking collaborator — token custody and deposit locks.

Implements:
  - Lock / TimeUnit                : lock descriptor as reported to the coordinator
  - Staking                        : contract consumed by the coordinator
  - StakingLedger                  : in-memory custody of free balances and locks
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional, Tuple

from ..logger import get_logger
from ..constants import TIME_UNIT_BLOCKS, TIME_UNIT_SECONDS
from .errors import CollaboratorError

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class StakingError(CollaboratorError):
    """Base staking error."""


class InsufficientBalanceError(StakingError):
    """Free balance too low for a lock or a move."""


class LockNotFoundError(StakingError):
    """No lock for (owner, lockId)."""


class UnauthorizedUnlockError(StakingError):
    """Unlock requested by someone other than the designated unlocker."""


# ══════════════════════════════════════════════════════════════════════
#  LOCK DATA
# ══════════════════════════════════════════════════════════════════════

class TimeUnit(IntEnum):
    """Unit the lock's unlock time is expressed in."""
    BLOCKS = TIME_UNIT_BLOCKS
    SECONDS = TIME_UNIT_SECONDS


@dataclass(frozen=True)
class Lock:
    """
    A commitment of tokens, releasable only by its unlocker.

    Fields:
        amount:       Locked token amount
        time_unit:    TimeUnit of ``unlock_time``
        unlock_time:  End of the lock period
        unlocker:     Account allowed to release the lock
        metadata:     Opaque bytes attached by the owner
    """
    amount: int
    time_unit: TimeUnit
    unlock_time: int
    unlocker: str
    metadata: bytes = b""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount": self.amount,
            "timeUnit": self.time_unit.name,
            "unlockTime": self.unlock_time,
            "unlocker": self.unlocker,
            "metadata": self.metadata.hex(),
        }


# ══════════════════════════════════════════════════════════════════════
#  CONTRACT
# ══════════════════════════════════════════════════════════════════════

class Staking(ABC):
    """
    Contract consumed by the coordinator.

        get_lock(owner, lock_id)           → Lock | None
        unlock(owner, unlocker, lock_id)
        move_tokens(sender, recipient, amount)
    """

    @abstractmethod
    def get_lock(self, owner: str, lock_id: int) -> Optional[Lock]:
        ...

    @abstractmethod
    def unlock(self, owner: str, unlocker: str, lock_id: int):
        ...

    @abstractmethod
    def move_tokens(self, sender: str, recipient: str, amount: int):
        ...


# ══════════════════════════════════════════════════════════════════════
#  STAKING LEDGER
# ══════════════════════════════════════════════════════════════════════

@dataclass
class StakingEvent:
    """Record of a lock / unlock / move on the ledger."""
    kind: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.kind, **self.payload}


class StakingLedger(Staking):
    """
    In-memory token custody.

    Each account has a free balance; ``lock`` moves part of it into a lock
    identified per owner (ids start at 1). Only the lock's unlocker may
    release it, returning the amount to the owner's free balance.
    """

    def __init__(self):
        self._balances: Dict[str, int] = {}
        self._locks: Dict[Tuple[str, int], Lock] = {}
        self._next_lock_id: Dict[str, int] = {}
        self._events: List[StakingEvent] = []

    # ── Balances ──────────────────────────────────────────────────────

    def deposit(self, account: str, amount: int):
        """Credit free balance (bootstrapping / faucet)."""
        if amount <= 0:
            raise StakingError("Deposit amount must be positive")
        self._balances[account] = self._balances.get(account, 0) + amount
        self._events.append(StakingEvent("Deposit", {"account": account, "amount": amount}))

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def locked_balance_of(self, account: str) -> int:
        return sum(
            lock.amount for (owner, _), lock in self._locks.items()
            if owner == account
        )

    # ── Locks ─────────────────────────────────────────────────────────

    def lock(
        self,
        owner: str,
        amount: int,
        time_unit: TimeUnit,
        unlock_time: int,
        unlocker: str,
        metadata: bytes = b"",
    ) -> int:
        """Lock *amount* of the owner's free balance; returns the lock id."""
        if amount <= 0:
            raise StakingError("Lock amount must be positive")
        bal = self.balance_of(owner)
        if bal < amount:
            raise InsufficientBalanceError(
                f"{owner} balance {bal} < lock amount {amount}"
            )

        lock_id = self._next_lock_id.get(owner, 1)
        self._next_lock_id[owner] = lock_id + 1
        self._balances[owner] = bal - amount
        self._locks[(owner, lock_id)] = Lock(
            amount=amount,
            time_unit=TimeUnit(time_unit),
            unlock_time=unlock_time,
            unlocker=unlocker,
            metadata=metadata,
        )
        self._events.append(StakingEvent("Locked", {
            "owner": owner, "lockId": lock_id, "amount": amount, "unlocker": unlocker,
        }))
        logger.debug(f"Lock #{lock_id}: {owner} locked amount={amount} (unlocker={unlocker})")
        return lock_id

    def get_lock(self, owner: str, lock_id: int) -> Optional[Lock]:
        return self._locks.get((owner, lock_id))

    def unlock(self, owner: str, unlocker: str, lock_id: int):
        lock = self._locks.get((owner, lock_id))
        if lock is None:
            raise LockNotFoundError(f"No lock #{lock_id} for {owner}")
        if lock.unlocker != unlocker:
            raise UnauthorizedUnlockError(
                f"{unlocker} is not the unlocker of lock #{lock_id} ({lock.unlocker})"
            )
        del self._locks[(owner, lock_id)]
        self._balances[owner] = self._balances.get(owner, 0) + lock.amount
        self._events.append(StakingEvent("Unlocked", {
            "owner": owner, "unlocker": unlocker, "lockId": lock_id,
        }))
        logger.debug(f"Unlock #{lock_id}: {owner} released amount={lock.amount}")

    # ── Transfers ─────────────────────────────────────────────────────

    def move_tokens(self, sender: str, recipient: str, amount: int):
        if amount < 0:
            raise StakingError("Move amount cannot be negative")
        bal = self.balance_of(sender)
        if bal < amount:
            raise InsufficientBalanceError(
                f"{sender} balance {bal} < move amount {amount}"
            )
        self._balances[sender] = bal - amount
        self._balances[recipient] = self._balances.get(recipient, 0) + amount
        self._events.append(StakingEvent("MovedTokens", {
            "from": sender, "to": recipient, "amount": amount,
        }))
        logger.debug(f"MovedTokens: {sender} → {recipient} amount={amount}")

    # ── Queries ───────────────────────────────────────────────────────

    @property
    def events(self) -> List[StakingEvent]:
        return list(self._events)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "balances": dict(self._balances),
            "locks": {
                f"{owner}:{lock_id}": lock.to_dict()
                for (owner, lock_id), lock in self._locks.items()
            },
        }

    def __repr__(self) -> str:
        return f"<StakingLedger accounts={len(self._balances)} locks={len(self._locks)}>"
