"""
Application Ledger — lifecycle of proposed registry entries.

An application is created by locking a deposit, admitted to the registry
once the apply stage passes without challenge, and may be withdrawn by its
applicant whenever no challenge is pending.
"""

import dataclasses
import hashlib
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from .logger import get_logger
from .constants import ENTRY_ID_DIGEST_SIZE
from .effects import StagedEffects
from .events import ApplicationCreatedEvent
from .exceptions import (
    AlreadyRegisteredError,
    ApplicationNotFoundError,
    AuthorizationError,
    ChallengePendingError,
    DuplicateEntryError,
    StageNotElapsedError,
    ValidationError,
)

if TYPE_CHECKING:
    from .coordinator import Curation

logger = get_logger(__name__)


def normalize_data(data: Union[bytes, str]) -> bytes:
    """Entry data is opaque bytes; text is UTF-8 encoded."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    if not isinstance(data, (bytes, bytearray)):
        raise ValidationError(f"Entry data must be bytes, got {type(data).__name__}")
    if not data:
        raise ValidationError("Entry data cannot be empty")
    return bytes(data)


def entry_id_for(data: Union[bytes, str]) -> str:
    """Stable identifier of an entry: hex BLAKE2b-256 of its data."""
    return hashlib.blake2b(normalize_data(data), digest_size=ENTRY_ID_DIGEST_SIZE).hexdigest()


@dataclass
class Application:
    """
    A proposed (or admitted) registry entry backed by a locked deposit.

    Fields:
        entry_id:        BLAKE2b-256 of ``data``
        applicant:       Owning account
        submitted_at:    Coordinator clock at creation
        registered:      True once admitted to the registry
        data:            Opaque entry bytes
        deposit_amount:  Locked stake backing the application
        lock_id:         Applicant's lock id in staking
    """
    entry_id: str
    applicant: str
    submitted_at: int
    data: bytes
    deposit_amount: int
    lock_id: int
    registered: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entryId": self.entry_id,
            "applicant": self.applicant,
            "submittedAt": self.submitted_at,
            "registered": self.registered,
            "data": self.data.hex(),
            "depositAmount": self.deposit_amount,
            "lockId": self.lock_id,
        }


class ApplicationLedger:
    """Owns Application records, keyed by entry id."""

    def __init__(self, curation: "Curation"):
        self.curation = curation
        self._applications: Dict[str, Application] = {}

    # ── Records ───────────────────────────────────────────────────────

    def get(self, entry_id: str) -> Optional[Application]:
        return self._applications.get(entry_id)

    def require(self, entry_id: str) -> Application:
        app = self._applications.get(entry_id)
        if app is None:
            raise ApplicationNotFoundError(f"No application for entry {entry_id}")
        return app

    def exists(self, entry_id: str) -> bool:
        return entry_id in self._applications

    def delete(self, entry_id: str):
        self._applications.pop(entry_id, None)

    def mark_registered(self, entry_id: str):
        self._applications[entry_id].registered = True

    def all(self) -> List[Application]:
        return list(self._applications.values())

    def __len__(self) -> int:
        return len(self._applications)

    # ── Operations ────────────────────────────────────────────────────

    def new_application(self, data: Union[bytes, str], lock_id: int, applicant: str) -> str:
        """
        Propose *data* for the registry, backed by the applicant's lock.

        Returns the entry id.
        """
        cur = self.curation
        data = normalize_data(data)
        entry_id = entry_id_for(data)

        if entry_id in self._applications:
            raise DuplicateEntryError(f"Entry {entry_id} already has a live application")
        if cur.registry.exists(data):
            raise DuplicateEntryError(f"Data for entry {entry_id} is already registered")

        cur.used_locks.require_unused(applicant, lock_id)
        now = cur.now()
        lock = cur.lock_adapter.get_valid_lock(
            applicant,
            lock_id,
            min_deposit=cur.params.min_deposit,
            now=now,
            apply_stage_len=cur.params.apply_stage_len,
        )

        self._applications[entry_id] = Application(
            entry_id=entry_id,
            applicant=applicant,
            submitted_at=now,
            data=data,
            deposit_amount=lock.amount,
            lock_id=lock_id,
        )
        cur.used_locks.mark(applicant, lock_id)
        cur.emit(ApplicationCreatedEvent(
            entry_id=entry_id,
            applicant=applicant,
            deposit_amount=lock.amount,
            lock_id=lock_id,
            timestamp=now,
        ))
        logger.info(
            f"Application {entry_id[:16]}: {applicant} deposited amount={lock.amount} "
            f"(lock #{lock_id})"
        )
        return entry_id

    def register_unchallenged(self, entry_id: str):
        """Admit an application whose apply stage passed without challenge."""
        cur = self.curation
        app = self.require(entry_id)
        if app.registered:
            raise AlreadyRegisteredError(f"Entry {entry_id} is already registered")
        if cur.challenges.exists(entry_id):
            raise ChallengePendingError(f"Entry {entry_id} has a pending challenge")

        deadline = app.submitted_at + cur.params.apply_stage_len
        now = cur.now()
        if now < deadline:
            raise StageNotElapsedError(
                f"Apply stage for {entry_id} ends at {deadline} (now={now})"
            )

        effects = StagedEffects(f"register {entry_id[:16]}")
        effects.commit(self.mark_registered, entry_id)
        effects.interact(cur.registry.add, app.data)
        effects.apply()
        logger.info(f"Application {entry_id[:16]} registered unchallenged")

    def remove_application(self, entry_id: str, sender: str):
        """Applicant withdraws the entry and gets the deposit back."""
        cur = self.curation
        app = self.require(entry_id)
        if sender != app.applicant:
            raise AuthorizationError(
                f"Only the applicant {app.applicant} can remove entry {entry_id}"
            )
        if cur.challenges.exists(entry_id):
            raise ChallengePendingError(f"Entry {entry_id} has a pending challenge")

        effects = StagedEffects(f"remove {entry_id[:16]}")
        effects.commit(self.delete, entry_id)
        cur.stage_lock_release(effects, app.applicant, app.lock_id)
        if app.registered:
            effects.interact(cur.registry.remove, app.data)
        effects.apply()
        logger.info(f"Application {entry_id[:16]} withdrawn by {sender}")

    # ── Atomic-step support ───────────────────────────────────────────

    def snapshot(self) -> Dict[str, Application]:
        return {k: dataclasses.replace(v) for k, v in self._applications.items()}

    def restore(self, state: Dict[str, Application]):
        self._applications = state

    def to_dict(self) -> Dict[str, Any]:
        return {k: v.to_dict() for k, v in self._applications.items()}
