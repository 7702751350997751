"""
Curation Events

Notifications emitted by the coordinator. Every event is an immutable
record carrying the coordinator clock's timestamp and a ``to_dict`` view
for external consumers.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ApplicationCreatedEvent:
    """Emitted when a new application is recorded."""
    entry_id: str
    applicant: str
    deposit_amount: int
    lock_id: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "NewApplication",
            "entryId": self.entry_id,
            "applicant": self.applicant,
            "depositAmount": self.deposit_amount,
            "lockId": self.lock_id,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ChallengeCreatedEvent:
    """
    Emitted when an entry is challenged.

    A touch-and-remove short-circuit emits this with a zero deposit and
    no vote.
    """
    entry_id: str
    challenger: str
    deposit_amount: int
    vote_id: Optional[int]
    timestamp: int
    touched_and_removed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "NewChallenge",
            "entryId": self.entry_id,
            "challenger": self.challenger,
            "depositAmount": self.deposit_amount,
            "voteId": self.vote_id,
            "touchedAndRemoved": self.touched_and_removed,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class TokensMovedEvent:
    """Emitted after the coordinator asks staking to move tokens."""
    sender: str
    recipient: str
    amount: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "MovedTokens",
            "from": self.sender,
            "to": self.recipient,
            "amount": self.amount,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class LockReleasedEvent:
    """Emitted after the coordinator unlocks a deposit."""
    owner: str
    unlocker: str
    lock_id: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Unlocked",
            "owner": self.owner,
            "unlocker": self.unlocker,
            "lockId": self.lock_id,
            "timestamp": self.timestamp,
        }
