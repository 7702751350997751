"""
External collaborators of the curation coordinator.

Provides:
  - Registry / RegistryApp                     (registry.py)
  - Staking / StakingLedger / Lock / TimeUnit  (staking.py)
  - VotingApp / StakeVoting / VoteOutcome      (voting.py)
  - AccessControl / RoleAccessControl          (access.py)
"""

from .errors import CollaboratorError
from .registry import Registry, RegistryApp, RegistryError
from .staking import (
    InsufficientBalanceError,
    Lock,
    LockNotFoundError,
    Staking,
    StakingError,
    StakingLedger,
    TimeUnit,
    UnauthorizedUnlockError,
)
from .voting import (
    AlreadyExecutedError,
    AlreadyVotedError,
    Ballot,
    StakeVoting,
    VoteNotFoundError,
    VoteOutcome,
    VotingApp,
    VotingClosedError,
    VotingError,
)
from .access import AccessControl, RoleAccessControl

__all__ = [
    "CollaboratorError",
    # Registry
    "Registry",
    "RegistryApp",
    "RegistryError",
    # Staking
    "InsufficientBalanceError",
    "Lock",
    "LockNotFoundError",
    "Staking",
    "StakingError",
    "StakingLedger",
    "TimeUnit",
    "UnauthorizedUnlockError",
    # Voting
    "AlreadyExecutedError",
    "AlreadyVotedError",
    "Ballot",
    "StakeVoting",
    "VoteNotFoundError",
    "VoteOutcome",
    "VotingApp",
    "VotingClosedError",
    "VotingError",
    # Access control
    "AccessControl",
    "RoleAccessControl",
]
