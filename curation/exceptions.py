"""
Curation Exceptions

Custom exception classes for the curation coordinator. Every failure aborts
the whole operation; the four top-level kinds tell callers whether the
problem was who called, what they passed, the state they hit, or timing.
"""


class CurationError(Exception):
    """Base exception for the curation coordinator."""
    pass


# ── Authorization ─────────────────────────────────────────────────────

class AuthorizationError(CurationError):
    """Caller lacks the required role or ownership."""
    pass


# ── Validation ────────────────────────────────────────────────────────

class ValidationError(CurationError):
    """Malformed input or out-of-range value."""
    pass


class InvalidLockError(ValidationError):
    """Referenced lock fails amount / duration / unit / unlocker checks."""
    pass


# ── State conflict ────────────────────────────────────────────────────

class StateConflictError(CurationError):
    """Operation collides with existing state."""
    pass


class DuplicateEntryError(StateConflictError):
    """Data already has a live application or is already registered."""
    pass


class LockInUseError(StateConflictError):
    """(owner, lockId) already backs a live application or challenge."""
    pass


class AlreadyChallengedError(StateConflictError):
    """Entry already has a live challenge."""
    pass


class AlreadyRegisteredError(StateConflictError):
    """Application was already admitted to the registry."""
    pass


class AlreadyClaimedError(StateConflictError):
    """Voter already claimed the reward for this vote."""
    pass


class AlreadyInitializedError(StateConflictError):
    """Coordinator was already initialized."""
    pass


# ── Precondition not met ──────────────────────────────────────────────

class PreconditionError(CurationError):
    """A required prior state or time gate has not been reached."""
    pass


class NotInitializedError(PreconditionError):
    """Coordinator has not been initialized."""
    pass


class ApplicationNotFoundError(PreconditionError):
    """No live application for the entry."""
    pass


class ChallengeNotFoundError(PreconditionError):
    """No live challenge for the entry."""
    pass


class ChallengePendingError(PreconditionError):
    """Entry has a challenge that is still unresolved."""
    pass


class StageNotElapsedError(PreconditionError):
    """Apply stage has not elapsed yet."""
    pass


class VoteNotClosedError(PreconditionError):
    """Delegated vote has not closed yet."""
    pass


class NoRewardError(PreconditionError):
    """No reward pool for the vote or no winning stake for the voter."""
    pass
