"""
Parameter Store — tunable economic parameters of the coordinator.

Every setter is gated by an access-control role. Changes only affect
evaluations made after them; challenges snapshot the dispensation
percentage when they are created.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .logger import get_logger
from .constants import (
    CHANGE_PARAMS_ROLE,
    CHANGE_VOTING_APP_ROLE,
    MAX_UINT64,
    PCT_BASE,
)
from .collaborators.access import AccessControl
from .collaborators.voting import VotingApp
from .exceptions import AuthorizationError, ValidationError

logger = get_logger(__name__)


def require_uint64(name: str, value: Any) -> int:
    """Reject anything that is not an integer in [0, MAX_UINT64]."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0 or value > MAX_UINT64:
        raise ValidationError(f"{name} {value} out of range [0, {MAX_UINT64}]")
    return value


def require_pct(name: str, value: Any) -> int:
    """Reject fixed-point fractions outside [0, PCT_BASE]."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0 or value > PCT_BASE:
        raise ValidationError(f"{name} {value} out of range [0, {PCT_BASE}] (0-100%)")
    return value


def require_voting_app(voting: Any) -> VotingApp:
    if not isinstance(voting, VotingApp):
        raise ValidationError(
            f"Voting app must implement VotingApp (got {type(voting).__name__})"
        )
    return voting


@dataclass(frozen=True)
class Parameters:
    """
    Economic parameters.

    Fields:
        min_deposit:       Minimum stake backing an application or challenge
        apply_stage_len:   Seconds an unchallenged application waits before registration
        dispensation_pct:  Fraction of PCT_BASE paid from loser to winner
    """
    min_deposit: int
    apply_stage_len: int
    dispensation_pct: int

    def __post_init__(self):
        require_uint64("min_deposit", self.min_deposit)
        require_uint64("apply_stage_len", self.apply_stage_len)
        require_pct("dispensation_pct", self.dispensation_pct)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "minDeposit": self.min_deposit,
            "applyStageLen": self.apply_stage_len,
            "dispensationPct": str(self.dispensation_pct),
        }


class ParameterStore:
    """Holds Parameters and the voting collaborator, mutable by administrators."""

    def __init__(
        self,
        parameters: Parameters,
        voting: VotingApp,
        acl: AccessControl,
    ):
        self._parameters = parameters
        self._voting = require_voting_app(voting)
        self.acl = acl

    # ── Reads ─────────────────────────────────────────────────────────

    @property
    def parameters(self) -> Parameters:
        return self._parameters

    @property
    def min_deposit(self) -> int:
        return self._parameters.min_deposit

    @property
    def apply_stage_len(self) -> int:
        return self._parameters.apply_stage_len

    @property
    def dispensation_pct(self) -> int:
        return self._parameters.dispensation_pct

    @property
    def voting(self) -> VotingApp:
        return self._voting

    # ── Authorization ─────────────────────────────────────────────────

    def _require_role(self, sender: str, role: str):
        if not self.acl.has_permission(sender, role):
            raise AuthorizationError(f"{sender} lacks {role}")

    # ── Setters ───────────────────────────────────────────────────────

    def _replace(self, key: str, value: int):
        old = getattr(self._parameters, key)
        self._parameters = dataclasses.replace(self._parameters, **{key: value})
        logger.info(f"Parameter '{key}' changed: {old} → {value}")

    def set_min_deposit(self, value: int, sender: str):
        self._require_role(sender, CHANGE_PARAMS_ROLE)
        self._replace("min_deposit", require_uint64("min_deposit", value))

    def set_apply_stage_len(self, value: int, sender: str):
        self._require_role(sender, CHANGE_PARAMS_ROLE)
        self._replace("apply_stage_len", require_uint64("apply_stage_len", value))

    def set_dispensation_pct(self, value: int, sender: str):
        self._require_role(sender, CHANGE_PARAMS_ROLE)
        self._replace("dispensation_pct", require_pct("dispensation_pct", value))

    def set_voting_app(self, voting: VotingApp, sender: str):
        self._require_role(sender, CHANGE_VOTING_APP_ROLE)
        old = self._voting
        self._voting = require_voting_app(voting)
        logger.info(f"Voting app changed: {old!r} → {voting!r}")

    # ── Atomic-step support ───────────────────────────────────────────

    def snapshot(self):
        return (self._parameters, self._voting)

    def restore(self, state):
        self._parameters, self._voting = state

    def to_dict(self) -> Dict[str, Any]:
        return {**self._parameters.to_dict(), "voting": repr(self._voting)}

    def __repr__(self) -> str:
        p = self._parameters
        return (
            f"<ParameterStore min_deposit={p.min_deposit} "
            f"apply_stage_len={p.apply_stage_len} dispensation_pct={p.dispensation_pct}>"
        )
