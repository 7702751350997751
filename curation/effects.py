"""
Staged effects: ledger commits first, outbound collaborator calls second.

Resolution and removal paths build a StagedEffects, queue their ledger
mutations with ``commit`` and their registry / staking calls with
``interact``, then ``apply`` it. A collaborator that re-enters the
coordinator from an interaction therefore always observes committed state.
"""

from typing import Any, Callable, List, Tuple

_Step = Tuple[Callable[..., Any], tuple, dict]


class StagedEffects:

    def __init__(self, label: str = ""):
        self.label = label
        self._commits: List[_Step] = []
        self._interactions: List[_Step] = []
        self._applied = False

    def commit(self, fn: Callable[..., Any], *args, **kwargs) -> "StagedEffects":
        """Queue an internal ledger mutation."""
        self._require_open()
        self._commits.append((fn, args, kwargs))
        return self

    def interact(self, fn: Callable[..., Any], *args, **kwargs) -> "StagedEffects":
        """Queue an outbound collaborator call."""
        self._require_open()
        self._interactions.append((fn, args, kwargs))
        return self

    def apply(self):
        self._require_open()
        self._applied = True
        for fn, args, kwargs in self._commits:
            fn(*args, **kwargs)
        for fn, args, kwargs in self._interactions:
            fn(*args, **kwargs)

    def _require_open(self):
        if self._applied:
            raise RuntimeError(f"Effects {self.label!r} already applied")

    @property
    def pending(self) -> Tuple[int, int]:
        """(commits, interactions) queued so far."""
        return len(self._commits), len(self._interactions)

    def __repr__(self) -> str:
        return (
            f"<StagedEffects {self.label!r} commits={len(self._commits)} "
            f"interactions={len(self._interactions)} applied={self._applied}>"
        )
