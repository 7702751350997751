"""
Access control collaborator — decides who may change coordinator settings.
"""

from abc import ABC, abstractmethod
from typing import Dict, Set

from ..logger import get_logger

logger = get_logger(__name__)


class AccessControl(ABC):
    """Contract consumed by the coordinator."""

    @abstractmethod
    def has_permission(self, entity: str, role: str) -> bool:
        ...


class RoleAccessControl(AccessControl):
    """In-memory role grants: role → {entities}."""

    def __init__(self, grants: Dict[str, Set[str]] = None):
        self._grants: Dict[str, Set[str]] = {
            role: set(entities) for role, entities in (grants or {}).items()
        }

    def grant(self, entity: str, role: str):
        self._grants.setdefault(role, set()).add(entity)
        logger.info(f"Role {role} granted to {entity}")

    def revoke(self, entity: str, role: str):
        self._grants.get(role, set()).discard(entity)
        logger.info(f"Role {role} revoked from {entity}")

    def has_permission(self, entity: str, role: str) -> bool:
        return entity in self._grants.get(role, set())

    def __repr__(self) -> str:
        return f"<RoleAccessControl roles={len(self._grants)}>"
