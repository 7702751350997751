"""
Registry collaborator — the shared list that admitted entries land in.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Set

from ..logger import get_logger
from .errors import CollaboratorError

logger = get_logger(__name__)


class RegistryError(CollaboratorError):
    """Registry mutation rejected."""


class Registry(ABC):
    """Contract consumed by the coordinator."""

    @abstractmethod
    def exists(self, data: bytes) -> bool:
        ...

    @abstractmethod
    def add(self, data: bytes):
        ...

    @abstractmethod
    def remove(self, data: bytes):
        ...


class RegistryApp(Registry):
    """In-memory registry of admitted data values."""

    def __init__(self):
        self._entries: Set[bytes] = set()
        self._order: List[bytes] = []

    def exists(self, data: bytes) -> bool:
        return data in self._entries

    def add(self, data: bytes):
        if not data:
            raise RegistryError("Cannot register empty data")
        if data in self._entries:
            raise RegistryError(f"Data already registered: {data!r}")
        self._entries.add(data)
        self._order.append(data)
        logger.info(f"Registry: added {data!r}")

    def remove(self, data: bytes):
        if data not in self._entries:
            raise RegistryError(f"Data not registered: {data!r}")
        self._entries.discard(data)
        self._order.remove(data)
        logger.info(f"Registry: removed {data!r}")

    def entries(self) -> List[bytes]:
        """Admitted data in admission order."""
        return list(self._order)

    @property
    def count(self) -> int:
        return len(self._entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": len(self._entries),
            "entries": [d.hex() for d in self._order],
        }

    def __repr__(self) -> str:
        return f"<RegistryApp entries={len(self._entries)}>"
