from abc import ABC, abstractmethod
from typing import Any, Hashable, NamedTuple

from creditledger.core.config import get_settings
from creditledger.core.exceptions import InvalidUserKeyError


class NodeSnapshot(NamedTuple):
    path: str
    value: Any
    version: Hashable | None
    exists: bool


class RemoteStore(ABC):
    """Path-addressed store with optimistic conditional writes."""

    @abstractmethod
    async def read_node(self, path: str) -> NodeSnapshot:
        """Read raw value and version token; a missing node is exists=False, value=None."""
        ...

    @abstractmethod
    async def conditional_write(self, path: str, value: Any, expected_version: Hashable | None) -> bool:
        """Write value only if the node is still at expected_version.

        Returns False on a version mismatch (concurrent modification).
        """
        ...

    async def open(self) -> None:
        return None

    async def close(self) -> None:
        return None


# Firebase rejects these anywhere in a path; "/" would also split the key into two segments
ILLEGAL_KEY_CHARS = frozenset("/.$#[]")


def node_path(base: str, user: str) -> str:
    """basePath/userKey; the user key is a single child segment."""
    if not user or ILLEGAL_KEY_CHARS.intersection(user):
        raise InvalidUserKeyError(user)
    base = base.strip("/")
    return f"{base}/{user}" if base else user


def get_store() -> RemoteStore:
    settings = get_settings()
    if settings.store_backend == "mongo":
        from creditledger.storage.mongo import MongoStore
        return MongoStore()
    if settings.store_backend == "firebase":
        from creditledger.storage.firebase import FirebaseStore
        return FirebaseStore()
    from creditledger.storage.memory import MemoryStore
    return MemoryStore()
