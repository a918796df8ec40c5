import asyncio
from typing import Any, Hashable

from creditledger.storage.base import NodeSnapshot, RemoteStore


class MemoryStore(RemoteStore):
    """In-process store; versions are per-node write counters.

    `latency` simulates a network round trip and always yields to the loop,
    so concurrent callers interleave between read and write.
    """

    def __init__(self, latency: float = 0.0) -> None:
        self.latency = latency
        self._nodes: dict[str, tuple[Any, int]] = {}
        self._lock = asyncio.Lock()

    async def read_node(self, path: str) -> NodeSnapshot:
        await asyncio.sleep(self.latency)
        async with self._lock:
            if path not in self._nodes:
                return NodeSnapshot(path, None, 0, False)
            value, version = self._nodes[path]
            return NodeSnapshot(path, value, version, True)

    async def conditional_write(self, path: str, value: Any, expected_version: Hashable | None) -> bool:
        await asyncio.sleep(self.latency)
        async with self._lock:
            current = self._nodes[path][1] if path in self._nodes else 0
            if current != expected_version:
                return False
            self._nodes[path] = (value, current + 1)
            return True

    def seed(self, path: str, value: Any) -> None:
        """Set a node directly, bumping its version."""
        version = self._nodes[path][1] if path in self._nodes else 0
        self._nodes[path] = (value, version + 1)
