import asyncio
import os
from typing import Any, Hashable

import pytest

# Use in-memory store and a test DB for the mongo module
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("CREDITS_PATH", "credits")
os.environ.setdefault("CREDITS_COST", "10")
os.environ.setdefault("TRANSACTION_BACKOFF_BASE", "0")
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017")
os.environ.setdefault("MONGODB_DB_NAME", "creditledger_test")

from creditledger.models.charge import ChargeData  # noqa: E402
from creditledger.services.ledger import CreditLedger  # noqa: E402
from creditledger.services.transaction import TransactionExecutor  # noqa: E402
from creditledger.storage.memory import MemoryStore  # noqa: E402


class CountingStore(MemoryStore):
    """MemoryStore that records calls and can inject writes or failures."""

    def __init__(self, latency: float = 0.0) -> None:
        super().__init__(latency)
        self.reads = 0
        self.writes = 0
        self.interference: list[Any] = []
        self.always_conflict = False
        self.read_error: Exception | None = None
        self.write_delay = 0.0

    async def read_node(self, path: str):
        self.reads += 1
        if self.read_error is not None:
            raise self.read_error
        return await super().read_node(path)

    async def conditional_write(self, path: str, value: Any, expected_version: Hashable | None) -> bool:
        self.writes += 1
        await asyncio.sleep(self.write_delay)
        if self.interference:
            # Another writer commits between our read and our write
            self.seed(path, self.interference.pop(0))
        if self.always_conflict:
            return False
        return await super().conditional_write(path, value, expected_version)


@pytest.fixture
def store() -> CountingStore:
    return CountingStore()


@pytest.fixture
def executor(store: CountingStore) -> TransactionExecutor:
    return TransactionExecutor(store, max_attempts=5, backoff_base=0)


@pytest.fixture
def ledger(store: CountingStore) -> CreditLedger:
    return CreditLedger(
        store,
        ChargeData(path="credits", cost=10),
        executor=TransactionExecutor(store, max_attempts=200, backoff_base=0),
    )
