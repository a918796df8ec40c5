"""Optimistic read-mutate-conditional-write loop over a single store node."""

import asyncio
import random
from typing import Any, Callable, NamedTuple

from creditledger.core.config import get_settings
from creditledger.core.exceptions import DecodeError, RetriesExhaustedError, TransactionCancelled
from creditledger.core.logging import get_logger
from creditledger.storage.base import RemoteStore

log = get_logger(__name__)


class Mutation(NamedTuple):
    value: int
    abort: bool = False


class TransactionResult(NamedTuple):
    prior: int
    value: int
    committed: bool
    attempts: int


Mutator = Callable[[int], Mutation]


def decode_balance(path: str, raw: Any) -> int:
    """Absent/None is 0; any other non-int (bools included) is a DecodeError."""
    if raw is None:
        return 0
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise DecodeError(path, raw)
    return raw


class TransactionExecutor:
    def __init__(
        self,
        store: RemoteStore,
        max_attempts: int = 25,
        backoff_base: float = 0.01,
        backoff_max: float = 1.0,
        timeout: float | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.store = store
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.timeout = timeout

    @classmethod
    def from_settings(cls, store: RemoteStore) -> "TransactionExecutor":
        s = get_settings()
        return cls(
            store,
            max_attempts=s.transaction_max_attempts,
            backoff_base=s.transaction_backoff_base,
            backoff_max=s.transaction_backoff_max,
            timeout=s.transaction_timeout,
        )

    def _backoff(self, attempt: int) -> float:
        delay = min(self.backoff_base * (2 ** (attempt - 1)), self.backoff_max)
        return delay * random.uniform(0.5, 1.0)

    async def _before_deadline(self, aw, when: float | None, path: str, attempts: int):
        """Await aw under the transaction deadline; only an expired deadline becomes TransactionCancelled."""
        cm = asyncio.timeout_at(when)
        try:
            async with cm:
                return await aw
        except TimeoutError as e:
            if cm.expired():
                raise TransactionCancelled(path, attempts) from e
            raise

    async def run_transaction(
        self,
        path: str,
        mutate: Mutator,
        *,
        timeout: float | None = None,
    ) -> TransactionResult:
        """
        Apply mutate to the node at path until a conditional write commits.
        mutate may run once per attempt and must be pure.
        The deadline covers reads and backoff; a write already sent runs to completion
        and its real outcome is reported.
        Raises TransactionCancelled when the deadline passes, RetriesExhaustedError after max_attempts conflicts.
        """
        deadline = timeout if timeout is not None else self.timeout
        when = asyncio.get_running_loop().time() + deadline if deadline is not None else None
        attempts = 0
        while True:
            attempts += 1
            snapshot = await self._before_deadline(self.store.read_node(path), when, path, attempts)
            current = decode_balance(path, snapshot.value)
            mutation = mutate(current)
            if mutation.abort:
                return TransactionResult(current, current, False, attempts)
            write = self.store.conditional_write(path, mutation.value, snapshot.version)
            if await asyncio.shield(write):
                return TransactionResult(current, mutation.value, True, attempts)
            if attempts >= self.max_attempts:
                raise RetriesExhaustedError(path, attempts)
            log.debug("transaction_conflict", path=path, attempt=attempts)
            await self._before_deadline(asyncio.sleep(self._backoff(attempts)), when, path, attempts)
