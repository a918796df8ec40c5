"""Transaction executor: commit, abort, conflict retry, failure classification."""

import asyncio

import pytest

from creditledger.core.exceptions import (
    DecodeError,
    RetriesExhaustedError,
    StoreConnectionError,
    TransactionCancelled,
)
from creditledger.services.transaction import Mutation, TransactionExecutor

pytestmark = pytest.mark.asyncio


def add(n):
    return lambda current: Mutation(current + n)


async def test_commits_on_first_attempt(store, executor):
    result = await executor.run_transaction("credits/alice", add(7))
    assert result.committed
    assert (result.prior, result.value, result.attempts) == (0, 7, 1)
    assert (await store.read_node("credits/alice")).value == 7


async def test_abort_skips_write(store, executor):
    store.seed("credits/alice", 3)
    result = await executor.run_transaction("credits/alice", lambda current: Mutation(current, abort=True))
    assert not result.committed
    assert result.value == 3
    assert store.writes == 0


async def test_conflict_rereads_and_reapplies(store, executor):
    store.seed("credits/alice", 10)
    store.interference = [20]
    seen = []

    def mutate(current):
        seen.append(current)
        return Mutation(current + 5)

    result = await executor.run_transaction("credits/alice", mutate)
    assert seen == [10, 20]
    assert result.committed
    assert (result.prior, result.value, result.attempts) == (20, 25, 2)
    assert (await store.read_node("credits/alice")).value == 25


async def test_retries_exhausted(store, executor):
    store.always_conflict = True
    with pytest.raises(RetriesExhaustedError) as exc_info:
        await executor.run_transaction("credits/alice", add(1))
    assert exc_info.value.attempts == 5
    assert store.reads == 5
    assert exc_info.value.status_code == 409


async def test_connection_failure_is_not_retried(store, executor):
    store.read_error = StoreConnectionError("down")
    with pytest.raises(StoreConnectionError):
        await executor.run_transaction("credits/alice", add(1))
    assert store.reads == 1
    assert store.writes == 0


async def test_undecodable_value_raises(store, executor):
    store.seed("credits/alice", "12")
    with pytest.raises(DecodeError) as exc_info:
        await executor.run_transaction("credits/alice", add(1))
    assert exc_info.value.details == {"path": "credits/alice", "type": "str"}
    assert store.writes == 0


async def test_deadline_abandons_without_write(store):
    store.latency = 0.5
    executor = TransactionExecutor(store, backoff_base=0, timeout=0.05)
    with pytest.raises(TransactionCancelled) as exc_info:
        await executor.run_transaction("credits/alice", add(1))
    assert exc_info.value.attempts == 1
    assert store.writes == 0
    store.latency = 0
    assert not (await store.read_node("credits/alice")).exists


async def test_per_call_timeout_overrides_default(store):
    store.always_conflict = True
    executor = TransactionExecutor(store, max_attempts=10_000, backoff_base=0.01, backoff_max=0.01)
    with pytest.raises(TransactionCancelled):
        await executor.run_transaction("credits/alice", add(1), timeout=0.05)


async def test_task_cancellation_propagates(store, executor):
    store.latency = 0.5
    task = asyncio.create_task(executor.run_transaction("credits/alice", add(1)))
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert store.writes == 0



async def test_write_in_flight_at_deadline_reports_commit(store):
    store.write_delay = 0.2
    executor = TransactionExecutor(store, backoff_base=0, timeout=0.05)
    result = await executor.run_transaction("credits/alice", add(5))
    assert result.committed
    assert result.value == 5
    assert (await store.read_node("credits/alice")).value == 5


async def test_deadline_expiring_during_backoff(store):
    store.always_conflict = True
    executor = TransactionExecutor(store, max_attempts=100, backoff_base=0.5, backoff_max=0.5, timeout=0.05)
    with pytest.raises(TransactionCancelled) as exc_info:
        await executor.run_transaction("credits/alice", add(1))
    assert exc_info.value.attempts == 1
    assert store.writes == 1


async def test_store_timeout_is_not_a_cancellation(store, executor):
    store.read_error = TimeoutError("socket read timed out")
    with pytest.raises(TimeoutError) as exc_info:
        await executor.run_transaction("credits/alice", add(1))
    assert not isinstance(exc_info.value, TransactionCancelled)
    assert store.reads == 1
