"""Per-user credit balances: grant, guarded deduct, refund."""

from creditledger.core.config import get_settings
from creditledger.core.logging import get_logger
from creditledger.models.charge import ChargeData, TransactionOutcome
from creditledger.services.transaction import Mutation, Mutator, TransactionExecutor, decode_balance
from creditledger.storage.base import RemoteStore, get_store, node_path

log = get_logger(__name__)


class CreditLedger:
    def __init__(
        self,
        store: RemoteStore,
        charge_data: ChargeData,
        executor: TransactionExecutor | None = None,
    ) -> None:
        if executor is not None and executor.store is not store:
            raise ValueError("executor must run on the ledger's store")
        self.store = store
        self.charge_data = charge_data
        self.executor = executor or TransactionExecutor.from_settings(store)

    @classmethod
    def from_settings(cls, store: RemoteStore | None = None) -> "CreditLedger":
        return cls(store or get_store(), get_settings().charge_data)

    @property
    def cost(self) -> int:
        return self.charge_data.cost

    def path_for(self, user: str) -> str:
        return node_path(self.charge_data.path, user)

    async def _transact(self, user: str, mutate: Mutator) -> TransactionOutcome:
        result = await self.executor.run_transaction(self.path_for(user), mutate)
        return TransactionOutcome(result.prior, result.value, result.committed)

    async def add_credits(self, user: str, grant: int) -> int:
        """Add grant (any integer, negative included) and return the committed balance."""
        outcome = await self._transact(user, lambda current: Mutation(current + grant))
        log.info("credits_granted", user=user, amount=grant, balance=outcome.new_balance)
        return outcome.new_balance

    async def subtract_credits(self, user: str) -> tuple[bool, int]:
        """
        Deduct the configured cost if the balance covers it.
        Returns (deducted, balance); an insufficient balance is (False, current) with no write.
        """
        cost = self.cost

        def deduct(current: int) -> Mutation:
            if current >= cost:
                return Mutation(current - cost)
            return Mutation(current, abort=True)

        outcome = await self._transact(user, deduct)
        if outcome.applied:
            log.info("credits_deducted", user=user, amount=cost, balance=outcome.new_balance)
        return outcome.applied, outcome.new_balance

    async def refund_credits(self, user: str) -> int:
        """Give back the configured cost unconditionally; returns the new balance."""
        cost = self.cost
        outcome = await self._transact(user, lambda current: Mutation(current + cost))
        log.info("credits_refunded", user=user, amount=cost, balance=outcome.new_balance)
        return outcome.new_balance

    async def get_account(self, user: str) -> tuple[bool, int]:
        """(exists, balance) from a single read; a missing or null node is (False, 0)."""
        path = self.path_for(user)
        snapshot = await self.store.read_node(path)
        exists = snapshot.exists and snapshot.value is not None
        return exists, decode_balance(path, snapshot.value) if exists else 0

    async def account_exists(self, user: str) -> bool:
        snapshot = await self.store.read_node(self.path_for(user))
        return snapshot.exists and snapshot.value is not None

    async def get_balance(self, user: str) -> int:
        """Current balance (0 if no record); a plain read, not a transaction."""
        path = self.path_for(user)
        snapshot = await self.store.read_node(path)
        return decode_balance(path, snapshot.value)
