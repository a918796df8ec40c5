from datetime import datetime
from typing import Any, Hashable

from beanie import UpdateResponse
from beanie.operators import Inc, Set
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import ConnectionFailure, DuplicateKeyError

from creditledger.core.exceptions import StoreConnectionError
from creditledger.db.init import init_db
from creditledger.models.credit_node import CreditNode
from creditledger.storage.base import NodeSnapshot, RemoteStore


class MongoStore(RemoteStore):
    """CreditNode documents; the version field is the conditional-write guard."""

    def __init__(self, server_selection_timeout_ms: int | None = None) -> None:
        self._timeout_ms = server_selection_timeout_ms
        self._client: AsyncIOMotorClient | None = None

    async def open(self) -> None:
        if self._client is not None:
            return
        try:
            self._client = await init_db(self._timeout_ms)
        except ConnectionFailure as e:
            raise StoreConnectionError(f"MongoDB unreachable: {e}") from e

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    async def read_node(self, path: str) -> NodeSnapshot:
        try:
            node = await CreditNode.find_one(CreditNode.path == path)
        except ConnectionFailure as e:
            raise StoreConnectionError(f"MongoDB unreachable: {e}", details={"path": path}) from e
        if node is None:
            return NodeSnapshot(path, None, 0, False)
        return NodeSnapshot(path, node.value, node.version, True)

    async def conditional_write(self, path: str, value: Any, expected_version: Hashable | None) -> bool:
        try:
            if not expected_version:
                # Node was missing at read time; the unique path index rejects a racing creator.
                try:
                    await CreditNode(path=path, value=value, version=1).insert()
                except DuplicateKeyError:
                    return False
                return True
            result = await CreditNode.find_one(
                CreditNode.path == path,
                CreditNode.version == expected_version,
            ).update(
                Set({CreditNode.value: value, CreditNode.updated_at: datetime.utcnow()}),
                Inc({CreditNode.version: 1}),
                response_type=UpdateResponse.UPDATE_RESULT,
            )
        except ConnectionFailure as e:
            raise StoreConnectionError(f"MongoDB unreachable: {e}", details={"path": path}) from e
        return result.matched_count == 1
