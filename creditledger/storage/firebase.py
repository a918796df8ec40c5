import asyncio
from typing import Any, Hashable

import firebase_admin
from firebase_admin import credentials, db
from firebase_admin.exceptions import DeadlineExceededError, UnavailableError

from creditledger.core.config import get_settings
from creditledger.core.exceptions import StoreConnectionError
from creditledger.storage.base import NodeSnapshot, RemoteStore

APP_NAME = "creditledger"


def _get_or_create_app() -> firebase_admin.App:
    try:
        return firebase_admin.get_app(APP_NAME)
    except ValueError:
        pass
    settings = get_settings()
    if settings.firebase_credentials:
        cred = credentials.Certificate(settings.firebase_credentials)
    else:
        cred = credentials.ApplicationDefault()
    return firebase_admin.initialize_app(cred, {"databaseURL": settings.firebase_database_url}, name=APP_NAME)


class FirebaseStore(RemoteStore):
    """Firebase Realtime Database; ETags are the version tokens."""

    def __init__(self, app: firebase_admin.App | None = None) -> None:
        self._app = app

    async def open(self) -> None:
        if self._app is None:
            self._app = _get_or_create_app()

    def _ref(self, path: str) -> db.Reference:
        if self._app is None:
            self._app = _get_or_create_app()
        return db.reference(path, app=self._app)

    async def read_node(self, path: str) -> NodeSnapshot:
        ref = self._ref(path)
        try:
            value, etag = await asyncio.to_thread(ref.get, etag=True)
        except (UnavailableError, DeadlineExceededError) as e:
            raise StoreConnectionError(f"Firebase unreachable: {e}", details={"path": path}) from e
        return NodeSnapshot(path, value, etag, value is not None)

    async def conditional_write(self, path: str, value: Any, expected_version: Hashable | None) -> bool:
        ref = self._ref(path)
        try:
            committed, _, _ = await asyncio.to_thread(ref.set_if_unchanged, expected_version, value)
        except (UnavailableError, DeadlineExceededError) as e:
            raise StoreConnectionError(f"Firebase unreachable: {e}", details={"path": path}) from e
        return committed
