"""Shared FastAPI dependencies."""

from fastapi import Request

from creditledger.core.exceptions import StoreConnectionError
from creditledger.services.ledger import CreditLedger


async def get_ledger(request: Request) -> CreditLedger:
    """Dependency: the process-wide ledger built at startup."""
    ledger = getattr(request.app.state, "ledger", None)
    if ledger is None:
        raise StoreConnectionError("Ledger not initialised")
    return ledger
