from fastapi import APIRouter, Depends
from pydantic import BaseModel

from creditledger.deps import get_ledger
from creditledger.services.ledger import CreditLedger

router = APIRouter()


class GrantRequest(BaseModel):
    amount: int  # may be negative; policy checks belong to the caller


@router.get("/{user}")
async def credits_account(user: str, ledger: CreditLedger = Depends(get_ledger)):
    """Return whether the account exists and its current balance."""
    exists, balance = await ledger.get_account(user)
    return {"user": user, "exists": exists, "balance": balance}


@router.post("/{user}/grant")
async def credits_grant(user: str, body: GrantRequest, ledger: CreditLedger = Depends(get_ledger)):
    balance = await ledger.add_credits(user, body.amount)
    return {"user": user, "balance": balance}


@router.post("/{user}/deduct")
async def credits_deduct(user: str, ledger: CreditLedger = Depends(get_ledger)):
    """Charge the configured cost; deducted=false when the balance is too low."""
    deducted, balance = await ledger.subtract_credits(user)
    return {"user": user, "deducted": deducted, "balance": balance}


@router.post("/{user}/refund")
async def credits_refund(user: str, ledger: CreditLedger = Depends(get_ledger)):
    balance = await ledger.refund_credits(user)
    return {"user": user, "balance": balance}
