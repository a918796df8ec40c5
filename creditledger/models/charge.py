from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field


class ChargeData(BaseModel):
    """Where balances live and how much one charge costs."""

    model_config = ConfigDict(frozen=True)

    path: str
    cost: int = Field(default=0, ge=0)


class TransactionOutcome(NamedTuple):
    prior_balance: int
    new_balance: int
    applied: bool
