from creditledger.models.charge import ChargeData, TransactionOutcome
from creditledger.models.credit_node import CreditNode

__all__ = [
    "ChargeData",
    "TransactionOutcome",
    "CreditNode",
]
