from ..storage.models import UserCredits
from .ledger import CreditLedger, credit_day

__all__ = [
    "CreditLedger",
    "UserCredits",
    "credit_day",
]
