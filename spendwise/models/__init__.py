"""
Domain models.
"""

from .base import BaseModel, OwnedModel, utcnow, new_id
from .user import User
from .recurring import RecurringTemplate, RecurringExpense, RecurringIncome
from .ledger import LedgerEntry, Expense, Income
from .api_key import ApiKey

__all__ = [
    "BaseModel",
    "OwnedModel",
    "utcnow",
    "new_id",
    "User",
    "RecurringTemplate",
    "RecurringExpense",
    "RecurringIncome",
    "LedgerEntry",
    "Expense",
    "Income",
    "ApiKey",
]
