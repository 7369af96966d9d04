"""
Repository Layer

Data access for users, recurring templates, ledger entries and API keys.
"""

from .base import BaseRepository, DatabaseConnection
from .user_repository import UserRepository
from .recurring_repository import (
    RecurringTemplateRepository,
    RecurringExpenseRepository,
    RecurringIncomeRepository,
)
from .ledger_repository import LedgerRepository, ExpenseRepository, IncomeRepository
from .api_key_repository import ApiKeyRepository

__all__ = [
    "BaseRepository",
    "DatabaseConnection",
    "UserRepository",
    "RecurringTemplateRepository",
    "RecurringExpenseRepository",
    "RecurringIncomeRepository",
    "LedgerRepository",
    "ExpenseRepository",
    "IncomeRepository",
    "ApiKeyRepository",
]
