"""
Services Layer

Business logic on top of the repositories: the recurring materializer,
ledger and template services, API key management and error mapping.
"""

from .recurring import RecurringMaterializer, clamp_to_month, due_dates_up_to, next_due_date
from .expense_service import ExpenseService
from .income_service import IncomeService
from .recurring_template_service import RecurringExpenseService, RecurringIncomeService
from .api_key_service import ApiKeyService, CreatedApiKey
from .validators import ImmutableEntryError, NotFoundError, ValidationError
from .error_handler import ErrorHandler, register_exception_handlers

__all__ = [
    "RecurringMaterializer",
    "clamp_to_month",
    "due_dates_up_to",
    "next_due_date",
    "ExpenseService",
    "IncomeService",
    "RecurringExpenseService",
    "RecurringIncomeService",
    "ApiKeyService",
    "CreatedApiKey",
    "ImmutableEntryError",
    "NotFoundError",
    "ValidationError",
    "ErrorHandler",
    "register_exception_handlers",
]
