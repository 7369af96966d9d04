"""
Recurring templates for expenses and incomes.

A template is projected forward once per calendar month on
``due_day_of_month``. ``last_generated_on`` is the watermark: the due date
of the most recent ledger entry created from the template.
"""

from datetime import date
from typing import Optional

from pydantic import Field

from .base import EncryptedField, OwnedModel


class RecurringTemplate(OwnedModel):
    """Fields shared by both template kinds."""

    amount_encrypted: EncryptedField = Field(..., description="Opaque encrypted amount")
    description_encrypted: EncryptedField = Field(
        ..., description="Opaque encrypted description"
    )
    due_day_of_month: int = Field(default=1, ge=1, le=31)
    is_active: bool = Field(default=True)
    last_generated_on: Optional[date] = Field(default=None)


class RecurringExpense(RecurringTemplate):
    category_id: Optional[str] = Field(default=None)
    split_by: int = Field(default=1, ge=1, le=10)


class RecurringIncome(RecurringTemplate):
    pass
