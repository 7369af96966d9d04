"""
Concrete ledger entries.
"""

from datetime import date
from typing import Optional

from pydantic import Field

from .base import EncryptedField, OwnedModel


class LedgerEntry(OwnedModel):
    occurred_on: date = Field(..., description="Date the money moved")
    amount_encrypted: EncryptedField = Field(...)
    description_encrypted: EncryptedField = Field(...)
    recurring_source_id: Optional[str] = Field(
        default=None,
        description="Template that generated this entry; such entries are read-only",
    )

    @property
    def is_materialized(self) -> bool:
        return self.recurring_source_id is not None


class Expense(LedgerEntry):
    impact_amount_encrypted: Optional[EncryptedField] = Field(
        default=None, description="Share of the amount that hits the owner's budget"
    )
    category_id: Optional[str] = Field(default=None)
    split_by: int = Field(default=1, ge=1, le=10)


class Income(LedgerEntry):
    pass
