"""
Expense service for one-off and materialized expense entries.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from ..models.ledger import Expense
from ..repositories.ledger_repository import ExpenseRepository
from ..security.encryption import FieldEncryption
from ..security.secure_logging import get_structured_logger
from .recurring import RecurringMaterializer
from .validators import (
    ExpenseCreate,
    ExpenseUpdate,
    ImmutableEntryError,
    NotFoundError,
    parse_payload,
    provided_fields,
)

logger = get_structured_logger().get_logger(__name__)

DEFAULT_TAKE = 200


class ExpenseService:
    """Service for expense management operations."""

    def __init__(
        self,
        expenses: ExpenseRepository,
        materializer: RecurringMaterializer,
        encryption: FieldEncryption,
    ):
        self.expenses = expenses
        self.materializer = materializer
        self.encryption = encryption

    def _to_dict(self, expense: Expense) -> Dict[str, Any]:
        amount = self.encryption.decrypt_number(expense.amount_encrypted)
        # materialized entries carry no impact payload
        share = amount / expense.split_by if expense.split_by > 1 else amount
        return {
            "id": expense.id,
            "occurred_on": expense.occurred_on.isoformat(),
            "amount": amount,
            "impact_amount": self.encryption.decrypt_number(
                expense.impact_amount_encrypted, fallback=share
            ),
            "description": self.encryption.decrypt_string(expense.description_encrypted),
            "category_id": expense.category_id,
            "split_by": expense.split_by,
            "recurring_source_id": expense.recurring_source_id,
        }

    def list_expenses(
        self,
        user_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
        take: int = DEFAULT_TAKE,
    ) -> List[Dict[str, Any]]:
        """Materialize due recurring expenses, then list newest first."""
        self.materializer.materialize_expenses(user_id)
        return [
            self._to_dict(expense)
            for expense in self.expenses.find_by_user(user_id, start, end, take)
        ]

    def get_expense(self, user_id: str, expense_id: str) -> Dict[str, Any]:
        expense = self.expenses.find_for_user(expense_id, user_id)
        if expense is None:
            raise NotFoundError("Expense", expense_id)
        return self._to_dict(expense)

    def create_expense(self, user_id: str, payload: Any) -> Dict[str, Any]:
        data = parse_payload(ExpenseCreate, payload)
        split_by = data.split_by or 1
        impact = data.impact_amount
        if impact is None:
            impact = data.amount / split_by if split_by > 1 else data.amount

        created = self.expenses.create(
            Expense(
                user_id=user_id,
                occurred_on=data.occurred_on,
                amount_encrypted=self.encryption.encrypt_number(data.amount),
                impact_amount_encrypted=self.encryption.encrypt_number(impact),
                description_encrypted=self.encryption.encrypt_string(data.description),
                category_id=data.category_id,
                split_by=split_by,
            )
        )
        logger.info("Expense created", user_id=user_id, expense_id=created.id, operation="create_expense")
        return self._to_dict(created)

    def update_expense(self, user_id: str, expense_id: str, payload: Any) -> Dict[str, Any]:
        """Partial update; entries generated from a template are refused."""
        data = parse_payload(ExpenseUpdate, payload)
        existing = self.expenses.find_for_user(expense_id, user_id)
        if existing is None:
            raise NotFoundError("Expense", expense_id)
        if existing.is_materialized:
            raise ImmutableEntryError("Recurring expense entries cannot be edited")

        changes = provided_fields(data)
        fields: Dict[str, Any] = {}
        if changes.get("amount") is not None:
            fields["amount_encrypted"] = self.encryption.encrypt_number(changes["amount"])
        if changes.get("impact_amount") is not None:
            fields["impact_amount_encrypted"] = self.encryption.encrypt_number(changes["impact_amount"])
        if changes.get("description") is not None:
            fields["description_encrypted"] = self.encryption.encrypt_string(changes["description"])
        if changes.get("occurred_on") is not None:
            fields["occurred_on"] = changes["occurred_on"]
        if "category_id" in changes:
            fields["category_id"] = changes["category_id"]
        if changes.get("split_by") is not None:
            fields["split_by"] = changes["split_by"]

        if not fields:
            return self._to_dict(existing)

        updated = existing.model_copy(update=fields)
        self.expenses.update_fields(
            expense_id, self.expenses.columns_for(updated, fields), user_id=user_id
        )
        return self.get_expense(user_id, expense_id)

    def delete_expense(self, user_id: str, expense_id: str) -> None:
        if not self.expenses.delete(expense_id, user_id=user_id):
            raise NotFoundError("Expense", expense_id)
        logger.info("Expense deleted", user_id=user_id, expense_id=expense_id, operation="delete_expense")
