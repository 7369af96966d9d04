"""
Income service.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from dateutil.relativedelta import relativedelta

from ..models.ledger import Income
from ..repositories.ledger_repository import IncomeRepository
from ..security.encryption import FieldEncryption
from ..security.secure_logging import get_structured_logger
from .recurring import RecurringMaterializer
from .validators import (
    ImmutableEntryError,
    IncomeCreate,
    IncomeUpdate,
    NotFoundError,
    parse_payload,
    provided_fields,
)

logger = get_structured_logger().get_logger(__name__)


class IncomeService:
    """Service for income entries."""

    def __init__(
        self,
        incomes: IncomeRepository,
        materializer: RecurringMaterializer,
        encryption: FieldEncryption,
    ):
        self.incomes = incomes
        self.materializer = materializer
        self.encryption = encryption

    def _to_dict(self, income: Income) -> Dict[str, Any]:
        return {
            "id": income.id,
            "occurred_on": income.occurred_on.isoformat(),
            "amount": self.encryption.decrypt_number(income.amount_encrypted),
            "description": self.encryption.decrypt_string(income.description_encrypted),
            "recurring_source_id": income.recurring_source_id,
        }

    def list_income(
        self, user_id: str, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[Dict[str, Any]]:
        self.materializer.materialize_incomes(user_id)
        return [self._to_dict(income) for income in self.incomes.find_by_user(user_id, start, end)]

    def get_income(self, user_id: str, income_id: str) -> Dict[str, Any]:
        income = self.incomes.find_for_user(income_id, user_id)
        if income is None:
            raise NotFoundError("Income", income_id)
        return self._to_dict(income)

    def add_income(self, user_id: str, payload: Any) -> Dict[str, Any]:
        data = parse_payload(IncomeCreate, payload)
        created = self.incomes.create(
            Income(
                user_id=user_id,
                occurred_on=data.occurred_on,
                amount_encrypted=self.encryption.encrypt_number(data.amount),
                description_encrypted=self.encryption.encrypt_string(data.description),
            )
        )
        logger.info("Income added", user_id=user_id, income_id=created.id, operation="add_income")
        return self._to_dict(created)

    def update_income(self, user_id: str, income_id: str, payload: Any) -> Dict[str, Any]:
        data = parse_payload(IncomeUpdate, payload)
        existing = self.incomes.find_for_user(income_id, user_id)
        if existing is None:
            raise NotFoundError("Income", income_id)
        if existing.is_materialized:
            raise ImmutableEntryError("Recurring income entries cannot be edited")

        changes = provided_fields(data)
        fields: Dict[str, Any] = {}
        if changes.get("amount") is not None:
            fields["amount_encrypted"] = self.encryption.encrypt_number(changes["amount"])
        if changes.get("description") is not None:
            fields["description_encrypted"] = self.encryption.encrypt_string(changes["description"])
        if changes.get("occurred_on") is not None:
            fields["occurred_on"] = changes["occurred_on"]

        if not fields:
            return self._to_dict(existing)

        updated = existing.model_copy(update=fields)
        if not self.incomes.update_fields(
            income_id, self.incomes.columns_for(updated, fields), user_id=user_id
        ):
            raise NotFoundError("Income", income_id)
        return self.get_income(user_id, income_id)

    def delete_income(self, user_id: str, income_id: str) -> None:
        if not self.incomes.delete(income_id, user_id=user_id):
            raise NotFoundError("Income", income_id)
        logger.info("Income deleted", user_id=user_id, income_id=income_id, operation="delete_income")

    def monthly_income_total(self, user_id: str, month: date) -> float:
        """Sum of income dated in the calendar month containing ``month``."""
        start = month.replace(day=1)
        end = start + relativedelta(months=1, days=-1)
        return sum(income["amount"] for income in self.list_income(user_id, start, end))
