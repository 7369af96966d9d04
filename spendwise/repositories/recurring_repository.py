"""
Recurring template repositories.
"""

from datetime import date
from typing import Any, Dict, List, Type

from ..models.recurring import RecurringExpense, RecurringIncome, RecurringTemplate
from .base import (
    BaseRepository,
    dump_json,
    from_db_date,
    from_db_datetime,
    load_json,
    to_db_date,
    to_db_datetime,
)


class RecurringTemplateRepository(BaseRepository[RecurringTemplate]):
    """Queries shared by both template tables."""

    def _common_fields(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": row["id"],
            "user_id": row["user_id"],
            "amount_encrypted": load_json(row.get("amount_encrypted"), {}),
            "description_encrypted": load_json(row.get("description_encrypted"), {}),
            "due_day_of_month": row["due_day_of_month"],
            "is_active": bool(row["is_active"]),
            "last_generated_on": from_db_date(row.get("last_generated_on")),
            "created_at": from_db_datetime(row.get("created_at")),
        }

    def _common_columns(self, model: RecurringTemplate) -> Dict[str, Any]:
        return {
            "id": model.id,
            "user_id": model.user_id,
            "amount_encrypted": dump_json(model.amount_encrypted),
            "description_encrypted": dump_json(model.description_encrypted),
            "due_day_of_month": model.due_day_of_month,
            "is_active": 1 if model.is_active else 0,
            "last_generated_on": to_db_date(model.last_generated_on),
            "created_at": to_db_datetime(model.created_at),
        }

    def find_by_user(self, user_id: str) -> List[RecurringTemplate]:
        return self._fetch_all(
            f"SELECT * FROM {self._table_name} WHERE user_id = ? ORDER BY created_at DESC",
            (user_id,),
        )

    def find_active_by_user(self, user_id: str) -> List[RecurringTemplate]:
        return self._fetch_all(
            f"SELECT * FROM {self._table_name} WHERE user_id = ? AND is_active = 1 "
            "ORDER BY created_at, id",
            (user_id,),
        )

    def update_watermark(self, id: str, last_generated_on: date) -> int:
        """Advance ``last_generated_on`` after an entry has been created."""
        return self.update_fields(id, {"last_generated_on": to_db_date(last_generated_on)})


class RecurringExpenseRepository(RecurringTemplateRepository):
    """Repository for RecurringExpense templates."""

    def _get_table_name(self) -> str:
        return "recurring_expenses"

    def _get_model_class(self) -> Type[RecurringExpense]:
        return RecurringExpense

    def _row_to_model(self, row: Dict[str, Any]) -> RecurringExpense:
        return RecurringExpense(
            **self._common_fields(row),
            category_id=row.get("category_id"),
            split_by=row.get("split_by") or 1,
        )

    def _model_to_dict(self, model: RecurringExpense) -> Dict[str, Any]:
        data = self._common_columns(model)
        data["category_id"] = model.category_id
        data["split_by"] = model.split_by
        return data


class RecurringIncomeRepository(RecurringTemplateRepository):
    """Repository for RecurringIncome templates."""

    def _get_table_name(self) -> str:
        return "recurring_incomes"

    def _get_model_class(self) -> Type[RecurringIncome]:
        return RecurringIncome

    def _row_to_model(self, row: Dict[str, Any]) -> RecurringIncome:
        return RecurringIncome(**self._common_fields(row))

    def _model_to_dict(self, model: RecurringIncome) -> Dict[str, Any]:
        return self._common_columns(model)
