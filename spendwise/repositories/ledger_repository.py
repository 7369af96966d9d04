"""
Expense and income repositories.
"""

from datetime import date
from typing import Any, Dict, List, Optional, Type

from ..models.ledger import Expense, Income, LedgerEntry
from .base import (
    BaseRepository,
    dump_json,
    from_db_date,
    from_db_datetime,
    load_json,
    to_db_date,
    to_db_datetime,
)


class LedgerRepository(BaseRepository[LedgerEntry]):
    """Queries shared by the expense and income tables."""

    def _common_fields(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": row["id"],
            "user_id": row["user_id"],
            "occurred_on": from_db_date(row["occurred_on"]),
            "amount_encrypted": load_json(row.get("amount_encrypted"), {}),
            "description_encrypted": load_json(row.get("description_encrypted"), {}),
            "recurring_source_id": row.get("recurring_source_id"),
            "created_at": from_db_datetime(row.get("created_at")),
        }

    def _common_columns(self, model: LedgerEntry) -> Dict[str, Any]:
        return {
            "id": model.id,
            "user_id": model.user_id,
            "occurred_on": to_db_date(model.occurred_on),
            "amount_encrypted": dump_json(model.amount_encrypted),
            "description_encrypted": dump_json(model.description_encrypted),
            "recurring_source_id": model.recurring_source_id,
            "created_at": to_db_datetime(model.created_at),
        }

    def find_by_user(
        self,
        user_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
        take: Optional[int] = None,
    ) -> List[LedgerEntry]:
        """Entries for a user, newest first, optionally bounded by date."""
        query = f"SELECT * FROM {self._table_name} WHERE user_id = ?"
        params: List[Any] = [user_id]
        if start:
            query += " AND occurred_on >= ?"
            params.append(to_db_date(start))
        if end:
            query += " AND occurred_on <= ?"
            params.append(to_db_date(end))
        query += " ORDER BY occurred_on DESC, created_at DESC"
        if take:
            query += " LIMIT ?"
            params.append(take)
        return self._fetch_all(query, params)

    def find_by_source(self, recurring_source_id: str) -> List[LedgerEntry]:
        return self._fetch_all(
            f"SELECT * FROM {self._table_name} WHERE recurring_source_id = ? "
            "ORDER BY occurred_on",
            (recurring_source_id,),
        )


class ExpenseRepository(LedgerRepository):
    """Repository for Expense entries."""

    def _get_table_name(self) -> str:
        return "expenses"

    def _get_model_class(self) -> Type[Expense]:
        return Expense

    def _row_to_model(self, row: Dict[str, Any]) -> Expense:
        return Expense(
            **self._common_fields(row),
            impact_amount_encrypted=load_json(row.get("impact_amount_encrypted")),
            category_id=row.get("category_id"),
            split_by=row.get("split_by") or 1,
        )

    def _model_to_dict(self, model: Expense) -> Dict[str, Any]:
        data = self._common_columns(model)
        data["impact_amount_encrypted"] = dump_json(model.impact_amount_encrypted)
        data["category_id"] = model.category_id
        data["split_by"] = model.split_by
        return data


class IncomeRepository(LedgerRepository):
    """Repository for Income entries."""

    def _get_table_name(self) -> str:
        return "incomes"

    def _get_model_class(self) -> Type[Income]:
        return Income

    def _row_to_model(self, row: Dict[str, Any]) -> Income:
        return Income(**self._common_fields(row))

    def _model_to_dict(self, model: Income) -> Dict[str, Any]:
        return self._common_columns(model)
