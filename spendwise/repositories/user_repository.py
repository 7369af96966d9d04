"""
User repository.
"""

from typing import Any, Dict, List, Type

from ..models.user import User
from .base import BaseRepository, from_db_datetime, to_db_datetime


class UserRepository(BaseRepository[User]):
    """Repository for User entities."""

    def _get_table_name(self) -> str:
        return "users"

    def _get_model_class(self) -> Type[User]:
        return User

    def _row_to_model(self, row: Dict[str, Any]) -> User:
        return User(
            id=row["id"],
            email=row.get("email"),
            name=row.get("name"),
            default_currency=row.get("default_currency") or "USD",
            created_at=from_db_datetime(row.get("created_at")),
        )

    def _model_to_dict(self, model: User) -> Dict[str, Any]:
        return {
            "id": model.id,
            "email": model.email,
            "name": model.name,
            "default_currency": model.default_currency,
            "created_at": to_db_datetime(model.created_at),
        }

    def find_ids_with_active_templates(self) -> List[str]:
        """Users that own at least one active recurring expense or income."""
        with self.db.get_connection() as conn:
            rows = conn.execute(
                """
                SELECT id FROM users
                WHERE id IN (SELECT user_id FROM recurring_expenses WHERE is_active = 1)
                   OR id IN (SELECT user_id FROM recurring_incomes WHERE is_active = 1)
                ORDER BY created_at, id
                """
            ).fetchall()
        return [row["id"] for row in rows]
