"""
API key repository.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Type

from ..models.api_key import ApiKey
from .base import BaseRepository, dump_json, from_db_datetime, load_json, to_db_datetime


class ApiKeyRepository(BaseRepository[ApiKey]):
    """Repository for ApiKey records. Keys are looked up by prefix only."""

    def _get_table_name(self) -> str:
        return "api_keys"

    def _get_model_class(self) -> Type[ApiKey]:
        return ApiKey

    def _row_to_model(self, row: Dict[str, Any]) -> ApiKey:
        return ApiKey(
            id=row["id"],
            user_id=row["user_id"],
            prefix=row["prefix"],
            hashed_secret=row["hashed_secret"],
            scopes=load_json(row.get("scopes"), []),
            description=row.get("description"),
            expires_at=from_db_datetime(row.get("expires_at")),
            revoked_at=from_db_datetime(row.get("revoked_at")),
            created_at=from_db_datetime(row.get("created_at")),
        )

    def _model_to_dict(self, model: ApiKey) -> Dict[str, Any]:
        return {
            "id": model.id,
            "user_id": model.user_id,
            "prefix": model.prefix,
            "hashed_secret": model.hashed_secret,
            "scopes": dump_json([scope.value for scope in model.scopes]),
            "description": model.description,
            "expires_at": to_db_datetime(model.expires_at),
            "revoked_at": to_db_datetime(model.revoked_at),
            "created_at": to_db_datetime(model.created_at),
        }

    def find_first_by_prefix(self, prefix: str) -> Optional[ApiKey]:
        return self._fetch_one(
            "SELECT * FROM api_keys WHERE prefix = ? ORDER BY created_at LIMIT 1",
            (prefix,),
        )

    def find_by_user(self, user_id: str) -> List[ApiKey]:
        return self._fetch_all(
            "SELECT * FROM api_keys WHERE user_id = ? ORDER BY created_at DESC",
            (user_id,),
        )

    def mark_revoked(self, id: str, revoked_at: datetime) -> int:
        return self.update_fields(id, {"revoked_at": to_db_datetime(revoked_at)})

    def revoke_expired(self, now: datetime) -> int:
        """Soft-revoke every unrevoked key whose expiry has passed."""
        stamp = to_db_datetime(now)
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                """
                UPDATE api_keys SET revoked_at = ?
                WHERE revoked_at IS NULL
                  AND expires_at IS NOT NULL
                  AND expires_at < ?
                """,
                (stamp, stamp),
            )
            return cursor.rowcount
