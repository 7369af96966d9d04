"""
Base repository classes and database connection management.
"""

import json
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any, Dict, Generic, Iterable, Iterator, List, Optional, Sequence, Type, TypeVar

from ..models.base import ensure_utc, new_id
from ..security.secure_logging import get_structured_logger

logger = get_structured_logger().get_logger(__name__)

T = TypeVar("T")


def to_db_datetime(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return ensure_utc(value).astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return ensure_utc(datetime.fromisoformat(value))


def to_db_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def from_db_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return date.fromisoformat(value[:10])


def dump_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, sort_keys=True)


def load_json(value: Optional[str], default: Any = None) -> Any:
    if value is None or value == "":
        return default
    try:
        return json.loads(value)
    except ValueError:
        return default


class DatabaseConnection:
    """Thread-aware sqlite connection manager, one connection per thread."""

    def __init__(self, db_path: str = "spendwise.db", timeout: float = 30.0):
        self.db_path = db_path
        self.timeout = timeout
        self._local = threading.local()
        self._connections: Dict[int, sqlite3.Connection] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _dict_factory(cursor, row):
        """Convert row to dictionary"""
        return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}

    def _connect(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = sqlite3.connect(self.db_path, check_same_thread=False, timeout=self.timeout)
            conn.row_factory = self._dict_factory
            conn.execute("PRAGMA foreign_keys = ON")
            self._local.conn = conn
            with self._lock:
                self._connections[threading.get_ident()] = conn
        return conn

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get the connection for the current thread; commit on success."""
        conn = self._connect()
        try:
            yield conn
        except Exception as e:
            conn.rollback()
            logger.error(
                "Database error",
                error_type=type(e).__name__,
                operation="get_connection",
            )
            raise
        else:
            conn.commit()

    def close_all_connections(self) -> None:
        """Close all database connections."""
        with self._lock:
            for conn in self._connections.values():
                conn.close()
            self._connections.clear()
        self._local = threading.local()


class BaseRepository(ABC, Generic[T]):
    """Base repository class with common CRUD operations."""

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self._table_name = self._get_table_name()
        self._model_class = self._get_model_class()

    @abstractmethod
    def _get_table_name(self) -> str:
        """Return the table name for this repository."""

    @abstractmethod
    def _get_model_class(self) -> Type[T]:
        """Return the model class for this repository."""

    @abstractmethod
    def _row_to_model(self, row: Dict[str, Any]) -> T:
        """Convert database row to model instance."""

    @abstractmethod
    def _model_to_dict(self, model: T) -> Dict[str, Any]:
        """Convert model instance to dictionary for database storage."""

    def _fetch_all(self, query: str, params: Sequence[Any] = ()) -> List[T]:
        with self.db.get_connection() as conn:
            rows = conn.execute(query, tuple(params)).fetchall()
        return [self._row_to_model(row) for row in rows]

    def _fetch_one(self, query: str, params: Sequence[Any] = ()) -> Optional[T]:
        with self.db.get_connection() as conn:
            row = conn.execute(query, tuple(params)).fetchone()
        return self._row_to_model(row) if row else None

    def find_by_id(self, id: str) -> Optional[T]:
        """Find entity by ID."""
        return self._fetch_one(f"SELECT * FROM {self._table_name} WHERE id = ?", (id,))

    def find_for_user(self, id: str, user_id: str) -> Optional[T]:
        """Find entity by ID, only if it belongs to ``user_id``."""
        return self._fetch_one(
            f"SELECT * FROM {self._table_name} WHERE id = ? AND user_id = ?",
            (id, user_id),
        )

    def create(self, model: T) -> T:
        """Insert a new entity and return it as stored."""
        data = self._model_to_dict(model)
        if not data.get("id"):
            data["id"] = new_id()

        columns = ", ".join(data.keys())
        placeholders = ", ".join(["?" for _ in data])

        with self.db.get_connection() as conn:
            conn.execute(
                f"INSERT INTO {self._table_name} ({columns}) VALUES ({placeholders})",
                list(data.values()),
            )
        return self.find_by_id(data["id"])

    def columns_for(self, model: T, names: Iterable[str]) -> Dict[str, Any]:
        """Serialized column values of ``model`` restricted to ``names``."""
        wanted = set(names)
        return {k: v for k, v in self._model_to_dict(model).items() if k in wanted}

    def update_fields(self, id: str, fields: Dict[str, Any], user_id: Optional[str] = None) -> int:
        """Update raw columns; returns the number of rows changed."""
        if not fields:
            return 0
        set_clause = ", ".join(f"{column} = ?" for column in fields)
        values = list(fields.values())
        query = f"UPDATE {self._table_name} SET {set_clause} WHERE id = ?"
        values.append(id)
        if user_id is not None:
            query += " AND user_id = ?"
            values.append(user_id)

        with self.db.get_connection() as conn:
            cursor = conn.execute(query, values)
            return cursor.rowcount

    def delete(self, id: str, user_id: Optional[str] = None) -> bool:
        """Delete entity by ID."""
        query = f"DELETE FROM {self._table_name} WHERE id = ?"
        params: List[Any] = [id]
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)
        with self.db.get_connection() as conn:
            cursor = conn.execute(query, params)
            return cursor.rowcount > 0

    def count(self) -> int:
        """Count total entities."""
        with self.db.get_connection() as conn:
            row = conn.execute(f"SELECT COUNT(*) AS total FROM {self._table_name}").fetchone()
        return row["total"]
