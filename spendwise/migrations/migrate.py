"""
Database migration runner

Usage:
    python -m spendwise.migrations.migrate up
    python -m spendwise.migrations.migrate down [name]
    python -m spendwise.migrations.migrate status
"""

import importlib.util
import sys
from pathlib import Path
from types import ModuleType
from typing import List, Optional

from ..repositories.base import DatabaseConnection
from ..security.secure_logging import get_structured_logger

logger = get_structured_logger().get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent


def init_migration_table(db: DatabaseConnection) -> None:
    """Initialize the migrations tracking table"""
    with db.get_connection() as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS migrations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                migration_name TEXT UNIQUE NOT NULL,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """
        )


def get_applied_migrations(db: DatabaseConnection) -> List[str]:
    with db.get_connection() as conn:
        rows = conn.execute("SELECT migration_name FROM migrations ORDER BY id").fetchall()
    return [row["migration_name"] for row in rows]


def get_available_migrations() -> List[str]:
    """Migration modules are the files whose name starts with a number"""
    return sorted(
        path.stem for path in MIGRATIONS_DIR.glob("*.py") if path.name[:3].isdigit()
    )


def load_migration_module(migration_name: str) -> ModuleType:
    file_path = MIGRATIONS_DIR / f"{migration_name}.py"
    spec = importlib.util.spec_from_file_location(
        f"spendwise.migrations._{migration_name}", file_path
    )
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def migrate_up(db: DatabaseConnection) -> List[str]:
    """Apply all pending migrations; returns the names applied"""
    init_migration_table(db)
    applied = set(get_applied_migrations(db))
    pending = [name for name in get_available_migrations() if name not in applied]

    if not pending:
        logger.debug("No pending migrations", operation="migrate_up")
        return []

    for migration_name in pending:
        module = load_migration_module(migration_name)
        with db.get_connection() as conn:
            module.upgrade(conn)
            conn.execute(
                "INSERT INTO migrations (migration_name) VALUES (?)", (migration_name,)
            )
        logger.info("Migration applied", migration=migration_name, operation="migrate_up")
    return pending


def migrate_down(db: DatabaseConnection, migration_name: Optional[str] = None) -> Optional[str]:
    """Roll back one migration, the most recent by default"""
    applied = get_applied_migrations(db)
    if not applied:
        return None
    target = migration_name or applied[-1]
    if target not in applied:
        raise ValueError(f"Migration {target} is not applied")

    module = load_migration_module(target)
    with db.get_connection() as conn:
        module.downgrade(conn)
        conn.execute("DELETE FROM migrations WHERE migration_name = ?", (target,))
    logger.info("Migration rolled back", migration=target, operation="migrate_down")
    return target


def main(argv: Optional[List[str]] = None) -> int:
    from ..config.settings import Settings

    argv = sys.argv[1:] if argv is None else argv
    command = argv[0] if argv else "up"
    db = DatabaseConnection(Settings().database.path)

    if command == "up":
        applied = migrate_up(db)
        print(f"Applied {len(applied)} migration(s)")
    elif command == "down":
        rolled_back = migrate_down(db, argv[1] if len(argv) > 1 else None)
        print(f"Rolled back {rolled_back or 'nothing'}")
    elif command == "status":
        init_migration_table(db)
        applied = set(get_applied_migrations(db))
        for name in get_available_migrations():
            print(f"{name:<30} {'applied' if name in applied else 'pending'}")
    else:
        print(__doc__)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
