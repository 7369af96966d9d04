"""
Migration: initial schema for users, ledger entries, recurring templates and API keys
"""

import sqlite3

from spendwise.security.secure_logging import get_structured_logger

logger = get_structured_logger().get_logger(__name__)

TABLES = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT UNIQUE,
        name TEXT,
        default_currency TEXT NOT NULL DEFAULT 'USD',
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS categories (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        name TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS recurring_expenses (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        amount_encrypted TEXT NOT NULL,
        description_encrypted TEXT NOT NULL,
        category_id TEXT,
        split_by INTEGER NOT NULL DEFAULT 1,
        due_day_of_month INTEGER NOT NULL DEFAULT 1
            CHECK (due_day_of_month BETWEEN 1 AND 31),
        is_active INTEGER NOT NULL DEFAULT 1,
        last_generated_on TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS recurring_incomes (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        amount_encrypted TEXT NOT NULL,
        description_encrypted TEXT NOT NULL,
        due_day_of_month INTEGER NOT NULL DEFAULT 1
            CHECK (due_day_of_month BETWEEN 1 AND 31),
        is_active INTEGER NOT NULL DEFAULT 1,
        last_generated_on TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
    )
    """,
    # recurring_source_id is a lookup-only back reference, no foreign key
    """
    CREATE TABLE IF NOT EXISTS expenses (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        occurred_on TEXT NOT NULL,
        amount_encrypted TEXT NOT NULL,
        impact_amount_encrypted TEXT,
        description_encrypted TEXT NOT NULL,
        category_id TEXT,
        split_by INTEGER NOT NULL DEFAULT 1,
        recurring_source_id TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS incomes (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        occurred_on TEXT NOT NULL,
        amount_encrypted TEXT NOT NULL,
        description_encrypted TEXT NOT NULL,
        recurring_source_id TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS api_keys (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        prefix TEXT NOT NULL UNIQUE,
        hashed_secret TEXT NOT NULL,
        scopes TEXT NOT NULL DEFAULT '[]',
        description TEXT,
        expires_at TEXT,
        revoked_at TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
    )
    """,
]

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_expenses_user_date ON expenses(user_id, occurred_on)",
    "CREATE INDEX IF NOT EXISTS idx_incomes_user_date ON incomes(user_id, occurred_on)",
    "CREATE INDEX IF NOT EXISTS idx_recurring_expenses_active ON recurring_expenses(user_id, is_active)",
    "CREATE INDEX IF NOT EXISTS idx_recurring_incomes_active ON recurring_incomes(user_id, is_active)",
    "CREATE INDEX IF NOT EXISTS idx_api_keys_expiry ON api_keys(revoked_at, expires_at)",
]


def upgrade(conn: sqlite3.Connection) -> None:
    """Create the base tables"""
    cursor = conn.cursor()
    for statement in TABLES + INDEXES:
        cursor.execute(statement)
    logger.info("Initial schema created", operation="database_migration")


def downgrade(conn: sqlite3.Connection) -> None:
    cursor = conn.cursor()
    for table in (
        "api_keys",
        "incomes",
        "expenses",
        "recurring_incomes",
        "recurring_expenses",
        "categories",
        "users",
    ):
        cursor.execute(f"DROP TABLE IF EXISTS {table}")
