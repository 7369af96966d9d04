"""
Dependency Injection Container

One Container per process owns every piece of long-lived state: the database
connection manager, the rate limiter buckets, the repositories and the
services built on them. It is created by the API app factory or by the
automation worker and handed to whatever needs it.
"""

from datetime import date, datetime, timezone
from typing import Callable, Optional

from .config.settings import Settings
from .migrations.migrate import migrate_up
from .repositories.api_key_repository import ApiKeyRepository
from .repositories.base import DatabaseConnection
from .repositories.ledger_repository import ExpenseRepository, IncomeRepository
from .repositories.recurring_repository import (
    RecurringExpenseRepository,
    RecurringIncomeRepository,
)
from .repositories.user_repository import UserRepository
from .security.auth import ApiAuthenticator
from .security.encryption import FieldEncryption
from .security.rate_limiter import InMemoryRateLimiter
from .security.secure_logging import get_structured_logger
from .security.session import SessionResolver
from .services.api_key_service import ApiKeyService
from .services.error_handler import ErrorHandler
from .services.expense_service import ExpenseService
from .services.income_service import IncomeService
from .services.recurring import RecurringMaterializer
from .services.recurring_template_service import (
    RecurringExpenseService,
    RecurringIncomeService,
)

logger = get_structured_logger().get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Container:
    """Dependency injection container for managing application services."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        rate_limit_clock: Optional[Callable[[], float]] = None,
        run_migrations: bool = True,
    ):
        self.settings = settings or Settings()
        self.clock = clock or _utcnow

        self.db = DatabaseConnection(
            self.settings.database.path, timeout=self.settings.database.connection_timeout
        )
        if run_migrations:
            migrate_up(self.db)

        self.encryption = FieldEncryption(
            self.settings.security.encryption_key,
            environment=self.settings.app.environment.value,
        )
        self.rate_limiter = InMemoryRateLimiter(
            window_ms=self.settings.rate_limit.window_ms,
            max_requests=self.settings.rate_limit.max_requests,
            clock=rate_limit_clock,
        )

        self._register_repositories()
        self._register_services()
        logger.info(
            "Container configured",
            environment=self.settings.app.environment.value,
            database=self.settings.database.path,
            operation="container_init",
        )

    def today(self) -> date:
        return self.clock().date()

    def _register_repositories(self) -> None:
        self.users = UserRepository(self.db)
        self.api_keys = ApiKeyRepository(self.db)
        self.expenses = ExpenseRepository(self.db)
        self.incomes = IncomeRepository(self.db)
        self.recurring_expenses = RecurringExpenseRepository(self.db)
        self.recurring_incomes = RecurringIncomeRepository(self.db)

    def _register_services(self) -> None:
        security = self.settings.security

        self.materializer = RecurringMaterializer(
            self.recurring_expenses,
            self.recurring_incomes,
            self.expenses,
            self.incomes,
            clock=self.today,
        )
        self.expense_service = ExpenseService(self.expenses, self.materializer, self.encryption)
        self.income_service = IncomeService(self.incomes, self.materializer, self.encryption)
        self.recurring_expense_service = RecurringExpenseService(
            self.recurring_expenses, self.encryption, clock=self.today
        )
        self.recurring_income_service = RecurringIncomeService(
            self.recurring_incomes, self.encryption, clock=self.today
        )
        self.api_key_service = ApiKeyService(
            self.api_keys, bcrypt_rounds=security.bcrypt_rounds, clock=self.clock
        )

        self.sessions = SessionResolver(
            security.secret_key,
            self.users,
            cookie_name=security.session_cookie_name,
            max_age_seconds=security.session_max_age_seconds,
        )
        self.authenticator = ApiAuthenticator(
            self.api_keys,
            self.users,
            self.rate_limiter,
            self.sessions,
            clock=self.clock,
        )
        self.error_handler = ErrorHandler()

    def cleanup(self) -> None:
        """Release database connections and drop rate limit state."""
        self.rate_limiter.reset()
        self.db.close_all_connections()
