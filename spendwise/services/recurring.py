"""
Recurring template projection and materialization.

``due_dates_up_to`` is a pure function of (watermark, due day, today), so the
request path and the automation worker can both run the materializer for the
same user and compute the same dates. Each due date is written as
create-entry-then-advance-watermark. A crash between those two steps leaves one
duplicate on retry; there is no lock around a template's catch-up loop.
"""

import calendar
from datetime import date, datetime, timezone
from typing import Callable, Iterator, Optional

from dateutil.relativedelta import relativedelta

from ..models.ledger import Expense, Income, LedgerEntry
from ..models.recurring import RecurringExpense, RecurringIncome, RecurringTemplate
from ..repositories.ledger_repository import ExpenseRepository, IncomeRepository
from ..repositories.recurring_repository import (
    RecurringExpenseRepository,
    RecurringIncomeRepository,
    RecurringTemplateRepository,
)
from ..security.secure_logging import get_structured_logger

logger = get_structured_logger().get_logger(__name__)

MIN_DUE_DAY = 1
MAX_DUE_DAY = 31


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def _validate_due_day(due_day: int) -> None:
    if not MIN_DUE_DAY <= due_day <= MAX_DUE_DAY:
        raise ValueError(f"due_day must be between {MIN_DUE_DAY} and {MAX_DUE_DAY}, got {due_day}")


def clamp_to_month(value: date, day: int) -> date:
    """Return ``day`` in the month of ``value``, or the month's last day if shorter."""
    days_in_month = calendar.monthrange(value.year, value.month)[1]
    return value.replace(day=min(day, days_in_month))


def next_due_date(last_generated_on: Optional[date], due_day: int, today: date) -> date:
    """
    First due date after the watermark.

    With no watermark the template starts in the month of ``today``.
    """
    _validate_due_day(due_day)
    if last_generated_on is None:
        return clamp_to_month(today, due_day)
    return clamp_to_month(last_generated_on + relativedelta(months=1), due_day)


def due_dates_up_to(
    last_generated_on: Optional[date], due_day: int, today: date
) -> Iterator[date]:
    """
    Yield every due date after the watermark that is on or before ``today``.

    Each step moves one calendar month from the previous clamped date and
    clamps again to the nominal ``due_day``, so a day-31 template goes
    Jan 31, Feb 28, Mar 31.
    """
    candidate = next_due_date(last_generated_on, due_day, today)
    while candidate <= today:
        yield candidate
        candidate = clamp_to_month(candidate + relativedelta(months=1), due_day)


class RecurringMaterializer:
    """Turns active recurring templates into dated ledger entries."""

    def __init__(
        self,
        expense_templates: RecurringExpenseRepository,
        income_templates: RecurringIncomeRepository,
        expenses: ExpenseRepository,
        incomes: IncomeRepository,
        clock: Optional[Callable[[], date]] = None,
    ):
        self.expense_templates = expense_templates
        self.income_templates = income_templates
        self.expenses = expenses
        self.incomes = incomes
        self._today = clock or _utc_today

    def materialize_expenses(self, user_id: str) -> int:
        """Create any due expense entries for ``user_id``; returns how many."""
        return self._materialize_kind(
            user_id, "expense", self.expense_templates, self._create_expense
        )

    def materialize_incomes(self, user_id: str) -> int:
        """Create any due income entries for ``user_id``; returns how many."""
        return self._materialize_kind(
            user_id, "income", self.income_templates, self._create_income
        )

    def materialize(self, user_id: str) -> int:
        return self.materialize_expenses(user_id) + self.materialize_incomes(user_id)

    def _materialize_kind(
        self,
        user_id: str,
        kind: str,
        templates: RecurringTemplateRepository,
        create_entry: Callable[[RecurringTemplate, date], LedgerEntry],
    ) -> int:
        today = self._today()
        try:
            active = templates.find_active_by_user(user_id)
        except Exception as e:
            logger.error(
                "Failed to load recurring templates",
                user_id=user_id,
                kind=kind,
                error_type=type(e).__name__,
                operation="materialize",
            )
            return 0

        created = 0
        for template in active:
            try:
                for due_date in due_dates_up_to(
                    template.last_generated_on, template.due_day_of_month, today
                ):
                    # entry first, watermark second
                    create_entry(template, due_date)
                    templates.update_watermark(template.id, due_date)
                    created += 1
            except Exception as e:
                logger.error(
                    "Recurring template materialization failed",
                    user_id=user_id,
                    template_id=template.id,
                    kind=kind,
                    error_type=type(e).__name__,
                    operation="materialize",
                )

        if created:
            logger.info(
                "Recurring entries materialized",
                user_id=user_id,
                kind=kind,
                created=created,
                operation="materialize",
            )
        return created

    def _create_expense(self, template: RecurringExpense, due_date: date) -> Expense:
        return self.expenses.create(
            Expense(
                user_id=template.user_id,
                occurred_on=due_date,
                amount_encrypted=template.amount_encrypted,
                description_encrypted=template.description_encrypted,
                category_id=template.category_id,
                split_by=template.split_by,
                recurring_source_id=template.id,
            )
        )

    def _create_income(self, template: RecurringIncome, due_date: date) -> Income:
        return self.incomes.create(
            Income(
                user_id=template.user_id,
                occurred_on=due_date,
                amount_encrypted=template.amount_encrypted,
                description_encrypted=template.description_encrypted,
                recurring_source_id=template.id,
            )
        )

