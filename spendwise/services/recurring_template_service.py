"""
Management of recurring expense and income templates.

Amounts and descriptions are encrypted on write and decrypted on read.
Editing a template never touches entries it has already generated.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import BaseModel

from ..models.recurring import RecurringExpense, RecurringIncome, RecurringTemplate
from ..repositories.recurring_repository import (
    RecurringExpenseRepository,
    RecurringIncomeRepository,
    RecurringTemplateRepository,
)
from ..security.encryption import FieldEncryption
from ..security.secure_logging import get_structured_logger
from .recurring import next_due_date
from .validators import (
    NotFoundError,
    RecurringExpenseCreate,
    RecurringExpenseUpdate,
    RecurringIncomeCreate,
    RecurringIncomeUpdate,
    parse_payload,
    provided_fields,
)

logger = get_structured_logger().get_logger(__name__)


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class RecurringTemplateService(ABC):
    """Shared list/create/update/toggle/delete for both template kinds."""

    kind = "template"
    create_schema: Type[BaseModel]
    update_schema: Type[BaseModel]
    # plain columns copied from the payload as-is
    plain_fields = ("due_day_of_month", "is_active")

    def __init__(
        self,
        templates: RecurringTemplateRepository,
        encryption: FieldEncryption,
        clock: Optional[Callable[[], date]] = None,
    ):
        self.templates = templates
        self.encryption = encryption
        self._today = clock or _utc_today

    def _to_dict(self, template: RecurringTemplate) -> Dict[str, Any]:
        next_due = None
        if template.is_active:
            next_due = next_due_date(
                template.last_generated_on, template.due_day_of_month, self._today()
            ).isoformat()
        return {
            "id": template.id,
            "amount": self.encryption.decrypt_number(template.amount_encrypted),
            "description": self.encryption.decrypt_string(template.description_encrypted),
            "due_day_of_month": template.due_day_of_month,
            "is_active": template.is_active,
            "last_generated_on": (
                template.last_generated_on.isoformat() if template.last_generated_on else None
            ),
            "next_due_on": next_due,
        }

    @abstractmethod
    def _build(self, user_id: str, data: BaseModel) -> RecurringTemplate:
        """Build the template model from a validated create payload."""

    def _get_owned(self, user_id: str, template_id: str) -> RecurringTemplate:
        template = self.templates.find_for_user(template_id, user_id)
        if template is None:
            raise NotFoundError(f"Recurring {self.kind}", template_id)
        return template

    def list(self, user_id: str) -> List[Dict[str, Any]]:
        return [self._to_dict(template) for template in self.templates.find_by_user(user_id)]

    def create(self, user_id: str, payload: Any) -> Dict[str, Any]:
        data = parse_payload(self.create_schema, payload)
        created = self.templates.create(self._build(user_id, data))
        logger.info(
            "Recurring template created",
            user_id=user_id,
            template_id=created.id,
            kind=self.kind,
            operation="create_template",
        )
        return self._to_dict(created)

    def update(self, user_id: str, template_id: str, payload: Any) -> Dict[str, Any]:
        """Partial update of a template the user owns."""
        data = parse_payload(self.update_schema, payload)
        existing = self._get_owned(user_id, template_id)

        changes = provided_fields(data)
        fields: Dict[str, Any] = {}
        if changes.get("amount") is not None:
            fields["amount_encrypted"] = self.encryption.encrypt_number(changes["amount"])
        if changes.get("description") is not None:
            fields["description_encrypted"] = self.encryption.encrypt_string(changes["description"])
        for name in self.plain_fields:
            if name in changes and (changes[name] is not None or name == "category_id"):
                fields[name] = changes[name]

        if not fields:
            return self._to_dict(existing)

        updated = existing.model_copy(update=fields)
        self.templates.update_fields(
            template_id, self.templates.columns_for(updated, fields), user_id=user_id
        )
        return self._to_dict(self._get_owned(user_id, template_id))

    def toggle(self, user_id: str, template_id: str) -> Dict[str, Any]:
        """Flip ``is_active``."""
        existing = self._get_owned(user_id, template_id)
        self.templates.update_fields(
            template_id, {"is_active": 0 if existing.is_active else 1}, user_id=user_id
        )
        logger.info(
            "Recurring template toggled",
            user_id=user_id,
            template_id=template_id,
            is_active=not existing.is_active,
            operation="toggle_template",
        )
        return self._to_dict(self._get_owned(user_id, template_id))

    def delete(self, user_id: str, template_id: str) -> None:
        if not self.templates.delete(template_id, user_id=user_id):
            raise NotFoundError(f"Recurring {self.kind}", template_id)
        logger.info(
            "Recurring template deleted",
            user_id=user_id,
            template_id=template_id,
            kind=self.kind,
            operation="delete_template",
        )


class RecurringExpenseService(RecurringTemplateService):
    kind = "expense"
    create_schema = RecurringExpenseCreate
    update_schema = RecurringExpenseUpdate
    plain_fields = ("due_day_of_month", "is_active", "category_id", "split_by")

    def __init__(
        self,
        templates: RecurringExpenseRepository,
        encryption: FieldEncryption,
        clock: Optional[Callable[[], date]] = None,
    ):
        super().__init__(templates, encryption, clock)

    def _to_dict(self, template: RecurringExpense) -> Dict[str, Any]:
        data = super()._to_dict(template)
        data["category_id"] = template.category_id
        data["split_by"] = template.split_by
        return data

    def _build(self, user_id: str, data: RecurringExpenseCreate) -> RecurringExpense:
        return RecurringExpense(
            user_id=user_id,
            amount_encrypted=self.encryption.encrypt_number(data.amount),
            description_encrypted=self.encryption.encrypt_string(data.description),
            due_day_of_month=data.due_day_of_month,
            is_active=True if data.is_active is None else data.is_active,
            category_id=data.category_id,
            split_by=data.split_by,
        )


class RecurringIncomeService(RecurringTemplateService):
    kind = "income"
    create_schema = RecurringIncomeCreate
    update_schema = RecurringIncomeUpdate

    def __init__(
        self,
        templates: RecurringIncomeRepository,
        encryption: FieldEncryption,
        clock: Optional[Callable[[], date]] = None,
    ):
        super().__init__(templates, encryption, clock)

    def _build(self, user_id: str, data: RecurringIncomeCreate) -> RecurringIncome:
        return RecurringIncome(
            user_id=user_id,
            amount_encrypted=self.encryption.encrypt_number(data.amount),
            description_encrypted=self.encryption.encrypt_string(data.description),
            due_day_of_month=data.due_day_of_month,
            is_active=True if data.is_active is None else data.is_active,
        )
