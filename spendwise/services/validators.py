"""
Payload schemas and the errors raised by the service layer.

Request bodies are parsed with pydantic. Field names are snake_case; the
camelCase spellings used by existing API clients (``dueDayOfMonth``,
``expiresAt``...) are accepted as aliases.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from ..security.secure_logging import get_structured_logger

logger = get_structured_logger().get_logger(__name__)

MAX_DESCRIPTION_LENGTH = 120
MAX_SPLIT_BY = 10

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class ValidationError(Exception):
    """Payload failed validation; carries field level issues"""

    def __init__(self, issues: List[Dict[str, str]], message: str = "Validation failed"):
        super().__init__(message)
        self.message = message
        self.issues = issues

    @classmethod
    def single(cls, path: str, message: str) -> "ValidationError":
        return cls([{"path": path, "message": message}])


class NotFoundError(Exception):
    """Record does not exist or belongs to another user"""

    def __init__(self, resource: str, id: Optional[str] = None):
        super().__init__(f"{resource} not found")
        self.resource = resource
        self.id = id


class ImmutableEntryError(Exception):
    """Ledger entries generated from a recurring template cannot be edited"""


class Payload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


class ExpenseCreate(Payload):
    amount: float = Field(..., gt=0)
    description: str = Field(..., min_length=1, max_length=MAX_DESCRIPTION_LENGTH)
    occurred_on: date
    category_id: Optional[str] = None
    split_by: Optional[int] = Field(default=None, ge=1, le=MAX_SPLIT_BY)
    impact_amount: Optional[float] = Field(default=None, ge=0)


class ExpenseUpdate(Payload):
    amount: Optional[float] = Field(default=None, gt=0)
    description: Optional[str] = Field(default=None, min_length=1, max_length=MAX_DESCRIPTION_LENGTH)
    occurred_on: Optional[date] = None
    category_id: Optional[str] = None
    split_by: Optional[int] = Field(default=None, ge=1, le=MAX_SPLIT_BY)
    impact_amount: Optional[float] = Field(default=None, ge=0)


class IncomeCreate(Payload):
    amount: float = Field(..., gt=0)
    description: str = Field(..., min_length=1, max_length=MAX_DESCRIPTION_LENGTH)
    occurred_on: date


class IncomeUpdate(Payload):
    amount: Optional[float] = Field(default=None, gt=0)
    description: Optional[str] = Field(default=None, min_length=1, max_length=MAX_DESCRIPTION_LENGTH)
    occurred_on: Optional[date] = None


class RecurringIncomeCreate(Payload):
    amount: float = Field(..., gt=0)
    description: str = Field(..., min_length=1, max_length=MAX_DESCRIPTION_LENGTH)
    due_day_of_month: int = Field(default=1, ge=1, le=31)
    is_active: Optional[bool] = None


class RecurringIncomeUpdate(Payload):
    amount: Optional[float] = Field(default=None, gt=0)
    description: Optional[str] = Field(default=None, min_length=1, max_length=MAX_DESCRIPTION_LENGTH)
    due_day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    is_active: Optional[bool] = None


class RecurringExpenseCreate(RecurringIncomeCreate):
    category_id: Optional[str] = None
    split_by: int = Field(default=1, ge=1, le=MAX_SPLIT_BY)


class RecurringExpenseUpdate(RecurringIncomeUpdate):
    category_id: Optional[str] = None
    split_by: Optional[int] = Field(default=None, ge=1, le=MAX_SPLIT_BY)


class ApiKeyCreate(Payload):
    scopes: List[str] = Field(..., min_length=1)
    description: Optional[str] = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH)
    expires_at: Optional[datetime] = None


def _issue_path(schema: Type[BaseModel], loc) -> str:
    parts = [str(part) for part in loc]
    if not parts:
        return "root"
    # report the camelCase spelling whichever one the client sent
    field = schema.model_fields.get(parts[0])
    if field is not None and field.alias:
        parts[0] = field.alias
    return ".".join(parts)


def _issues_from(schema: Type[BaseModel], error: PydanticValidationError) -> List[Dict[str, str]]:
    return [
        {"path": _issue_path(schema, issue["loc"]), "message": issue["msg"]}
        for issue in error.errors()
    ]


def parse_payload(schema: Type[SchemaT], payload: Any) -> SchemaT:
    """
    Validate a request body against ``schema``

    Raises:
        ValidationError: with one issue per invalid field
    """
    if not isinstance(payload, dict):
        raise ValidationError.single("root", "Expected an object")
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as e:
        issues = _issues_from(schema, e)
        logger.info(
            "Payload validation failed",
            schema=schema.__name__,
            fields=[issue["path"] for issue in issues],
            operation="parse_payload",
        )
        raise ValidationError(issues) from e


def provided_fields(model: BaseModel) -> Dict[str, Any]:
    """Fields the client actually sent, for partial updates"""
    return {name: getattr(model, name) for name in model.model_fields_set}
