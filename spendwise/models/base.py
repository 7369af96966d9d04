"""
Base models and utilities for Pydantic v2.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel as PydanticBaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class BaseModel(PydanticBaseModel):
    """Base model with common configuration and methods."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="ignore",
    )

    id: Optional[str] = Field(default=None, description="Unique identifier")
    created_at: datetime = Field(
        default_factory=utcnow,
        description="Timestamp when the record was created",
    )


class OwnedModel(BaseModel):
    """A record that belongs to exactly one user."""

    user_id: str = Field(..., description="Owning user id")


EncryptedField = Dict[str, Any]


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so comparisons never mix the two."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
