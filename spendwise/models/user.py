"""
User domain model.
"""

from typing import Optional

from pydantic import Field, field_validator

from .base import BaseModel


class User(BaseModel):
    """An account holder. Authentication itself happens outside this service."""

    email: Optional[str] = Field(default=None, max_length=254)
    name: Optional[str] = Field(default=None, max_length=120)
    default_currency: str = Field(default="USD", pattern=r"^[A-Z]{3}$")

    @field_validator("default_currency", mode="before")
    @classmethod
    def upper_currency(cls, v):
        return v.upper() if isinstance(v, str) else v
