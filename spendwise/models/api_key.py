"""
API key domain model.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from ..security.api_keys import ApiScope
from .base import OwnedModel, ensure_utc


class ApiKey(OwnedModel):
    """A scoped credential. Only the bcrypt hash of the secret is stored."""

    prefix: str = Field(..., min_length=1, max_length=16, description="Public lookup segment")
    hashed_secret: str = Field(..., repr=False, exclude=True)
    scopes: List[ApiScope] = Field(default_factory=list)
    description: Optional[str] = Field(default=None, max_length=120)
    expires_at: Optional[datetime] = Field(default=None)
    revoked_at: Optional[datetime] = Field(default=None)

    @field_validator("expires_at", "revoked_at", "created_at")
    @classmethod
    def normalize_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now
