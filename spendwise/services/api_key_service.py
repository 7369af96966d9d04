"""
API Key Management Service - create, list and revoke scoped API keys
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from ..models.api_key import ApiKey
from ..models.base import ensure_utc
from ..repositories.api_key_repository import ApiKeyRepository
from ..security.api_keys import (
    BCRYPT_ROUNDS,
    generate_api_key_token,
    normalize_scopes,
    scopes_to_strings,
)
from ..security.secure_logging import get_structured_logger
from .validators import ApiKeyCreate, NotFoundError, ValidationError, parse_payload

logger = get_structured_logger().get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CreatedApiKey:
    """A stored key plus its plaintext token, which is never retrievable again"""

    record: ApiKey
    token: str


class ApiKeyService:
    """Service for managing API keys"""

    def __init__(
        self,
        api_keys: ApiKeyRepository,
        bcrypt_rounds: int = BCRYPT_ROUNDS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.api_keys = api_keys
        self.bcrypt_rounds = bcrypt_rounds
        self._now = clock or _utcnow

    @staticmethod
    def to_dict(api_key: ApiKey) -> Dict[str, Any]:
        """Public view of a key; the hashed secret is never included"""
        return {
            "id": api_key.id,
            "prefix": api_key.prefix,
            "scopes": scopes_to_strings(api_key.scopes),
            "description": api_key.description,
            "expires_at": api_key.expires_at.isoformat() if api_key.expires_at else None,
            "revoked_at": api_key.revoked_at.isoformat() if api_key.revoked_at else None,
            "created_at": api_key.created_at.isoformat(),
        }

    def list_api_keys(self, user_id: str) -> List[ApiKey]:
        return self.api_keys.find_by_user(user_id)

    def create_api_key(self, user_id: str, payload: Any) -> CreatedApiKey:
        """
        Create a key for ``user_id``

        Args:
            user_id: Owner of the key
            payload: ``scopes`` (required), ``description``, ``expires_at``

        Returns:
            CreatedApiKey with the one-time plaintext token

        Raises:
            ValidationError: if no valid scope remains after normalization
        """
        data = parse_payload(ApiKeyCreate, payload)
        scopes = normalize_scopes(data.scopes)
        if not scopes:
            raise ValidationError.single("scopes", "At least one valid scope is required")

        generated = generate_api_key_token(self.bcrypt_rounds)
        record = self.api_keys.create(
            ApiKey(
                user_id=user_id,
                prefix=generated.prefix,
                hashed_secret=generated.hashed_secret,
                scopes=scopes,
                description=data.description,
                expires_at=ensure_utc(data.expires_at),
            )
        )
        logger.info(
            "API key created",
            user_id=user_id,
            key_prefix=record.prefix,
            scopes=[scope.value for scope in scopes],
            operation="create_api_key",
        )
        return CreatedApiKey(record=record, token=generated.token)

    def revoke_api_key(self, user_id: str, key_id: str) -> str:
        """
        Revoke a key; revoking an already revoked key deletes it.

        Returns:
            ``"revoked"`` or ``"deleted"``
        """
        api_key = self.api_keys.find_for_user(key_id, user_id)
        if api_key is None:
            raise NotFoundError("API key", key_id)

        if api_key.is_revoked():
            self.api_keys.delete(key_id, user_id=user_id)
            action = "deleted"
        else:
            self.api_keys.mark_revoked(key_id, self._now())
            action = "revoked"

        logger.info(
            "API key " + action,
            user_id=user_id,
            key_prefix=api_key.prefix,
            operation="revoke_api_key",
        )
        return action

    def revoke_expired(self, now: Optional[datetime] = None) -> int:
        """Soft-revoke every key past its expiry; returns how many changed"""
        revoked = self.api_keys.revoke_expired(now or self._now())
        if revoked:
            logger.info("Expired API keys revoked", count=revoked, operation="revoke_expired")
        return revoked
