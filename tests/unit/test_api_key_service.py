"""
Unit tests for API key management
"""

from datetime import timedelta

import pytest

from spendwise.security.api_keys import ApiScope, verify_api_key_secret
from spendwise.services.validators import NotFoundError, ValidationError


class TestCreateApiKey:
    """Test key creation"""

    def test_create_normalizes_scopes(self, container, user):
        """Test colon spellings are accepted and unknown scopes dropped"""
        created = container.api_key_service.create_api_key(
            user.id,
            {"scopes": ["expenses:read", "income_write", "admin:all", "expenses:read"]},
        )

        assert created.record.scopes == [ApiScope.EXPENSES_READ, ApiScope.INCOME_WRITE]
        assert created.token.startswith(f"exp_{created.record.prefix}_")

    def test_only_hash_is_stored(self, container, user):
        created = container.api_key_service.create_api_key(user.id, {"scopes": ["budget:read"]})
        stored = container.api_keys.find_by_id(created.record.id)

        secret = created.token.split("_", 2)[2]
        assert secret not in stored.hashed_secret
        assert verify_api_key_secret(secret, stored.hashed_secret)

    def test_no_valid_scope(self, container, user):
        with pytest.raises(ValidationError) as exc_info:
            container.api_key_service.create_api_key(user.id, {"scopes": ["admin:all"]})

        assert exc_info.value.issues == [
            {"path": "scopes", "message": "At least one valid scope is required"}
        ]

    def test_empty_scope_list(self, container, user):
        with pytest.raises(ValidationError) as exc_info:
            container.api_key_service.create_api_key(user.id, {"scopes": []})

        assert exc_info.value.issues[0]["path"] == "scopes"

    def test_description_too_long(self, container, user):
        with pytest.raises(ValidationError) as exc_info:
            container.api_key_service.create_api_key(
                user.id, {"scopes": ["expenses:read"], "description": "x" * 121}
            )

        assert exc_info.value.issues[0]["path"] == "description"

    def test_camel_case_expiry(self, container, user):
        created = container.api_key_service.create_api_key(
            user.id, {"scopes": ["expenses:read"], "expiresAt": "2030-06-01T00:00:00Z"}
        )

        assert created.record.expires_at.year == 2030
        assert created.record.expires_at.tzinfo is not None

    def test_public_view_hides_hash(self, container, user):
        created = container.api_key_service.create_api_key(
            user.id, {"scopes": ["expenses_read", "analytics_read"], "description": "CI"}
        )
        view = container.api_key_service.to_dict(created.record)

        assert "hashed_secret" not in view
        assert view["scopes"] == ["expenses:read", "analytics:read"]
        assert view["description"] == "CI"
        assert view["revoked_at"] is None


class TestRevokeApiKey:
    """Test revocation and deletion"""

    def test_revoke_then_delete(self, container, user):
        """Test the first call soft-revokes and the second hard-deletes"""
        service = container.api_key_service
        created = service.create_api_key(user.id, {"scopes": ["expenses:read"]})

        assert service.revoke_api_key(user.id, created.record.id) == "revoked"
        assert container.api_keys.find_by_id(created.record.id).revoked_at is not None

        assert service.revoke_api_key(user.id, created.record.id) == "deleted"
        assert container.api_keys.find_by_id(created.record.id) is None

    def test_other_users_key(self, container, user, other_user):
        created = container.api_key_service.create_api_key(user.id, {"scopes": ["expenses:read"]})

        with pytest.raises(NotFoundError):
            container.api_key_service.revoke_api_key(other_user.id, created.record.id)
        assert container.api_keys.find_by_id(created.record.id).revoked_at is None

    def test_list_is_per_user(self, container, user, other_user):
        service = container.api_key_service
        service.create_api_key(user.id, {"scopes": ["expenses:read"]})
        service.create_api_key(user.id, {"scopes": ["income:write"]})
        service.create_api_key(other_user.id, {"scopes": ["expenses:read"]})

        assert len(service.list_api_keys(user.id)) == 2
        assert len(service.list_api_keys(other_user.id)) == 1


class TestRevokeExpired:
    """Test the scheduled expiry sweep"""

    def test_only_expired_unrevoked_keys(self, container, user, clock):
        service = container.api_key_service
        past = service.create_api_key(
            user.id, {"scopes": ["expenses:read"], "expires_at": clock.now - timedelta(days=1)}
        )
        future = service.create_api_key(
            user.id, {"scopes": ["expenses:read"], "expires_at": clock.now + timedelta(days=1)}
        )
        forever = service.create_api_key(user.id, {"scopes": ["expenses:read"]})

        assert service.revoke_expired() == 1
        assert container.api_keys.find_by_id(past.record.id).revoked_at == clock.now
        assert container.api_keys.find_by_id(future.record.id).revoked_at is None
        assert container.api_keys.find_by_id(forever.record.id).revoked_at is None

        # already revoked keys are not counted again
        assert service.revoke_expired() == 0
