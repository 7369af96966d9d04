"""
Signed session cookies.

The login flow itself lives outside this service. Whatever performs it calls
``issue_session_cookie`` and sets the result as the session cookie; requests
carrying that cookie are resolved back to a user here.
"""

from typing import Any, Optional

from itsdangerous import BadSignature, URLSafeTimedSerializer

from ..models.user import User
from ..repositories.user_repository import UserRepository
from .secure_logging import get_structured_logger

logger = get_structured_logger().get_logger(__name__)

SESSION_SALT = "spendwise.session"


class SessionResolver:
    """Resolve the signed session cookie on a request to a User"""

    def __init__(
        self,
        secret_key: str,
        users: UserRepository,
        cookie_name: str = "spendwise_session",
        max_age_seconds: int = 60 * 60 * 24 * 30,
    ):
        self.users = users
        self.cookie_name = cookie_name
        self.max_age_seconds = max_age_seconds
        self._serializer = URLSafeTimedSerializer(secret_key, salt=SESSION_SALT)

    def issue_session_cookie(self, user_id: str) -> str:
        """Signed cookie value carrying ``user_id``"""
        return self._serializer.dumps({"uid": user_id})

    def resolve(self, request: Any) -> Optional[User]:
        """
        Return the signed-in user, or None

        Missing, tampered and expired cookies all resolve to None, as does a
        cookie for a user that no longer exists.
        """
        cookies = getattr(request, "cookies", None) or {}
        signed = cookies.get(self.cookie_name)
        if not signed:
            return None

        try:
            data = self._serializer.loads(signed, max_age=self.max_age_seconds)
        except BadSignature as e:
            logger.warning(
                "Invalid or expired session cookie",
                error_type=type(e).__name__,
                operation="resolve_session",
            )
            return None

        user_id = data.get("uid") if isinstance(data, dict) else None
        if not user_id:
            return None
        return self.users.find_by_id(user_id)
