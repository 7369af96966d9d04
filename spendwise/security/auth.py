"""
Request authentication for the JSON API.

A request is authenticated either by an ``x-api-key`` header or by the
signed session cookie. When the header is present it decides the outcome:
a bad key is rejected even if a valid session cookie is also sent.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Optional

from ..repositories.api_key_repository import ApiKeyRepository
from ..repositories.user_repository import UserRepository
from .api_keys import ApiScope, parse_api_key_token, verify_api_key_secret
from .rate_limiter import InMemoryRateLimiter
from .secure_logging import get_structured_logger
from .session import SessionResolver

logger = get_structured_logger().get_logger(__name__)

API_KEY_HEADER = "x-api-key"
DEFAULT_CURRENCY = "USD"
DEFAULT_RETRY_AFTER = 60

SOURCE_SESSION = "session"
SOURCE_API_KEY = "api-key"


class ApiAuthError(Exception):
    """Authentication or authorization failure with an HTTP status"""

    def __init__(self, message: str, status: int = 401):
        super().__init__(message)
        self.message = message
        self.status = status


class RateLimitError(Exception):
    """Request rejected by the rate limiter"""

    status = 429

    def __init__(self, retry_after: int):
        super().__init__("Too many requests")
        self.message = "Too many requests"
        self.retry_after = retry_after


@dataclass
class AuthContext:
    """Acting principal for one request. Never persisted."""

    user_id: str
    source: str
    scopes: List[ApiScope] = field(default_factory=list)
    default_currency: str = DEFAULT_CURRENCY


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _request_path(request: Any) -> str:
    url = getattr(request, "url", None)
    path = getattr(url, "path", None)
    return path if path is not None else str(url or "")


class ApiAuthenticator:
    """Resolves the principal of a request and charges its rate limit"""

    def __init__(
        self,
        api_keys: ApiKeyRepository,
        users: UserRepository,
        rate_limiter: InMemoryRateLimiter,
        sessions: SessionResolver,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.api_keys = api_keys
        self.users = users
        self.rate_limiter = rate_limiter
        self.sessions = sessions
        self._now = clock or _utcnow

    def authenticate(
        self, request: Any, required_scopes: Iterable[ApiScope] = ()
    ) -> AuthContext:
        """
        Authenticate ``request`` and check it holds ``required_scopes``

        Raises:
            ApiAuthError: 401 for missing or invalid credentials, 403 for
                revoked, expired or under-scoped keys
            RateLimitError: the principal's bucket for this path is empty
        """
        required = [ApiScope(scope) for scope in required_scopes]
        path = _request_path(request)
        header = request.headers.get(API_KEY_HEADER)

        if header:
            return self._authenticate_api_key(header, path, required)
        return self._authenticate_session(request, path)

    def _authenticate_api_key(
        self, header: str, path: str, required: List[ApiScope]
    ) -> AuthContext:
        parsed = parse_api_key_token(header)
        if parsed is None:
            raise ApiAuthError("Invalid API key format")

        # the secret is never used as a lookup key
        api_key = self.api_keys.find_first_by_prefix(parsed.prefix)
        if api_key is None:
            raise ApiAuthError("API key not found")

        if api_key.is_revoked():
            self._reject(api_key.prefix, "revoked")
            raise ApiAuthError("API key has been revoked", 403)

        if api_key.is_expired(self._now()):
            self._reject(api_key.prefix, "expired")
            raise ApiAuthError("API key expired", 403)

        if not verify_api_key_secret(parsed.secret, api_key.hashed_secret):
            self._reject(api_key.prefix, "invalid_secret")
            raise ApiAuthError("API key invalid")

        missing = [scope for scope in required if scope not in api_key.scopes]
        if missing:
            logger.info(
                "API key lacks required scope",
                key_prefix=api_key.prefix,
                missing=[scope.value for scope in missing],
                operation="authenticate",
            )
            raise ApiAuthError("API key scope insufficient", 403)

        self._consume(f"key:{api_key.prefix}", path)

        user = self.users.find_by_id(api_key.user_id)
        return AuthContext(
            user_id=api_key.user_id,
            source=SOURCE_API_KEY,
            scopes=list(api_key.scopes),
            default_currency=user.default_currency if user else DEFAULT_CURRENCY,
        )

    def _authenticate_session(self, request: Any, path: str) -> AuthContext:
        user = self.sessions.resolve(request)
        if user is None or not user.id:
            raise ApiAuthError("Unauthorized")

        self._consume(f"user:{user.id}", path)

        # a signed-in user is not subject to key scopes
        return AuthContext(
            user_id=user.id,
            source=SOURCE_SESSION,
            scopes=ApiScope.all(),
            default_currency=user.default_currency or DEFAULT_CURRENCY,
        )

    def _consume(self, identifier: str, path: str) -> None:
        result = self.rate_limiter.consume_token(identifier, path)
        if not result.allowed:
            raise RateLimitError(result.retry_after or DEFAULT_RETRY_AFTER)

    @staticmethod
    def _reject(prefix: str, reason: str) -> None:
        logger.info(
            "API key rejected",
            key_prefix=prefix,
            reason=reason,
            operation="authenticate",
        )
