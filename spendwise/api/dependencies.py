"""
FastAPI dependencies for authentication and container access.
"""

from typing import Callable

from fastapi import Request

from ..container import Container
from ..security.api_keys import ApiScope
from ..security.auth import SOURCE_SESSION, ApiAuthError, AuthContext


def get_container(request: Request) -> Container:
    return request.app.state.container


def require_scopes(*scopes: ApiScope) -> Callable[[Request], AuthContext]:
    """Dependency authenticating the request and requiring ``scopes``"""
    required = tuple(ApiScope(scope) for scope in scopes)

    def dependency(request: Request) -> AuthContext:
        return get_container(request).authenticator.authenticate(request, required)

    return dependency


def require_session(request: Request) -> AuthContext:
    """Only a signed-in user may manage API keys; keys cannot mint keys"""
    auth = get_container(request).authenticator.authenticate(request)
    if auth.source != SOURCE_SESSION:
        raise ApiAuthError("Manage API keys through the dashboard.", 403)
    return auth
