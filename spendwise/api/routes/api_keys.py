"""
API key management endpoints. Session only.
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request

from ...security.auth import AuthContext
from ..dependencies import get_container, require_session

router = APIRouter(prefix="/api/api-keys", tags=["api-keys"])


@router.get("")
def list_api_keys(request: Request, auth: AuthContext = Depends(require_session)) -> Dict[str, Any]:
    service = get_container(request).api_key_service
    return {"keys": [service.to_dict(key) for key in service.list_api_keys(auth.user_id)]}


@router.post("", status_code=201)
def create_api_key(
    request: Request,
    payload: Any = Body(...),
    auth: AuthContext = Depends(require_session),
) -> Dict[str, Any]:
    service = get_container(request).api_key_service
    created = service.create_api_key(auth.user_id, payload)
    return {"token": created.token, "record": service.to_dict(created.record)}


@router.delete("/{key_id}")
def revoke_api_key(
    key_id: str, request: Request, auth: AuthContext = Depends(require_session)
) -> Dict[str, Any]:
    action = get_container(request).api_key_service.revoke_api_key(auth.user_id, key_id)
    return {"ok": True, "action": action}
