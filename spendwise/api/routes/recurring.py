"""
Recurring expense template endpoints.
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request

from ...security.api_keys import ApiScope
from ...security.auth import AuthContext
from ..dependencies import get_container, require_scopes

router = APIRouter(prefix="/api/recurring", tags=["recurring"])

read_access = require_scopes(ApiScope.EXPENSES_READ)
write_access = require_scopes(ApiScope.EXPENSES_WRITE)


@router.get("")
def list_templates(request: Request, auth: AuthContext = Depends(read_access)) -> Dict[str, Any]:
    service = get_container(request).recurring_expense_service
    return {"templates": service.list(auth.user_id)}


@router.post("", status_code=201)
def create_template(
    request: Request,
    payload: Any = Body(...),
    auth: AuthContext = Depends(write_access),
) -> Dict[str, Any]:
    return get_container(request).recurring_expense_service.create(auth.user_id, payload)


@router.patch("/{template_id}")
def update_template(
    template_id: str,
    request: Request,
    payload: Any = Body(...),
    auth: AuthContext = Depends(write_access),
) -> Dict[str, Any]:
    service = get_container(request).recurring_expense_service
    return service.update(auth.user_id, template_id, payload)


@router.put("/{template_id}")
def toggle_template(
    template_id: str, request: Request, auth: AuthContext = Depends(write_access)
) -> Dict[str, Any]:
    return get_container(request).recurring_expense_service.toggle(auth.user_id, template_id)


@router.delete("/{template_id}")
def delete_template(
    template_id: str, request: Request, auth: AuthContext = Depends(write_access)
) -> Dict[str, Any]:
    get_container(request).recurring_expense_service.delete(auth.user_id, template_id)
    return {"ok": True}
