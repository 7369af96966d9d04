"""
Expense endpoints.
"""

from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request

from ...security.api_keys import ApiScope
from ...security.auth import AuthContext
from ..dependencies import get_container, require_scopes

router = APIRouter(prefix="/api/expenses", tags=["expenses"])

read_access = require_scopes(ApiScope.EXPENSES_READ)
write_access = require_scopes(ApiScope.EXPENSES_WRITE)


@router.get("")
def list_expenses(
    request: Request,
    start: Optional[date] = None,
    end: Optional[date] = None,
    auth: AuthContext = Depends(read_access),
) -> Dict[str, Any]:
    service = get_container(request).expense_service
    return {"expenses": service.list_expenses(auth.user_id, start, end)}


@router.post("", status_code=201)
def create_expense(
    request: Request,
    payload: Any = Body(...),
    auth: AuthContext = Depends(write_access),
) -> Dict[str, Any]:
    return get_container(request).expense_service.create_expense(auth.user_id, payload)


@router.get("/{expense_id}")
def get_expense(
    expense_id: str, request: Request, auth: AuthContext = Depends(read_access)
) -> Dict[str, Any]:
    return get_container(request).expense_service.get_expense(auth.user_id, expense_id)


@router.patch("/{expense_id}")
def update_expense(
    expense_id: str,
    request: Request,
    payload: Any = Body(...),
    auth: AuthContext = Depends(write_access),
) -> Dict[str, Any]:
    service = get_container(request).expense_service
    return service.update_expense(auth.user_id, expense_id, payload)


@router.delete("/{expense_id}")
def delete_expense(
    expense_id: str, request: Request, auth: AuthContext = Depends(write_access)
) -> Dict[str, Any]:
    get_container(request).expense_service.delete_expense(auth.user_id, expense_id)
    return {"ok": True}
