"""
Income endpoints.

Reading income uses the ``expenses_read`` scope; there is no separate
income read scope.
"""

from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request

from ...security.api_keys import ApiScope
from ...security.auth import AuthContext
from ..dependencies import get_container, require_scopes

router = APIRouter(prefix="/api/income", tags=["income"])

read_access = require_scopes(ApiScope.EXPENSES_READ)
write_access = require_scopes(ApiScope.INCOME_WRITE)


@router.get("")
def list_income(
    request: Request,
    start: Optional[date] = None,
    end: Optional[date] = None,
    auth: AuthContext = Depends(read_access),
) -> Dict[str, Any]:
    service = get_container(request).income_service
    return {"income": service.list_income(auth.user_id, start, end)}


@router.post("", status_code=201)
def add_income(
    request: Request,
    payload: Any = Body(...),
    auth: AuthContext = Depends(write_access),
) -> Dict[str, Any]:
    return get_container(request).income_service.add_income(auth.user_id, payload)


@router.get("/summary")
def monthly_summary(
    request: Request,
    month: Optional[date] = None,
    auth: AuthContext = Depends(read_access),
) -> Dict[str, Any]:
    container = get_container(request)
    month = month or container.today()
    total = container.income_service.monthly_income_total(auth.user_id, month)
    return {
        "month": month.replace(day=1).isoformat(),
        "total": total,
        "currency": auth.default_currency,
    }


@router.get("/{income_id}")
def get_income(
    income_id: str, request: Request, auth: AuthContext = Depends(read_access)
) -> Dict[str, Any]:
    return get_container(request).income_service.get_income(auth.user_id, income_id)


@router.patch("/{income_id}")
def update_income(
    income_id: str,
    request: Request,
    payload: Any = Body(...),
    auth: AuthContext = Depends(write_access),
) -> Dict[str, Any]:
    service = get_container(request).income_service
    return service.update_income(auth.user_id, income_id, payload)


@router.delete("/{income_id}")
def delete_income(
    income_id: str, request: Request, auth: AuthContext = Depends(write_access)
) -> Dict[str, Any]:
    get_container(request).income_service.delete_income(auth.user_id, income_id)
    return {"ok": True}
