"""
API routers.
"""

from .api_keys import router as api_keys_router
from .expenses import router as expenses_router
from .income import router as income_router
from .recurring import router as recurring_router
from .recurring_income import router as recurring_income_router

# recurring income must be registered before /api/income/{income_id}
routers = [
    recurring_income_router,
    income_router,
    expenses_router,
    recurring_router,
    api_keys_router,
]

__all__ = ["routers"]
