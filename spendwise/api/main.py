"""
FastAPI application.

Run with ``uvicorn spendwise.api.main:app``. The app owns one Container and,
unless automation is disabled, one AutomationSupervisor whose worker process
lives as long as the app.
"""

from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import FastAPI

from .. import __version__
from ..automation.supervisor import AutomationSupervisor
from ..config.settings import Settings
from ..container import Container
from ..security.secure_logging import get_structured_logger
from ..services.error_handler import register_exception_handlers
from .routes import routers

logger = get_structured_logger().get_logger(__name__)


def create_app(
    container: Optional[Container] = None,
    supervisor: Optional[AutomationSupervisor] = None,
) -> FastAPI:
    """Build the app around ``container``, creating one from Settings if omitted"""
    container = container or Container(Settings())
    supervisor = supervisor or AutomationSupervisor(container.settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            supervisor.ensure_running()
        except Exception as e:
            # the API serves without automation; reads materialize inline
            logger.error(
                "Automation supervisor failed to start",
                error_type=type(e).__name__,
                operation="startup",
                exc_info=e,
            )
        logger.info("API started", version=__version__, operation="startup")
        try:
            yield
        finally:
            supervisor.shutdown()
            container.cleanup()
            logger.info("API stopped", operation="shutdown")

    app = FastAPI(
        title="Spendwise API",
        description="Expense, income and recurring transaction API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container
    app.state.supervisor = supervisor

    register_exception_handlers(app, container.error_handler)
    for router in routers:
        app.include_router(router)

    @app.get("/health")
    async def health_check() -> Dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


def __getattr__(name: str):
    # build the module-level app lazily so importing this module has no side effects
    if name == "app":
        app = create_app()
        globals()["app"] = app
        return app
    raise AttributeError(name)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("spendwise.api.main:app", host="0.0.0.0", port=8000, log_level="info")
