"""
FastAPI application factory.

Host applications either include `content_history.router` in their own app
or serve the app built here, overriding `get_current_actor` with their
session resolver.
"""

import logging

from fastapi import FastAPI

from .. import __version__
from .middleware.correlation import CorrelationIdMiddleware
from .routers import content_history

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create the FastAPI app with the content history router mounted."""
    app = FastAPI(
        title="Portfolio Audit",
        description="Version-controlled audit trail for portfolio content",
        version=__version__,
    )
    app.add_middleware(CorrelationIdMiddleware)
    app.include_router(content_history.router)
    logger.debug("Content history router mounted at /api/admin/git")
    return app
