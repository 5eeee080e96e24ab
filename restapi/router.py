"""Application configuration and router setup."""

import logging
from typing import Optional

import fastapi
from fastapi.middleware import cors
from fastapi.openapi.utils import get_openapi

from components.core import init_db
from components.core.config import get_settings
from components.core.database import DatabaseManager
from components.core.exceptions import register_exception_handlers
from restapi.endpoints import health_check, item, loan, status

TITLE = "StoreFlow"
DESCRIPTION = "Inventory loan tracking API"
VERSION = "1.0.0"


def configure_logging(level: str) -> None:
    """Set up root logging once for the whole process."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(db_manager: Optional[DatabaseManager] = None, create_tables: bool = False) -> fastapi.FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = fastapi.FastAPI(
        title=TITLE,
        description=DESCRIPTION,
        version=VERSION,
        debug=settings.DEBUG,
        # Database handle lives for the lifetime of the process
        lifespan=init_db.init_db(db_manager=db_manager, create_tables=create_tables),
    )

    register_exception_handlers(app)

    # Add CORS middleware
    app.add_middleware(
        cors.CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health_check.router)
    app.include_router(loan.router)
    app.include_router(item.router)
    app.include_router(status.router)

    def custom_openapi():
        if app.openapi_schema:
            return app.openapi_schema
        openapi_schema = get_openapi(
            title=TITLE,
            version=VERSION,
            description=DESCRIPTION,
            routes=app.routes,
        )
        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi

    return app
