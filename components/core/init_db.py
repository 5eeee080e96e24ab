"""Database initialization and dependency injection."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional

import fastapi
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.config import Settings, get_settings
from components.core.database import DatabaseManager
from components.loan.service import LoanLifecycleManager
# Import all models to ensure they're registered
import components.status.models
import components.user.models
import components.item.models
import components.loan.models

logger = logging.getLogger(__name__)


def init_db(db_manager: Optional[DatabaseManager] = None, create_tables: bool = False):
    """
    Build the lifespan that owns the database handle.

    The manager is created when the application starts, published on
    ``app.state`` and disposed on shutdown. Tests pass their own manager.
    """

    @asynccontextmanager
    async def lifespan(app: fastapi.FastAPI) -> AsyncIterator[None]:
        manager = db_manager or DatabaseManager()
        if create_tables:
            await manager.create_all()
        app.state.db_manager = manager
        logger.info("Database pool ready")
        try:
            yield
        finally:
            await manager.dispose()
            logger.info("Database pool closed")

    return lifespan


def get_db_manager(request: Request) -> DatabaseManager:
    """FastAPI dependency returning the application's database handle."""
    return request.app.state.db_manager


async def get_db(db_manager: DatabaseManager = Depends(get_db_manager)) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for getting database sessions."""
    async with db_manager.get_db() as session:
        yield session


def get_loan_manager(
    db_manager: DatabaseManager = Depends(get_db_manager),
    settings: Settings = Depends(get_settings),
) -> LoanLifecycleManager:
    """FastAPI dependency for the loan lifecycle manager."""
    return LoanLifecycleManager(db_manager, settings)
