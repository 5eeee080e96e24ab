"""Core classes and mixins for DB connections"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from typing import Callable, AsyncContextManager

from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import declarative_base

from components.core.config import Settings, get_settings
from components.core.exceptions import StoreFlowError, TransactionError

logger = logging.getLogger(__name__)

Base = declarative_base()
SessionMaker = Callable[[], AsyncContextManager[AsyncSession]]


class DatabaseManager:
    """Owns the connection pool and hands out sessions and transactions."""

    def __init__(self, engine: Optional[AsyncEngine] = None, settings: Optional[Settings] = None) -> None:
        """Initialize DatabaseManager with optional engine for testing."""
        self.settings = settings or get_settings()
        self.engine = engine or self._create_engine()
        self._sessionmaker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    def _create_engine(self) -> AsyncEngine:
        """Create async engine for MySQL connection."""
        return create_async_engine(
            self.settings.async_db_url,
            echo=self.settings.DB_ECHO,
            pool_pre_ping=True,  # Enable connection health checks
            pool_size=self.settings.DB_POOL_SIZE,
            max_overflow=self.settings.DB_MAX_OVERFLOW,
        )

    def get_session(self) -> SessionMaker:
        """Returns SessionMaker for database sessions."""
        if not self.engine:
            raise ValueError("Database engine wasn't initialized")
        return self._sessionmaker

    @asynccontextmanager
    async def get_db(self) -> AsyncIterator[AsyncSession]:
        """Get database session context manager."""
        async_session = self.get_session()
        async with async_session() as session:
            try:
                yield session
            finally:
                await session.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """
        Run a block of statements as one unit of work.

        Commits when the block exits normally and rolls back on any exception.
        Service errors are re-raised as they are; anything else is logged and
        surfaced as TransactionError. The connection goes back to the pool on
        every exit path.
        """
        async with self.get_db() as session:
            try:
                yield session
                await session.commit()
            except StoreFlowError:
                await session.rollback()
                raise
            except Exception as exc:
                await session.rollback()
                logger.exception("Transaction rolled back")
                raise TransactionError() from exc

    async def create_all(self) -> None:
        """Create every table registered on Base."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self.engine.dispose()
