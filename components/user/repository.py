"""Repository for user operations."""

import logging
from typing import Optional
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from components.user.models import User

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def get_by_id(self, cedula: int) -> Optional[User]:
        """Get user by national ID."""
        result = await self.session.execute(
            select(User).where(User.cedula == cedula)
        )
        return result.scalar_one_or_none()

    async def get_display_name(self, cedula: int) -> str:
        """
        Full name used in the loan status history.

        Falls back to the raw ID when the user is unknown or the lookup
        fails, so an audit entry can always be written.
        """
        try:
            user = await self.get_by_id(cedula)
        except SQLAlchemyError:
            logger.warning("Could not resolve display name for user %s", cedula, exc_info=True)
            return str(cedula)
        if user is None or not user.full_name:
            return str(cedula)
        return user.full_name
