"""Repository for status catalog lookups."""

from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from components.status.models import Status


class StatusRepository:
    """Repository for status operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def get_by_id(self, status_id: int) -> Optional[Status]:
        """Get status by ID."""
        result = await self.session.execute(
            select(Status).where(Status.id == status_id)
        )
        return result.scalar_one_or_none()

    async def get_all(self) -> List[Status]:
        """Get every configured status ordered by ID."""
        result = await self.session.execute(select(Status).order_by(Status.id))
        return list(result.scalars().all())
