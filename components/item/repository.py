"""Repository for item and stock operations."""

import logging
from typing import Dict, Iterable, List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from components.core.exceptions import NotFoundError, ValidationError
from components.item.models import Item
from components.item import schemas

logger = logging.getLogger(__name__)


class ItemRepository:
    """Repository for item operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def get_by_id(self, item_id: int) -> Optional[Item]:
        """Get item by ID with its location."""
        result = await self.session.execute(
            select(Item).options(selectinload(Item.location)).where(Item.id == item_id)
        )
        return result.scalar_one_or_none()

    async def get_all(self) -> List[Item]:
        """Get every item with its location."""
        result = await self.session.execute(
            select(Item).options(selectinload(Item.location)).order_by(Item.id)
        )
        return list(result.scalars().all())

    async def get_for_update(self, item_id: int) -> Item:
        """Get item by ID locking its row until the transaction ends."""
        result = await self.session.execute(
            select(Item).where(Item.id == item_id).with_for_update()
        )
        item = result.scalar_one_or_none()
        if item is None:
            raise NotFoundError(f"No se encontró el elemento {item_id}.")
        return item

    async def get_many_for_update(self, item_ids: Iterable[int]) -> Dict[int, Item]:
        """
        Lock several items at once, ordered by ID so concurrent transactions
        take the locks in the same order.

        Raises NotFoundError naming the first missing ID.
        """
        wanted = sorted(set(item_ids))
        result = await self.session.execute(
            select(Item).where(Item.id.in_(wanted)).order_by(Item.id).with_for_update()
        )
        items = {item.id: item for item in result.scalars().all()}
        missing = [item_id for item_id in wanted if item_id not in items]
        if missing:
            raise NotFoundError(f"No se encontró el elemento {missing[0]}.")
        return items

    async def adjust_stock(self, item: Item, delta: int) -> Item:
        """
        Add ``delta`` to the available quantity.

        The result must stay within 0 and the item's total quantity.
        """
        new_quantity = item.current_quantity + delta
        if new_quantity < 0:
            raise ValidationError(
                f"Stock insuficiente para '{item.name}': disponibles {item.current_quantity}, "
                f"solicitados {-delta}."
            )
        if new_quantity > item.total_quantity:
            raise ValidationError(
                f"La cantidad disponible de '{item.name}' no puede superar el total ({item.total_quantity})."
            )
        item.current_quantity = new_quantity
        await self.session.flush()
        return item

    async def restore_stock(self, item: Item, quantity: int) -> Item:
        """Return units to stock, never going above the total quantity."""
        restored = item.current_quantity + quantity
        if restored > item.total_quantity:
            logger.warning(
                "Clamping stock of item %s: %s returned units exceed total %s",
                item.id, quantity, item.total_quantity,
            )
            restored = item.total_quantity
        item.current_quantity = restored
        await self.session.flush()
        return item

    @staticmethod
    def to_schema(item: Item) -> schemas.ItemRead:
        return schemas.ItemRead(
            ele_id=item.id,
            ele_nombre=item.name,
            ele_cantidad_total=item.total_quantity,
            ele_cantidad_actual=item.current_quantity,
            ele_imagen=item.image,
            ubi_ele_id=item.location_id,
            ubi_nombre=item.location.name if item.location else None,
        )
