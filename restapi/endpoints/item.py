"""Item endpoints for the API."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.database import DatabaseManager
from components.core.exceptions import NotFoundError
from components.core.init_db import get_db, get_db_manager
from components.item.repository import ItemRepository
from components.item import schemas
from components.user.schemas import ActingUser, Role
from restapi.endpoints.auth import get_current_user, require_roles

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/elementos",
    tags=["elementos"],
    responses={404: {"description": "Not found"}},
)


@router.get("", response_model=schemas.ItemListResponse)
async def read_items(
    db: AsyncSession = Depends(get_db),
    current_user: ActingUser = Depends(get_current_user),
):
    """Get every item with its location and stock."""
    repo = ItemRepository(db)
    items = await repo.get_all()
    return schemas.ItemListResponse(
        respuesta=True,
        mensaje="¡Elementos obtenidos con éxito!",
        data=[repo.to_schema(item) for item in items],
    )


@router.put("/actualizar-stock", response_model=schemas.StockAdjustmentResponse)
async def adjust_stock(
    adjustment: schemas.StockAdjustment,
    db_manager: DatabaseManager = Depends(get_db_manager),
    current_user: ActingUser = Depends(require_roles(Role.ADMIN, Role.WAREHOUSE)),
):
    """
    Take units out of stock (negative amount) or put them back (positive).

    The available quantity must stay between 0 and the item total.
    """
    async with db_manager.transaction() as session:
        repo = ItemRepository(session)
        item = await repo.get_for_update(adjustment.ele_id)
        await repo.adjust_stock(item, adjustment.cantidad)
        stock = schemas.ItemStock(ele_id=item.id, ele_cantidad_actual=item.current_quantity)

    logger.info("Stock of item %s moved by %+d by %s", adjustment.ele_id, adjustment.cantidad, current_user.user_id)
    return schemas.StockAdjustmentResponse(
        respuesta=True,
        mensaje="¡Stock actualizado con éxito!",
        data=stock,
    )


@router.get("/{ele_id}", response_model=schemas.ItemResponse)
async def read_item(
    ele_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: ActingUser = Depends(get_current_user),
):
    """Get a specific item by ID."""
    repo = ItemRepository(db)
    item = await repo.get_by_id(ele_id)
    if item is None:
        raise NotFoundError("Elemento no encontrado.")
    return schemas.ItemResponse(
        respuesta=True,
        mensaje="¡Elemento obtenido con éxito!",
        data=repo.to_schema(item),
    )
