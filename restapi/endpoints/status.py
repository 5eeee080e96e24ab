"""Status catalog endpoints for the API."""

from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.exceptions import NotFoundError
from components.core.init_db import get_db
from components.status.repository import StatusRepository
from components.status import schemas
from components.user.schemas import ActingUser
from restapi.endpoints.auth import get_current_user

router = APIRouter(
    prefix="/estados",
    tags=["estados"],
    responses={404: {"description": "Not found"}},
)


@router.get("", response_model=List[schemas.StatusRead])
async def read_statuses(
    db: AsyncSession = Depends(get_db),
    current_user: ActingUser = Depends(get_current_user),
):
    """Get every loan status."""
    repo = StatusRepository(db)
    return [schemas.StatusRead.model_validate(status) for status in await repo.get_all()]


@router.get("/{est_id}", response_model=schemas.StatusRead)
async def read_status(
    est_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: ActingUser = Depends(get_current_user),
):
    """Get a specific status by ID."""
    status = await StatusRepository(db).get_by_id(est_id)
    if status is None:
        raise NotFoundError("Estado no encontrado.")
    return schemas.StatusRead.model_validate(status)
