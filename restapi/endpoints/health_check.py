"""Health check endpoint for monitoring application status."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from components.core import schemas
from components.core.database import DatabaseManager
from components.core.init_db import get_db_manager

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/health_check",
    tags=["services"],
    responses={200: {"description": "Service is healthy"}},
)


@router.get("/", response_model=schemas.HealthCheck)
async def health_check(db_manager: DatabaseManager = Depends(get_db_manager)) -> schemas.HealthCheck:
    """Check the health status of the service and its database."""
    database = "up"
    try:
        async with db_manager.get_db() as session:
            await session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Database health probe failed", exc_info=True)
        database = "down"
    return schemas.HealthCheck(
        service_name="StoreFlow",
        status="healthy" if database == "up" else "degraded",
        database=database,
    )
