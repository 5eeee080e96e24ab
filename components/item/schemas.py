"""Pydantic schemas for item data validation."""

from typing import List, Optional
from pydantic import BaseModel, Field


class ItemRead(BaseModel):
    """Schema for item response."""
    ele_id: int
    ele_nombre: str
    ele_cantidad_total: int
    ele_cantidad_actual: int
    ele_imagen: Optional[str] = None
    ubi_ele_id: Optional[int] = None
    ubi_nombre: Optional[str] = None


class StockAdjustment(BaseModel):
    """Signed change applied to an item's available quantity."""
    ele_id: int
    cantidad: int = Field(description="Positive returns units to stock, negative takes them out")


class ItemStock(BaseModel):
    """Refreshed available quantity of an item."""
    ele_id: int
    ele_cantidad_actual: int


class StockAdjustmentResponse(BaseModel):
    respuesta: bool
    mensaje: str
    data: ItemStock


class ItemListResponse(BaseModel):
    respuesta: bool
    mensaje: str
    data: List[ItemRead]


class ItemResponse(BaseModel):
    respuesta: bool
    mensaje: str
    data: ItemRead
