"""Pydantic schemas for loan data validation."""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from components.item.schemas import ItemStock
from components.loan.history import HistoryEntry


class LineItemIn(BaseModel):
    """Item and quantity requested in a new loan."""
    ele_id: int
    pre_ele_cantidad_prestado: int = Field(ge=1)


class LoanCreate(BaseModel):
    """Schema for loan creation."""
    usr_cedula: int
    est_id: int
    elementos: List[LineItemIn] = Field(min_length=1)


class LoanUpdate(BaseModel):
    """Schema for loan update."""
    pre_id: int
    pre_fin: Optional[datetime] = None
    usr_cedula: int
    est_id: Optional[int] = None


class StatusChange(BaseModel):
    """Schema for a status transition request."""
    est_id: int
    usr_cedula: Optional[int] = None


class LineItemQuantityUpdate(BaseModel):
    """Schema for correcting the borrowed quantity of one item."""
    pre_id: int
    ele_id: int
    pre_ele_cantidad_prestado: int = Field(ge=1)


class LoanItemRead(BaseModel):
    """Line item joined with its item name."""
    ele_id: int
    ele_nombre: str
    pre_ele_cantidad_prestado: int


class LoanSummary(BaseModel):
    """Loan row as listed to warehouse staff and requesters."""
    pre_id: int
    pre_inicio: datetime
    pre_fin: Optional[datetime] = None
    pre_actualizacion: Optional[datetime] = None
    usr_cedula: int
    usr_nombre: str
    est_id: int
    est_nombre: str
    elementos: List[LoanItemRead] = []


class LoanDetail(LoanSummary):
    """Loan with its parsed status history."""
    historial_estados: List[HistoryEntry] = []


class LoanLineDetail(BaseModel):
    """Line item together with the parent loan status and item stock."""
    pre_id: int
    est_id: int
    estado: str
    ele_id: int
    nombre: str
    pre_ele_cantidad_prestado: int
    ele_cantidad_actual: int


class CreatedLoan(BaseModel):
    prestamo_id: int
    historial: List[HistoryEntry]


class UpdatedLoan(BaseModel):
    pre_inicio: datetime


class TransitionResult(BaseModel):
    pre_id: int
    nuevo_estado: str
    historial_estados: List[HistoryEntry]
    pre_fin: Optional[datetime] = None
    stock: List[ItemStock] = []


# Response envelopes as returned by the HTTP surface

class LoanCreateResponse(BaseModel):
    success: bool
    prestamoId: int
    historial: List[HistoryEntry]


class LoanUpdateResponse(BaseModel):
    respuesta: bool
    mensaje: str
    pre_inicio: datetime


class LoanListResponse(BaseModel):
    respuesta: bool
    mensaje: str
    data: List[LoanSummary]


class LoanDetailResponse(BaseModel):
    respuesta: bool
    mensaje: str
    data: LoanDetail


class LoanLinesResponse(BaseModel):
    respuesta: bool
    mensaje: str
    data: List[LoanLineDetail]


class StatusHistoryResponse(BaseModel):
    respuesta: bool
    mensaje: str
    data: List[HistoryEntry]


class TransitionResponse(BaseModel):
    respuesta: bool
    nuevo_estado: str
    historial_estados: List[HistoryEntry]


class CancelResponse(BaseModel):
    success: bool
    message: str
    data: List[ItemStock]


class DeliverResponse(BaseModel):
    success: bool
    message: str
    estadoPrestamo: str
    fechaEntrega: Optional[datetime] = None
    data: List[ItemStock]
