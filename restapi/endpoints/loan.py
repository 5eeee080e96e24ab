"""Loan endpoints for the API."""

from fastapi import APIRouter, Depends, status

from components.core.init_db import get_loan_manager
from components.core.schemas import MessageResponse, SuccessResponse
from components.loan import schemas
from components.loan.service import LoanLifecycleManager
from components.user.schemas import ActingUser, Role
from restapi.endpoints.auth import get_current_user, require_roles

router = APIRouter(
    prefix="/prestamos",
    tags=["prestamos"],
    responses={404: {"description": "Not found"}},
)


@router.post("/crear", response_model=schemas.LoanCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_loan(
    loan_in: schemas.LoanCreate,
    manager: LoanLifecycleManager = Depends(get_loan_manager),
    current_user: ActingUser = Depends(get_current_user),
):
    """
    Create a loan with its items.

    The loan starts with a single "Creado" entry in its status history.
    """
    created = await manager.create_loan(loan_in.usr_cedula, loan_in.est_id, loan_in.elementos)
    return schemas.LoanCreateResponse(
        success=True,
        prestamoId=created.prestamo_id,
        historial=created.historial,
    )


@router.put("/actualizar", response_model=schemas.LoanUpdateResponse)
async def update_loan(
    loan_in: schemas.LoanUpdate,
    manager: LoanLifecycleManager = Depends(get_loan_manager),
    current_user: ActingUser = Depends(get_current_user),
):
    """
    Update a loan in status "Creado" or "En proceso".

    Instructors can only update their own loans. End date and status are
    only applied for warehouse staff.
    """
    updated = await manager.update_loan(
        loan_in.pre_id,
        loan_in.usr_cedula,
        current_user,
        new_end_date=loan_in.pre_fin,
        new_status_id=loan_in.est_id,
    )
    return schemas.LoanUpdateResponse(
        respuesta=True,
        mensaje="¡Préstamo actualizado con éxito!",
        pre_inicio=updated.pre_inicio,
    )


@router.put("/elemento", response_model=MessageResponse)
async def update_line_item_quantity(
    line_in: schemas.LineItemQuantityUpdate,
    manager: LoanLifecycleManager = Depends(get_loan_manager),
    current_user: ActingUser = Depends(get_current_user),
):
    """Correct the quantity borrowed of one item; stock moves by the difference."""
    await manager.update_line_item_quantity(
        line_in.pre_id, line_in.ele_id, line_in.pre_ele_cantidad_prestado, current_user
    )
    return MessageResponse(respuesta=True, mensaje="¡Cantidad actualizada con éxito!")


@router.get("", response_model=schemas.LoanListResponse)
async def read_loans(
    manager: LoanLifecycleManager = Depends(get_loan_manager),
    current_user: ActingUser = Depends(require_roles(Role.ADMIN, Role.WAREHOUSE)),
):
    """Get every loan with requester, status and items."""
    loans = await manager.get_all_loans(current_user)
    return schemas.LoanListResponse(
        respuesta=True,
        mensaje="¡Préstamos obtenidos con éxito!",
        data=loans,
    )


@router.get("/usuario/{usr_cedula}", response_model=schemas.LoanListResponse)
async def read_loans_by_requester(
    usr_cedula: int,
    manager: LoanLifecycleManager = Depends(get_loan_manager),
    current_user: ActingUser = Depends(get_current_user),
):
    """Get the loans requested by one user."""
    loans = await manager.get_loans_by_requester(usr_cedula, current_user)
    return schemas.LoanListResponse(
        respuesta=True,
        mensaje="¡Préstamos obtenidos con éxito!",
        data=loans,
    )


@router.put("/entregar/{pre_id}", response_model=schemas.DeliverResponse)
async def deliver_loan(
    pre_id: int,
    manager: LoanLifecycleManager = Depends(get_loan_manager),
    current_user: ActingUser = Depends(require_roles(Role.WAREHOUSE)),
):
    """Mark a loan as delivered and return its items to stock."""
    result = await manager.deliver_loan(pre_id, current_user)
    return schemas.DeliverResponse(
        success=True,
        message="Préstamo entregado y cantidades restauradas.",
        estadoPrestamo=result.nuevo_estado,
        fechaEntrega=result.pre_fin,
        data=result.stock,
    )


@router.get("/{pre_id}", response_model=schemas.LoanDetailResponse)
async def read_loan(
    pre_id: int,
    manager: LoanLifecycleManager = Depends(get_loan_manager),
    current_user: ActingUser = Depends(get_current_user),
):
    """Get a loan with its items and status history."""
    loan = await manager.get_loan_by_id(pre_id)
    return schemas.LoanDetailResponse(
        respuesta=True,
        mensaje="¡Préstamo obtenido con éxito!",
        data=loan,
    )


@router.get("/{pre_id}/detalles", response_model=schemas.LoanLinesResponse)
async def read_loan_items(
    pre_id: int,
    manager: LoanLifecycleManager = Depends(get_loan_manager),
    current_user: ActingUser = Depends(get_current_user),
):
    """Get the items of a loan with the loan status and current stock."""
    lines = await manager.get_line_items_for_loan(pre_id)
    return schemas.LoanLinesResponse(
        respuesta=True,
        mensaje="¡Elementos del préstamo obtenidos con éxito!",
        data=lines,
    )


@router.get("/{pre_id}/historial-estado", response_model=schemas.StatusHistoryResponse)
async def read_status_history(
    pre_id: int,
    manager: LoanLifecycleManager = Depends(get_loan_manager),
    current_user: ActingUser = Depends(get_current_user),
):
    """Get the status history of a loan."""
    history = await manager.get_status_history(pre_id)
    return schemas.StatusHistoryResponse(
        respuesta=True,
        mensaje="¡Historial obtenido con éxito!",
        data=history,
    )


@router.put("/{pre_id}/estado", response_model=schemas.TransitionResponse)
async def change_status(
    pre_id: int,
    change: schemas.StatusChange,
    manager: LoanLifecycleManager = Depends(get_loan_manager),
    current_user: ActingUser = Depends(get_current_user),
):
    """
    Move a loan to another status and append it to the history.

    Instructors may only cancel their own loans; ``usr_cedula`` is recorded
    as the actor only for warehouse staff.
    """
    result = await manager.transition_status(pre_id, change.est_id, current_user, actor_id=change.usr_cedula)
    return schemas.TransitionResponse(
        respuesta=True,
        nuevo_estado=result.nuevo_estado,
        historial_estados=result.historial_estados,
    )


@router.delete("/{pre_id}/cancelar", response_model=schemas.CancelResponse)
async def cancel_loan(
    pre_id: int,
    manager: LoanLifecycleManager = Depends(get_loan_manager),
    current_user: ActingUser = Depends(get_current_user),
):
    """Cancel a loan and report the refreshed stock of its items."""
    result = await manager.cancel_loan(pre_id, current_user)
    return schemas.CancelResponse(
        success=True,
        message="Préstamo cancelado y cantidades restauradas correctamente.",
        data=result.stock,
    )


@router.delete("/{pre_id}", response_model=SuccessResponse)
async def delete_loan(
    pre_id: int,
    manager: LoanLifecycleManager = Depends(get_loan_manager),
    current_user: ActingUser = Depends(get_current_user),
):
    """Delete a loan and its items."""
    await manager.delete_loan(pre_id, current_user)
    return SuccessResponse(success=True, message="¡Préstamo eliminado con éxito!")
