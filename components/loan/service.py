"""
Loan lifecycle manager.

The only place where a loan's status, its audit history and the stock of
the items it references change. Every mutation runs inside a single
transaction from ``DatabaseManager.transaction``: either all of its writes
are committed or none is.

Status flow::

    Creado -> En proceso -> (En préstamo) -> Entregado | Cancelado

A loan can be cancelled from any non-terminal status. Entregado and Cancelado
are terminal. Entering one stamps the end date and returns the units the loan
reserved to stock.
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from components.core.config import Settings
from components.core.database import DatabaseManager
from components.core.exceptions import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    TransactionError,
    ValidationError,
)
from components.item.repository import ItemRepository
from components.item.schemas import ItemStock
from components.loan import history as loan_history
from components.loan import schemas
from components.loan.history import HistoryEntry
from components.loan.models import Loan, utcnow
from components.loan.repository import LoanItemRepository, LoanRepository
from components.status.models import (
    OPEN_STATUSES,
    STATUS_NAMES,
    TERMINAL_STATUSES,
    Status,
    StatusCode,
    can_transition,
)
from components.status.repository import StatusRepository
from components.user.repository import UserRepository
from components.user.schemas import ActingUser

logger = logging.getLogger(__name__)

# Name written in the first history entry of every loan
CREATED_ENTRY_STATUS = STATUS_NAMES[StatusCode.CREATED]


class LoanLifecycleManager:
    """Creates loans and moves them through their statuses."""

    def __init__(self, db: DatabaseManager, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or db.settings

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_loan(
        self,
        requester_id: Optional[int],
        status_id: Optional[int],
        line_items: Sequence[schemas.LineItemIn],
    ) -> schemas.CreatedLoan:
        """
        Insert a loan, its line items and its initial history in one transaction.

        Stock is only decremented here when ``RESERVE_STOCK_ON_CREATE`` is
        enabled; otherwise the warehouse takes units out through the stock
        endpoint.
        """
        self._validate_new_loan(requester_id, status_id, line_items)

        async with self.db.transaction() as session:
            if await StatusRepository(session).get_by_id(status_id) is None:
                raise NotFoundError(f"No existe el estado {status_id}.")

            items = await ItemRepository(session).get_many_for_update(
                line.ele_id for line in line_items
            )

            reserve = self.settings.RESERVE_STOCK_ON_CREATE
            loans = LoanRepository(session)
            loan = await loans.create(requester_id, status_id, stock_reserved=reserve)
            if not loan.id:
                raise TransactionError("No se pudo obtener el ID del préstamo.")

            await LoanItemRepository(session).add_many(
                loan.id,
                [(line.ele_id, line.pre_ele_cantidad_prestado) for line in line_items],
            )

            if reserve:
                item_repo = ItemRepository(session)
                for line in line_items:
                    await item_repo.adjust_stock(items[line.ele_id], -line.pre_ele_cantidad_prestado)

            # History is written only after every line item is in place
            actor = await UserRepository(session).get_display_name(requester_id)
            history = [loan_history.new_entry(CREATED_ENTRY_STATUS, actor)]
            await loans.save_history(loan, history)
            loan_id = loan.id

        logger.info("Loan %s created for %s with %d items", loan_id, requester_id, len(line_items))
        return schemas.CreatedLoan(prestamo_id=loan_id, historial=history)

    async def update_loan(
        self,
        loan_id: int,
        new_requester_id: Optional[int],
        acting_user: ActingUser,
        new_end_date: Optional[datetime] = None,
        new_status_id: Optional[int] = None,
    ) -> schemas.UpdatedLoan:
        """
        Edit an open loan.

        Only warehouse staff change the end date and status; for anyone else
        those fields keep their stored values. A status change follows the
        same status flow and transition step as ``transition_status`` so the
        history stays in line with the current status.
        """
        if new_requester_id is None:
            raise ValidationError("La cédula del solicitante es obligatoria.")

        async with self.db.transaction() as session:
            loan = await self._get_loan_for_update(session, loan_id)
            self._check_access(acting_user, loan)
            if loan.status_id not in OPEN_STATUSES:
                raise InvalidStateError(
                    'El préstamo no se puede actualizar, ya que no está en estado "Creado" o "En proceso".'
                )

            if not acting_user.is_privileged:
                new_end_date = loan.end_date
                new_status_id = loan.status_id

            now = utcnow()
            if new_status_id is not None and new_status_id != loan.status_id:
                status = await self._get_status(session, new_status_id)
                self._check_transition(loan, status)
                await self._apply_transition(session, loan, status, acting_user.user_id, now)

            if new_end_date is not None:
                loan.end_date = new_end_date
            loan.requester_id = new_requester_id
            loan.updated_at = now
            await session.flush()
            start_date = loan.start_date

        logger.info("Loan %s updated by %s", loan_id, acting_user.user_id)
        return schemas.UpdatedLoan(pre_inicio=start_date)

    async def delete_loan(self, loan_id: int, acting_user: ActingUser) -> None:
        """
        Remove a loan and its line items.

        Units still reserved by the loan go back to stock. A loan that is
        already gone is reported as not found, including when a concurrent
        delete wins the race.
        """
        async with self.db.transaction() as session:
            loans = LoanRepository(session)
            loan = await loans.get_for_update(loan_id)
            if loan is None:
                raise NotFoundError("El préstamo no existe o ya fue eliminado.")
            self._check_access(acting_user, loan)

            await self._return_items(session, loan)

            await LoanItemRepository(session).delete_for_loan(loan_id)
            if await loans.delete(loan_id) == 0:
                raise NotFoundError("El préstamo no existe o ya fue eliminado.")

        logger.info("Loan %s deleted by %s", loan_id, acting_user.user_id)

    async def transition_status(
        self,
        loan_id: int,
        new_status_id: int,
        acting_user: ActingUser,
        actor_id: Optional[int] = None,
    ) -> schemas.TransitionResult:
        """
        Move a loan to another status and append the change to its history.

        Calling it twice with the same target appends two entries; the
        history records actions, not distinct states. Only warehouse staff
        may record the change on behalf of ``actor_id``; for anyone else the
        entry names the acting user.
        """
        async with self.db.transaction() as session:
            status = await self._get_status(session, new_status_id)
            loan = await self._get_loan_for_update(session, loan_id)
            self._check_access(acting_user, loan)
            if not acting_user.can_set_status(status.id):
                raise ForbiddenError("Solo el personal de almacén puede cambiar el estado del préstamo.")
            self._check_transition(loan, status)

            actor = acting_user.user_id
            if actor_id is not None and acting_user.is_privileged:
                actor = actor_id
            history, stock = await self._apply_transition(session, loan, status, actor, utcnow())
            result = schemas.TransitionResult(
                pre_id=loan.id,
                nuevo_estado=status.name,
                historial_estados=history,
                pre_fin=loan.end_date,
                stock=stock,
            )

        logger.info("Loan %s moved to %s by %s", loan_id, result.nuevo_estado, actor)
        return result

    async def cancel_loan(self, loan_id: int, acting_user: ActingUser) -> schemas.TransitionResult:
        """Cancel an unfinished loan, returning the refreshed stock of its items."""
        return await self.transition_status(loan_id, StatusCode.CANCELLED, acting_user)

    async def deliver_loan(self, loan_id: int, acting_user: ActingUser) -> schemas.TransitionResult:
        """Close a loan whose items came back to the warehouse."""
        if not acting_user.is_privileged:
            raise ForbiddenError("Solo el personal de almacén puede entregar préstamos.")
        return await self.transition_status(loan_id, StatusCode.DELIVERED, acting_user)

    async def update_line_item_quantity(
        self,
        loan_id: Optional[int],
        item_id: Optional[int],
        new_quantity: Optional[int],
        acting_user: ActingUser,
    ) -> ItemStock:
        """
        Correct the borrowed quantity of one item.

        Stock moves by the difference with the stored quantity, so repeating
        the same correction leaves stock untouched. Loans that never reserved
        stock only record the new quantity.
        """
        if loan_id is None or item_id is None or new_quantity is None:
            raise ValidationError("Préstamo, elemento y cantidad son obligatorios.")
        if new_quantity < 1:
            raise ValidationError("La cantidad prestada debe ser al menos 1.")

        async with self.db.transaction() as session:
            loan = await self._get_loan_for_update(session, loan_id)
            self._check_access(acting_user, loan)
            if loan.status_id in TERMINAL_STATUSES:
                raise InvalidStateError("El préstamo ya fue finalizado y no admite cambios.")

            line = await LoanItemRepository(session).get_line(loan_id, item_id, lock=True)
            if line is None:
                raise NotFoundError(f"El elemento {item_id} no forma parte del préstamo {loan_id}.")

            item_repo = ItemRepository(session)
            item = await item_repo.get_for_update(item_id)
            delta = new_quantity - line.quantity
            if loan.stock_reserved and delta > 0:
                await item_repo.adjust_stock(item, -delta)
            elif loan.stock_reserved and delta < 0:
                await item_repo.restore_stock(item, -delta)

            line.quantity = new_quantity
            loan.updated_at = utcnow()
            await session.flush()
            stock = ItemStock(ele_id=item.id, ele_cantidad_actual=item.current_quantity)

        logger.info("Loan %s item %s quantity set to %s (delta %+d)", loan_id, item_id, new_quantity, delta)
        return stock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_all_loans(self, acting_user: ActingUser) -> List[schemas.LoanSummary]:
        if not acting_user.can_view_all_loans:
            raise ForbiddenError("Solo administradores y almacén pueden ver todos los préstamos.")
        async with self.db.get_db() as session:
            return await LoanRepository(session).get_all()

    async def get_loan_by_id(self, loan_id: int) -> schemas.LoanDetail:
        async with self.db.get_db() as session:
            detail = await LoanRepository(session).get_detail(loan_id)
        if detail is None:
            raise NotFoundError("Préstamo no encontrado.")
        return detail

    async def get_loans_by_requester(
        self, requester_id: int, acting_user: ActingUser
    ) -> List[schemas.LoanSummary]:
        if not acting_user.can_access_loan(requester_id):
            raise ForbiddenError("No tiene permiso para ver los préstamos de otro usuario.")
        async with self.db.get_db() as session:
            return await LoanRepository(session).get_by_requester(requester_id)

    async def get_line_items_for_loan(self, loan_id: int) -> List[schemas.LoanLineDetail]:
        async with self.db.get_db() as session:
            if await LoanRepository(session).get_by_id(loan_id) is None:
                raise NotFoundError("Préstamo no encontrado.")
            return await LoanItemRepository(session).get_line_details(loan_id)

    async def get_status_history(self, loan_id: int) -> List[HistoryEntry]:
        async with self.db.get_db() as session:
            history = await LoanRepository(session).get_history(loan_id)
        if history is None:
            raise NotFoundError("Préstamo no encontrado.")
        return history

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_new_loan(
        requester_id: Optional[int],
        status_id: Optional[int],
        line_items: Sequence[schemas.LineItemIn],
    ) -> None:
        if requester_id is None:
            raise ValidationError("La cédula del solicitante es obligatoria.")
        if status_id is None:
            raise ValidationError("El estado inicial es obligatorio.")
        if not line_items:
            raise ValidationError("El préstamo debe incluir al menos un elemento.")
        seen = set()
        for line in line_items:
            if line.pre_ele_cantidad_prestado is None or line.pre_ele_cantidad_prestado < 1:
                raise ValidationError(f"La cantidad del elemento {line.ele_id} debe ser al menos 1.")
            if line.ele_id in seen:
                raise ValidationError(f"El elemento {line.ele_id} está repetido en el préstamo.")
            seen.add(line.ele_id)

    @staticmethod
    def _check_access(acting_user: ActingUser, loan: Loan) -> None:
        if not acting_user.can_access_loan(loan.requester_id):
            raise ForbiddenError("No tiene permiso para modificar este préstamo.")

    @staticmethod
    def _check_transition(loan: Loan, status: Status) -> None:
        if loan.status_id in TERMINAL_STATUSES:
            raise InvalidStateError("El préstamo ya fue finalizado y no admite cambios de estado.")
        if not can_transition(loan.status_id, status.id):
            raise InvalidStateError(
                f'No se puede pasar el préstamo de "{STATUS_NAMES.get(loan.status_id, loan.status_id)}" a "{status.name}".'
            )

    @staticmethod
    async def _get_loan_for_update(session: AsyncSession, loan_id: int) -> Loan:
        loan = await LoanRepository(session).get_for_update(loan_id)
        if loan is None:
            raise NotFoundError("Préstamo no encontrado.")
        return loan

    @staticmethod
    async def _get_status(session: AsyncSession, status_id: int) -> Status:
        status = await StatusRepository(session).get_by_id(status_id)
        if status is None:
            raise NotFoundError(f"No existe el estado {status_id}.")
        return status

    async def _apply_transition(
        self,
        session: AsyncSession,
        loan: Loan,
        status: Status,
        actor_id: int,
        now: datetime,
    ):
        """Set the new status, append its history entry and close terminal loans."""
        actor = await UserRepository(session).get_display_name(actor_id)
        history = loan_history.append_entry(
            loan.status_history, loan_history.new_entry(status.name, actor, now)
        )
        loan.status_id = status.id

        stock: List[ItemStock] = []
        if status.id in TERMINAL_STATUSES:
            loan.end_date = now
            stock = await self._return_items(session, loan)

        await LoanRepository(session).save_history(loan, history, now)
        return history, stock

    @staticmethod
    async def _return_items(session: AsyncSession, loan: Loan) -> List[ItemStock]:
        """
        Give the units reserved by the loan back to stock and release the
        reservation. Loans without one leave stock as it is; the current
        quantity of every item is reported either way.
        """
        lines = await LoanItemRepository(session).get_for_loan(loan.id, lock=True)
        if not lines:
            return []
        item_repo = ItemRepository(session)
        items = await item_repo.get_many_for_update(line.item_id for line in lines)
        stock = []
        for line in lines:
            item = items[line.item_id]
            if loan.stock_reserved:
                item = await item_repo.restore_stock(item, line.quantity)
            stock.append(ItemStock(ele_id=item.id, ele_cantidad_actual=item.current_quantity))
        loan.stock_reserved = False
        await session.flush()
        return stock
