"""Repositories for loans and their line items."""

from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from components.item.models import Item
from components.loan import history as loan_history
from components.loan.history import HistoryEntry
from components.loan.models import Loan, LoanItem, utcnow
from components.loan import schemas
from components.status.models import Status
from components.user.models import User


class LoanRepository:
    """Repository for loan operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def create(self, requester_id: int, status_id: int, stock_reserved: bool = False) -> Loan:
        """Insert a loan row and flush it so its generated ID is available."""
        loan = Loan(requester_id=requester_id, status_id=status_id, stock_reserved=stock_reserved)
        self.session.add(loan)
        await self.session.flush()
        return loan

    async def get_by_id(self, loan_id: int) -> Optional[Loan]:
        """Get loan by ID."""
        result = await self.session.execute(
            select(Loan).where(Loan.id == loan_id)
        )
        return result.scalar_one_or_none()

    async def get_for_update(self, loan_id: int) -> Optional[Loan]:
        """Get loan by ID locking its row until the transaction ends."""
        result = await self.session.execute(
            select(Loan).where(Loan.id == loan_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def save_history(
        self,
        loan: Loan,
        history: List[HistoryEntry],
        updated_at: Optional[datetime] = None,
    ) -> None:
        """Persist the serialized history and touch the last update timestamp."""
        loan.status_history = loan_history.serialize_history(history)
        loan.updated_at = updated_at or utcnow()
        await self.session.flush()

    async def delete(self, loan_id: int) -> int:
        """Delete a loan row, returning the number of affected rows."""
        result = await self.session.execute(
            delete(Loan).where(Loan.id == loan_id)
        )
        return result.rowcount

    async def get_history(self, loan_id: int) -> Optional[List[HistoryEntry]]:
        """Parsed status history, or None when the loan does not exist."""
        result = await self.session.execute(
            select(Loan.status_history).where(Loan.id == loan_id)
        )
        row = result.one_or_none()
        if row is None:
            return None
        return loan_history.parse_history(row[0])

    async def get_summaries(
        self,
        requester_id: Optional[int] = None,
        loan_id: Optional[int] = None,
    ) -> List[Tuple[Loan, Optional[User], Status]]:
        """Loans joined with requester and status, newest first."""
        query = (
            select(Loan, User, Status)
            .join(Status, Loan.status_id == Status.id)
            .outerjoin(User, Loan.requester_id == User.cedula)
            .order_by(Loan.start_date.desc(), Loan.id.desc())
        )
        if requester_id is not None:
            query = query.where(Loan.requester_id == requester_id)
        if loan_id is not None:
            query = query.where(Loan.id == loan_id)
        result = await self.session.execute(query)
        return [tuple(row) for row in result.all()]

    async def get_all(self) -> List[schemas.LoanSummary]:
        """Every loan with its requester name, status and items."""
        return await self._build_summaries(await self.get_summaries())

    async def get_by_requester(self, requester_id: int) -> List[schemas.LoanSummary]:
        """Loans requested by one user."""
        return await self._build_summaries(await self.get_summaries(requester_id=requester_id))

    async def get_detail(self, loan_id: int) -> Optional[schemas.LoanDetail]:
        """Loan with its items and parsed status history."""
        rows = await self.get_summaries(loan_id=loan_id)
        if not rows:
            return None
        loan, user, status = rows[0]
        items = await LoanItemRepository(self.session).get_named_items([loan.id])
        summary = self._summary(loan, user, status, items.get(loan.id, []))
        return schemas.LoanDetail(
            **summary.model_dump(),
            historial_estados=loan_history.parse_history(loan.status_history),
        )

    async def _build_summaries(
        self, rows: List[Tuple[Loan, Optional[User], Status]]
    ) -> List[schemas.LoanSummary]:
        items = await LoanItemRepository(self.session).get_named_items(loan.id for loan, _, _ in rows)
        return [
            self._summary(loan, user, status, items.get(loan.id, []))
            for loan, user, status in rows
        ]

    @staticmethod
    def _summary(
        loan: Loan,
        user: Optional[User],
        status: Status,
        items: List[schemas.LoanItemRead],
    ) -> schemas.LoanSummary:
        return schemas.LoanSummary(
            pre_id=loan.id,
            pre_inicio=loan.start_date,
            pre_fin=loan.end_date,
            pre_actualizacion=loan.updated_at,
            usr_cedula=loan.requester_id,
            usr_nombre=user.full_name if user else str(loan.requester_id),
            est_id=status.id,
            est_nombre=status.name,
            elementos=items,
        )


class LoanItemRepository:
    """Repository for loan line item operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def add_many(self, loan_id: int, lines: Iterable[Tuple[int, int]]) -> List[LoanItem]:
        """
        Insert one row per (item_id, quantity) pair.

        All rows are flushed together; if any insert fails none is kept once
        the surrounding transaction rolls back.
        """
        rows = [LoanItem(loan_id=loan_id, item_id=item_id, quantity=quantity) for item_id, quantity in lines]
        self.session.add_all(rows)
        await self.session.flush()
        return rows

    async def get_for_loan(self, loan_id: int, lock: bool = False) -> List[LoanItem]:
        """Line items of a loan ordered by item ID."""
        query = select(LoanItem).where(LoanItem.loan_id == loan_id).order_by(LoanItem.item_id)
        if lock:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_line(self, loan_id: int, item_id: int, lock: bool = False) -> Optional[LoanItem]:
        """Line item for one item within a loan."""
        query = select(LoanItem).where(LoanItem.loan_id == loan_id, LoanItem.item_id == item_id)
        if lock:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalars().first()

    async def delete_for_loan(self, loan_id: int) -> int:
        """Delete every line item of a loan, returning the number removed."""
        result = await self.session.execute(
            delete(LoanItem).where(LoanItem.loan_id == loan_id)
        )
        return result.rowcount

    async def get_named_items(self, loan_ids: Iterable[int]) -> Dict[int, List[schemas.LoanItemRead]]:
        """Line items joined with item names, grouped by loan ID."""
        loan_ids = list(loan_ids)
        if not loan_ids:
            return {}
        result = await self.session.execute(
            select(LoanItem.loan_id, LoanItem.item_id, Item.name, LoanItem.quantity)
            .join(Item, LoanItem.item_id == Item.id)
            .where(LoanItem.loan_id.in_(loan_ids))
            .order_by(LoanItem.loan_id, LoanItem.item_id)
        )
        grouped = defaultdict(list)
        for loan_id, item_id, name, quantity in result.all():
            grouped[loan_id].append(schemas.LoanItemRead(
                ele_id=item_id,
                ele_nombre=name,
                pre_ele_cantidad_prestado=quantity,
            ))
        return dict(grouped)

    async def get_line_details(self, loan_id: int) -> List[schemas.LoanLineDetail]:
        """Line items with the parent loan status and current item stock."""
        result = await self.session.execute(
            select(
                Loan.id, Loan.status_id, Status.name,
                LoanItem.item_id, LoanItem.quantity, Item.name, Item.current_quantity,
            )
            .join(Status, Loan.status_id == Status.id)
            .join(LoanItem, LoanItem.loan_id == Loan.id)
            .join(Item, LoanItem.item_id == Item.id)
            .where(Loan.id == loan_id)
            .order_by(LoanItem.item_id)
        )
        return [
            schemas.LoanLineDetail(
                pre_id=pre_id,
                est_id=est_id,
                estado=estado,
                ele_id=ele_id,
                pre_ele_cantidad_prestado=quantity,
                nombre=nombre,
                ele_cantidad_actual=current,
            )
            for pre_id, est_id, estado, ele_id, quantity, nombre, current in result.all()
        ]
