"""Loan status catalog model for the database."""

import enum

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from components.core.database import Base


class StatusCode(enum.IntEnum):
    """Fixed identifiers of the seeded loan statuses."""
    CREATED = 1
    IN_PROCESS = 2
    ON_LOAN = 3
    DELIVERED = 4
    CANCELLED = 5


STATUS_NAMES = {
    StatusCode.CREATED: "Creado",
    StatusCode.IN_PROCESS: "En proceso",
    StatusCode.ON_LOAN: "En préstamo",
    StatusCode.DELIVERED: "Entregado",
    StatusCode.CANCELLED: "Cancelado",
}

# Entering one of these stamps the end date and returns the items to stock
TERMINAL_STATUSES = frozenset({StatusCode.DELIVERED, StatusCode.CANCELLED})

# Loans in these statuses can still be edited through UpdateLoan
OPEN_STATUSES = frozenset({StatusCode.CREATED, StatusCode.IN_PROCESS})

# Moves accepted from each non-terminal status; repeating the current one is allowed
ALLOWED_TRANSITIONS = {
    StatusCode.CREATED: frozenset({StatusCode.CREATED, StatusCode.IN_PROCESS, StatusCode.CANCELLED}),
    StatusCode.IN_PROCESS: frozenset({
        StatusCode.IN_PROCESS, StatusCode.ON_LOAN, StatusCode.DELIVERED, StatusCode.CANCELLED,
    }),
    StatusCode.ON_LOAN: frozenset({StatusCode.ON_LOAN, StatusCode.DELIVERED, StatusCode.CANCELLED}),
}


def can_transition(current: int, target: int) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class Status(Base):
    """Status a loan can be in."""
    __tablename__ = "Estados"

    id = Column("est_id", Integer, primary_key=True, index=True)
    name = Column("est_nombre", String(50), unique=True, nullable=False)

    loans = relationship("Loan", back_populates="status")

    @property
    def is_terminal(self) -> bool:
        return self.id in TERMINAL_STATUSES
