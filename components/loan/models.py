"""Loan and loan line item models for the database."""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, Boolean, Column, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from components.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Loan(Base):
    """Loan requested by a user, tracked through its status lifecycle."""
    __tablename__ = "Prestamos"

    id = Column("pre_id", Integer, primary_key=True, index=True)
    requester_id = Column("usr_cedula", BigInteger, ForeignKey("Usuarios.usr_cedula"), nullable=False, index=True)
    status_id = Column("est_id", Integer, ForeignKey("Estados.est_id"), nullable=False)
    start_date = Column("pre_inicio", DateTime, nullable=False, default=utcnow)
    end_date = Column("pre_fin", DateTime, nullable=True)
    updated_at = Column("pre_actualizacion", DateTime, nullable=True, default=utcnow)
    # Set while the loan holds units taken out of item stock
    stock_reserved = Column("pre_stock_reservado", Boolean, nullable=False, default=False)
    # JSON array of {estado, usuario, fecha}; only touched through components.loan.history
    status_history = Column("historial_estados", Text, nullable=True)

    # Relationships
    requester = relationship("User", back_populates="loans")
    status = relationship("Status", back_populates="loans")
    items = relationship(
        "LoanItem",
        back_populates="loan",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class LoanItem(Base):
    """Quantity of one item borrowed within a loan."""
    __tablename__ = "PrestamosElementos"

    id = Column("pre_ele_id", Integer, primary_key=True, index=True)
    loan_id = Column("pre_id", Integer, ForeignKey("Prestamos.pre_id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column("ele_id", Integer, ForeignKey("Elementos.ele_id"), nullable=False)
    quantity = Column("pre_ele_cantidad_prestado", Integer, nullable=False)

    # Relationships
    loan = relationship("Loan", back_populates="items")
    item = relationship("Item", back_populates="loan_items")
