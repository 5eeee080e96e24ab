"""Item and storage location models for the database."""

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from components.core.database import Base


class Location(Base):
    """Place in the warehouse where items are kept."""
    __tablename__ = "UbicacionElementos"

    id = Column("ubi_ele_id", Integer, primary_key=True, index=True)
    name = Column("ubi_nombre", String(100), nullable=False)

    items = relationship("Item", back_populates="location")


class Item(Base):
    """Lendable item with its total and currently available quantity."""
    __tablename__ = "Elementos"

    id = Column("ele_id", Integer, primary_key=True, index=True)
    name = Column("ele_nombre", String(100), nullable=False)
    total_quantity = Column("ele_cantidad_total", Integer, nullable=False, default=0)
    current_quantity = Column("ele_cantidad_actual", Integer, nullable=False, default=0)
    image = Column("ele_imagen", String(255), nullable=True)
    location_id = Column("ubi_ele_id", Integer, ForeignKey("UbicacionElementos.ubi_ele_id"), nullable=True)

    # Relationships
    location = relationship("Location", back_populates="items")
    loan_items = relationship("LoanItem", back_populates="item")
