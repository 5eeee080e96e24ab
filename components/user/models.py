"""User and user type models for the database."""

from sqlalchemy import BigInteger, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from components.core.database import Base


class UserType(Base):
    """Role catalog: Administrador, Instructor, Almacén."""
    __tablename__ = "TipoUsuarios"

    id = Column("tip_usr_id", Integer, primary_key=True, index=True)
    name = Column("tip_usr_nombre", String(50), unique=True, nullable=False)

    users = relationship("User", back_populates="user_type")


class User(Base):
    """Person that requests or manages loans, identified by national ID."""
    __tablename__ = "Usuarios"

    cedula = Column("usr_cedula", BigInteger, primary_key=True, autoincrement=False)
    first_name = Column("usr_primer_nombre", String(50), nullable=False)
    second_name = Column("usr_segundo_nombre", String(50), nullable=True)
    first_surname = Column("usr_primer_apellido", String(50), nullable=False)
    second_surname = Column("usr_segundo_apellido", String(50), nullable=True)
    email = Column("usr_correo", String(100), nullable=True)
    user_type_id = Column("tip_usr_id", Integer, ForeignKey("TipoUsuarios.tip_usr_id"), nullable=False)

    # Relationships
    user_type = relationship("UserType", back_populates="users")
    loans = relationship("Loan", back_populates="requester")

    @property
    def full_name(self) -> str:
        """Names and surnames joined, skipping the optional ones."""
        parts = [self.first_name, self.second_name, self.first_surname, self.second_surname]
        return " ".join(part.strip() for part in parts if part and part.strip())
