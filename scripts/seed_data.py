"""Script to seed reference and test data into the database."""

import asyncio
from sqlalchemy import delete

from components.core.database import DatabaseManager
from components.item.models import Item, Location
from components.loan.models import Loan, LoanItem
from components.status.models import STATUS_NAMES, Status
from components.user.models import User, UserType
from components.user.schemas import Role

ROLE_NAMES = {
    Role.ADMIN: "Administrador",
    Role.INSTRUCTOR: "Instructor",
    Role.WAREHOUSE: "Almacén",
}


async def seed_data(db_manager: DatabaseManager) -> None:
    """Seed test data into the database."""
    await db_manager.create_all()

    async with db_manager.transaction() as db:
        # Clear existing data
        for model in (LoanItem, Loan, Item, Location, User, UserType, Status):
            await db.execute(delete(model))

        # Reference data keeps its fixed IDs
        db.add_all(Status(id=int(code), name=name) for code, name in STATUS_NAMES.items())
        db.add_all(UserType(id=int(role), name=name) for role, name in ROLE_NAMES.items())
        await db.flush()

        db.add_all([
            User(cedula=1001, first_name="Ana", first_surname="Gómez", second_surname="Ruiz",
                 email="ana.gomez@example.com", user_type_id=Role.ADMIN),
            User(cedula=1002, first_name="Carlos", second_name="Andrés", first_surname="Pérez",
                 email="carlos.perez@example.com", user_type_id=Role.INSTRUCTOR),
            User(cedula=1003, first_name="Lucía", first_surname="Martínez",
                 email="lucia.martinez@example.com", user_type_id=Role.WAREHOUSE),
        ])

        shelves = [Location(name="Bodega principal"), Location(name="Laboratorio de redes")]
        db.add_all(shelves)
        await db.flush()

        db.add_all([
            Item(name="Multímetro digital", total_quantity=15, current_quantity=15, location_id=shelves[0].id),
            Item(name="Cautín 60W", total_quantity=10, current_quantity=10, location_id=shelves[0].id),
            Item(name="Cable UTP Cat6 (rollo)", total_quantity=6, current_quantity=6, location_id=shelves[1].id),
            Item(name="Router de laboratorio", total_quantity=8, current_quantity=8, location_id=shelves[1].id),
        ])

    print("Seed data loaded.")


async def main() -> None:
    db_manager = DatabaseManager()
    try:
        await seed_data(db_manager)
    finally:
        await db_manager.dispose()


if __name__ == "__main__":
    asyncio.run(main())
