import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from components.core.config import Settings
from components.core.database import DatabaseManager
from components.item.models import Item, Location
from components.loan.models import Loan
from components.loan.service import LoanLifecycleManager
from components.status.models import STATUS_NAMES, Status
from components.user.models import User, UserType
from components.user.schemas import ActingUser, Role

INSTRUCTOR_ID = 123
OTHER_INSTRUCTOR_ID = 456
WAREHOUSE_ID = 789
ADMIN_ID = 1

MULTIMETER_ID = 7
SOLDERING_IRON_ID = 8


async def seed(db_manager: DatabaseManager) -> None:
    await db_manager.create_all()
    async with db_manager.transaction() as db:
        db.add_all(Status(id=int(code), name=name) for code, name in STATUS_NAMES.items())
        db.add_all([
            UserType(id=Role.ADMIN, name="Administrador"),
            UserType(id=Role.INSTRUCTOR, name="Instructor"),
            UserType(id=Role.WAREHOUSE, name="Almacén"),
        ])
        await db.flush()
        db.add_all([
            User(cedula=INSTRUCTOR_ID, first_name="Carlos", second_name="Andrés",
                 first_surname="Pérez", user_type_id=Role.INSTRUCTOR),
            User(cedula=OTHER_INSTRUCTOR_ID, first_name="Marta", first_surname="Díaz",
                 user_type_id=Role.INSTRUCTOR),
            User(cedula=WAREHOUSE_ID, first_name="Lucía", first_surname="Martínez",
                 second_surname="Rojas", user_type_id=Role.WAREHOUSE),
            User(cedula=ADMIN_ID, first_name="Ana", first_surname="Gómez", user_type_id=Role.ADMIN),
        ])
        db.add(Location(id=1, name="Bodega principal"))
        await db.flush()
        db.add_all([
            Item(id=MULTIMETER_ID, name="Multímetro", total_quantity=10, current_quantity=10, location_id=1),
            Item(id=SOLDERING_IRON_ID, name="Cautín", total_quantity=5, current_quantity=5, location_id=1),
        ])


@pytest.fixture
def settings():
    return Settings(RESERVE_STOCK_ON_CREATE=False)


@pytest.fixture
async def db_manager(settings):
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    manager = DatabaseManager(engine=engine, settings=settings)
    await seed(manager)
    try:
        yield manager
    finally:
        await manager.dispose()


@pytest.fixture
def manager(db_manager, settings):
    return LoanLifecycleManager(db_manager, settings)


@pytest.fixture
def reserving_manager(db_manager, settings):
    return LoanLifecycleManager(db_manager, settings.model_copy(update={"RESERVE_STOCK_ON_CREATE": True}))


@pytest.fixture
def instructor():
    return ActingUser(user_id=INSTRUCTOR_ID, role=Role.INSTRUCTOR)


@pytest.fixture
def other_instructor():
    return ActingUser(user_id=OTHER_INSTRUCTOR_ID, role=Role.INSTRUCTOR)


@pytest.fixture
def warehouse():
    return ActingUser(user_id=WAREHOUSE_ID, role=Role.WAREHOUSE)


@pytest.fixture
def admin():
    return ActingUser(user_id=ADMIN_ID, role=Role.ADMIN)


async def count_rows(db_manager: DatabaseManager, model) -> int:
    async with db_manager.get_db() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar_one()


async def current_stock(db_manager: DatabaseManager, item_id: int) -> int:
    async with db_manager.get_db() as session:
        result = await session.execute(select(Item.current_quantity).where(Item.id == item_id))
        return result.scalar_one()


async def load_loan(db_manager: DatabaseManager, loan_id: int):
    async with db_manager.get_db() as session:
        result = await session.execute(select(Loan).where(Loan.id == loan_id))
        return result.scalar_one_or_none()


async def set_stock(db_manager: DatabaseManager, item_id: int, quantity: int) -> None:
    async with db_manager.transaction() as session:
        item = await session.get(Item, item_id)
        item.current_quantity = quantity
