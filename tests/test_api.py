from datetime import datetime
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from components.core.exceptions import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    TransactionError,
)
from components.core.init_db import get_db_manager, get_loan_manager
from components.core.security import create_user_token
from components.item.schemas import ItemStock
from components.loan import schemas
from components.loan.history import HistoryEntry
from components.loan.service import LoanLifecycleManager
from components.user.schemas import ActingUser, Role
from restapi.router import create_app
from tests.conftest import INSTRUCTOR_ID, MULTIMETER_ID, WAREHOUSE_ID

CREATED_ENTRY = HistoryEntry(estado="Creado", usuario="Carlos Andrés Pérez", fecha="2024-03-01 08:00:00")


def auth(user_id: int, role: Role) -> dict:
    return {"Authorization": f"Bearer {create_user_token(user_id, role)}"}


INSTRUCTOR = auth(INSTRUCTOR_ID, Role.INSTRUCTOR)
WAREHOUSE = auth(WAREHOUSE_ID, Role.WAREHOUSE)


@pytest.fixture
def app():
    app = create_app()
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def loan_manager(app):
    manager = AsyncMock(spec=LoanLifecycleManager)
    app.dependency_overrides[get_loan_manager] = lambda: manager
    return manager


@pytest.fixture
def client(app, loan_manager):
    return TestClient(app)


# ----------------------------------------------------------------------
# Identity and roles
# ----------------------------------------------------------------------

def test_missing_token_is_unauthorized(client):
    response = client.get("/prestamos/1")
    assert response.status_code == 401
    assert response.json() == {"respuesta": False, "mensaje": "Acceso denegado. Token no proporcionado."}


def test_invalid_token_is_unauthorized(client):
    response = client.get("/prestamos/1", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401
    assert response.json() == {"respuesta": False, "mensaje": "Token inválido o expirado."}


def test_listing_every_loan_is_for_admin_and_warehouse(client, loan_manager):
    loan_manager.get_all_loans.return_value = []

    assert client.get("/prestamos", headers=INSTRUCTOR).status_code == 403
    response = client.get("/prestamos", headers=WAREHOUSE)

    assert response.status_code == 200
    assert response.json() == {"respuesta": True, "mensaje": "¡Préstamos obtenidos con éxito!", "data": []}


def test_deliver_is_for_warehouse(client, loan_manager):
    loan_manager.deliver_loan.return_value = schemas.TransitionResult(
        pre_id=5,
        nuevo_estado="Entregado",
        historial_estados=[CREATED_ENTRY],
        pre_fin=datetime(2024, 3, 2, 9, 30),
        stock=[ItemStock(ele_id=MULTIMETER_ID, ele_cantidad_actual=10)],
    )

    assert client.put("/prestamos/entregar/5", headers=INSTRUCTOR).status_code == 403
    response = client.put("/prestamos/entregar/5", headers=WAREHOUSE)

    assert response.status_code == 200
    body = response.json()
    assert body["estadoPrestamo"] == "Entregado"
    assert body["fechaEntrega"] == "2024-03-02T09:30:00"
    assert body["data"] == [{"ele_id": MULTIMETER_ID, "ele_cantidad_actual": 10}]


# ----------------------------------------------------------------------
# Loan endpoints
# ----------------------------------------------------------------------

def test_create_loan(client, loan_manager):
    loan_manager.create_loan.return_value = schemas.CreatedLoan(prestamo_id=12, historial=[CREATED_ENTRY])

    response = client.post(
        "/prestamos/crear",
        json={"usr_cedula": INSTRUCTOR_ID, "est_id": 1,
              "elementos": [{"ele_id": MULTIMETER_ID, "pre_ele_cantidad_prestado": 2}]},
        headers=INSTRUCTOR,
    )

    assert response.status_code == 201
    assert response.json() == {
        "success": True,
        "prestamoId": 12,
        "historial": [{"estado": "Creado", "usuario": "Carlos Andrés Pérez", "fecha": "2024-03-01 08:00:00"}],
    }
    loan_manager.create_loan.assert_awaited_once_with(
        INSTRUCTOR_ID, 1, [schemas.LineItemIn(ele_id=MULTIMETER_ID, pre_ele_cantidad_prestado=2)]
    )


@pytest.mark.parametrize(
    "payload",
    [
        {"usr_cedula": INSTRUCTOR_ID, "est_id": 1, "elementos": []},
        {"est_id": 1, "elementos": [{"ele_id": 1, "pre_ele_cantidad_prestado": 1}]},
        {"usr_cedula": INSTRUCTOR_ID, "est_id": 1, "elementos": [{"ele_id": 1, "pre_ele_cantidad_prestado": 0}]},
    ],
)
def test_create_loan_rejects_malformed_body(client, loan_manager, payload):
    response = client.post("/prestamos/crear", json=payload, headers=INSTRUCTOR)

    assert response.status_code == 400
    assert response.json()["respuesta"] is False
    loan_manager.create_loan.assert_not_awaited()


def test_update_loan_passes_fields_and_identity(client, loan_manager):
    loan_manager.update_loan.return_value = schemas.UpdatedLoan(pre_inicio=datetime(2024, 3, 1, 8, 0))

    response = client.put(
        "/prestamos/actualizar",
        json={"pre_id": 5, "usr_cedula": INSTRUCTOR_ID, "est_id": 2},
        headers=INSTRUCTOR,
    )

    assert response.status_code == 200
    assert response.json()["pre_inicio"] == "2024-03-01T08:00:00"
    loan_manager.update_loan.assert_awaited_once_with(
        5, INSTRUCTOR_ID, ActingUser(user_id=INSTRUCTOR_ID, role=Role.INSTRUCTOR),
        new_end_date=None, new_status_id=2,
    )


def test_change_status_uses_body_actor(client, loan_manager):
    loan_manager.transition_status.return_value = schemas.TransitionResult(
        pre_id=5, nuevo_estado="En proceso", historial_estados=[CREATED_ENTRY],
    )

    response = client.put("/prestamos/5/estado", json={"est_id": 2, "usr_cedula": 1003}, headers=WAREHOUSE)

    assert response.status_code == 200
    assert response.json()["nuevo_estado"] == "En proceso"
    loan_manager.transition_status.assert_awaited_once_with(
        5, 2, ActingUser(user_id=WAREHOUSE_ID, role=Role.WAREHOUSE), actor_id=1003
    )


def test_cancel_reports_refreshed_stock(client, loan_manager):
    loan_manager.cancel_loan.return_value = schemas.TransitionResult(
        pre_id=5,
        nuevo_estado="Cancelado",
        historial_estados=[CREATED_ENTRY],
        stock=[ItemStock(ele_id=MULTIMETER_ID, ele_cantidad_actual=9)],
    )

    response = client.delete("/prestamos/5/cancelar", headers=INSTRUCTOR)

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Préstamo cancelado y cantidades restauradas correctamente.",
        "data": [{"ele_id": MULTIMETER_ID, "ele_cantidad_actual": 9}],
    }


# ----------------------------------------------------------------------
# Error mapping
# ----------------------------------------------------------------------

@pytest.mark.parametrize(
    "error,status_code",
    [
        (InvalidStateError("El préstamo no se puede actualizar."), 400),
        (ForbiddenError("No tiene permiso para modificar este préstamo."), 403),
        (NotFoundError("Préstamo no encontrado."), 404),
    ],
)
def test_service_errors_keep_their_message(client, loan_manager, error, status_code):
    loan_manager.delete_loan.side_effect = error

    response = client.delete("/prestamos/5", headers=INSTRUCTOR)

    assert response.status_code == status_code
    assert response.json() == {"respuesta": False, "mensaje": error.message}


def test_transaction_error_hides_details(client, loan_manager):
    loan_manager.get_loan_by_id.side_effect = TransactionError("deadlock on Prestamos")

    response = client.get("/prestamos/5", headers=INSTRUCTOR)

    assert response.status_code == 500
    assert response.json() == {"respuesta": False, "mensaje": "No se pudo completar la transacción."}


def test_unexpected_error_is_generic_500(app, loan_manager):
    loan_manager.get_status_history.side_effect = RuntimeError("boom")
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/prestamos/5/historial-estado", headers=INSTRUCTOR)

    assert response.status_code == 500
    assert response.json() == {"respuesta": False, "mensaje": "Error interno del servidor."}


# ----------------------------------------------------------------------
# Endpoints backed by the database
# ----------------------------------------------------------------------

@pytest.fixture
async def db_client(app, db_manager):
    app.dependency_overrides[get_db_manager] = lambda: db_manager
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def test_stock_adjustment(db_client):
    response = await db_client.put(
        "/elementos/actualizar-stock", json={"ele_id": MULTIMETER_ID, "cantidad": -3}, headers=WAREHOUSE
    )
    assert response.status_code == 200
    assert response.json()["data"] == {"ele_id": MULTIMETER_ID, "ele_cantidad_actual": 7}

    response = await db_client.put(
        "/elementos/actualizar-stock", json={"ele_id": MULTIMETER_ID, "cantidad": 5}, headers=WAREHOUSE
    )
    assert response.status_code == 400

    response = await db_client.get(f"/elementos/{MULTIMETER_ID}", headers=INSTRUCTOR)
    assert response.json()["data"]["ele_cantidad_actual"] == 7
    assert response.json()["data"]["ubi_nombre"] == "Bodega principal"


async def test_stock_adjustment_errors(db_client):
    response = await db_client.put(
        "/elementos/actualizar-stock", json={"ele_id": MULTIMETER_ID, "cantidad": -1}, headers=INSTRUCTOR
    )
    assert response.status_code == 403

    response = await db_client.put(
        "/elementos/actualizar-stock", json={"ele_id": 404, "cantidad": -1}, headers=WAREHOUSE
    )
    assert response.status_code == 404


async def test_status_catalog(db_client):
    response = await db_client.get("/estados", headers=INSTRUCTOR)
    assert response.status_code == 200
    assert [status["est_nombre"] for status in response.json()] == [
        "Creado", "En proceso", "En préstamo", "Entregado", "Cancelado",
    ]
    assert (await db_client.get("/estados/9", headers=INSTRUCTOR)).status_code == 404


async def test_health_check(db_client):
    response = await db_client.get("/health_check/")
    assert response.json() == {"service_name": "StoreFlow", "status": "healthy", "database": "up"}
