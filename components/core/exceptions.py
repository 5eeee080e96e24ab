"""Error taxonomy for the loans service and its HTTP mapping."""

import logging

import fastapi
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

GENERIC_SERVER_MESSAGE = "Error interno del servidor."


class StoreFlowError(Exception):
    """Base class for every error the service reports to a caller."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = GENERIC_SERVER_MESSAGE

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(StoreFlowError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Datos de entrada inválidos."


class InvalidStateError(StoreFlowError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "El préstamo no admite esta operación en su estado actual."


class ForbiddenError(StoreFlowError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "No tiene permiso para realizar esta operación."


class NotFoundError(StoreFlowError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Recurso no encontrado."


class TransactionError(StoreFlowError):
    default_message = "No se pudo completar la transacción."


class UnknownServerError(StoreFlowError):
    pass


def error_body(message: str) -> dict:
    return {"respuesta": False, "mensaje": message}


async def storeflow_error_handler(request: Request, exc: StoreFlowError) -> JSONResponse:
    # 5xx errors never echo internal details back to the caller
    message = exc.message if exc.status_code < 500 else exc.default_message
    return JSONResponse(status_code=exc.status_code, content=error_body(message))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [".".join(str(part) for part in error["loc"] if part != "body") for error in exc.errors()]
    logger.info("Rejected request to %s: invalid fields %s", request.url.path, fields)
    message = ValidationError.default_message
    if fields:
        message = f"{message} Revise: {', '.join(field for field in fields if field)}"
    return JSONResponse(status_code=ValidationError.status_code, content=error_body(message))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=UnknownServerError.status_code,
        content=error_body(UnknownServerError.default_message),
    )


def register_exception_handlers(app: fastapi.FastAPI) -> None:
    """Install the JSON error handlers on the application."""
    app.add_exception_handler(StoreFlowError, storeflow_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
