"""Core schemas for the application."""

from pydantic import BaseModel


class HealthCheck(BaseModel):
    """Schema for health check response."""
    service_name: str
    status: str
    database: str


class MessageResponse(BaseModel):
    """Outcome flag and message used by most endpoints."""
    respuesta: bool
    mensaje: str


class SuccessResponse(BaseModel):
    """Outcome flag and message in the success/message spelling."""
    success: bool
    message: str
