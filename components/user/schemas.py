"""Pydantic schemas for users and the acting identity."""

import enum
from typing import Optional

from pydantic import BaseModel

from components.status.models import StatusCode


class Role(enum.IntEnum):
    """User types as stored in TipoUsuarios."""
    ADMIN = 1
    INSTRUCTOR = 2
    WAREHOUSE = 3


class ActingUser(BaseModel):
    """
    Identity resolved from the bearer credential.

    Every permission question about loans is answered here so handlers and
    the lifecycle manager never compare raw role ids.
    """
    user_id: int
    role: Role

    @property
    def is_privileged(self) -> bool:
        """Warehouse staff may change end dates and statuses of any loan."""
        return self.role == Role.WAREHOUSE

    @property
    def can_view_all_loans(self) -> bool:
        return self.role in (Role.ADMIN, Role.WAREHOUSE)

    def can_access_loan(self, owner_id: int) -> bool:
        """Instructors only touch their own loans."""
        if self.role == Role.INSTRUCTOR:
            return self.user_id == owner_id
        return True

    def can_set_status(self, target_status_id: int) -> bool:
        """Warehouse staff move loans freely; everyone else may only cancel."""
        return self.is_privileged or target_status_id == StatusCode.CANCELLED


class UserTokenPayload(BaseModel):
    """Claims carried by the bearer token."""
    sub: str
    tip_usr_id: int
    exp: Optional[int] = None
