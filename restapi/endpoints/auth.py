"""Identity dependencies resolving the bearer credential to an acting user."""

from typing import Callable
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from components.core.security import acting_user_from_token
from components.user.schemas import ActingUser, Role

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> ActingUser:
    """Get current user from JWT token."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Acceso denegado. Token no proporcionado.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = acting_user_from_token(credentials.credentials)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token inválido o expirado.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_roles(*roles: Role) -> Callable:
    """Dependency allowing only the given roles through."""

    async def checker(current_user: ActingUser = Depends(get_current_user)) -> ActingUser:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Acceso denegado. Permisos insuficientes para este rol.",
            )
        return current_user

    return checker
