"""Bearer token helpers."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import ValidationError

from components.core.config import get_settings
from components.user.schemas import ActingUser, Role, UserTokenPayload


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a new JWT access token."""
    settings = get_settings()
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_user_token(user_id: int, role: Role, expires_delta: Optional[timedelta] = None) -> str:
    """Token carrying the claims the API expects: sub and tip_usr_id."""
    return create_access_token({"sub": str(user_id), "tip_usr_id": int(role)}, expires_delta)


def verify_token(token: str) -> Optional[dict]:
    """Verify a JWT token and return its payload."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def acting_user_from_token(token: str) -> Optional[ActingUser]:
    """Resolve a bearer token to the acting identity, None when unusable."""
    payload = verify_token(token)
    if payload is None:
        return None
    try:
        claims = UserTokenPayload(**payload)
        return ActingUser(user_id=int(claims.sub), role=Role(claims.tip_usr_id))
    except (ValidationError, ValueError):
        return None
