"""
Admin authentication utilities.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from sitescan.config import get_settings

# Security scheme
security = HTTPBearer()

ADMIN_ROLE = "admin"


class TokenData(BaseModel):
    """Data extracted from JWT token."""

    username: str
    role: str
    exp: datetime


class AuthenticatedAdmin(BaseModel):
    """Authenticated admin context."""

    username: str
    role: str


def create_access_token(
    username: str,
    role: str = ADMIN_ROLE,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        username: The admin username, stored as the `sub` claim.
        role: Role claim checked by admin routes.
        expires_delta: Optional custom expiration time.

    Returns:
        The encoded JWT token.
    """
    settings = get_settings()

    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.api_access_token_expire_minutes)

    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": username,
        "role": role,
        "exp": now + expires_delta,
        "iat": now,
    }

    return jwt.encode(
        to_encode,
        settings.api_secret_key,
        algorithm=settings.api_algorithm,
    )


def decode_token(token: str) -> TokenData:
    """
    Decode and validate a JWT token.

    Raises:
        HTTPException: 401 if the token is invalid, expired or incomplete.
    """
    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.api_secret_key,
            algorithms=[settings.api_algorithm],
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    username = payload.get("sub")
    if not username:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing subject",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return TokenData(
        username=username,
        role=payload.get("role", ""),
        exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )


def verify_admin_credentials(username: str, password: str) -> bool:
    """Check a username/password pair against the configured admin account."""
    settings = get_settings()
    username_ok = secrets.compare_digest(username.encode(), settings.admin_username.encode())
    password_ok = secrets.compare_digest(password.encode(), settings.admin_password.encode())
    return username_ok and password_ok


async def get_current_admin(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> AuthenticatedAdmin:
    """
    FastAPI dependency resolving the bearer token to an admin.

    Raises:
        HTTPException: 401 on a bad token, 403 if the role is not admin.
    """
    token_data = decode_token(credentials.credentials)

    if token_data.role != ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required",
        )

    return AuthenticatedAdmin(username=token_data.username, role=token_data.role)


# Type alias for dependency injection
CurrentAdmin = Annotated[AuthenticatedAdmin, Depends(get_current_admin)]
