"""API dependencies for FastAPI route handlers.

This module provides dependency injection functions for:
- Database sessions
- Admin authentication (JWT bearer tokens)
- Theme storage and the outbound HTTP client
"""

from typing import AsyncGenerator, Optional

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db as get_db_session
from app.schemas.auth import TokenPayload
from app.services.auth_service import InvalidTokenError, decode_admin_token
from app.services.theme_storage import ThemeStorage
from app.services.theme_storage import get_theme_storage as get_storage_handle

# HTTP Bearer token scheme for JWT authentication
security = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session.

    Yields:
        AsyncSession for database operations
    """
    async for session in get_db_session():
        yield session


def get_theme_storage() -> ThemeStorage:
    """Dependency to get the theme storage handle.

    Returns:
        ThemeStorage for the configured themes root
    """
    return get_storage_handle()


async def get_current_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> TokenPayload:
    """Dependency to require a valid admin bearer token.

    Args:
        credentials: HTTP Bearer credentials containing the JWT token

    Returns:
        Decoded token payload

    Raises:
        HTTPException: 401 if token is missing, invalid, or expired
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return decode_admin_token(credentials.credentials)
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_http_client() -> Optional[httpx.AsyncClient]:
    """Dependency for the outbound HTTP client used by theme installs.

    Returns None so the installer opens its own client per request.
    """
    return None
