"""Admin token handling.

Admin logins are handled by the auth collaborator; this backend only issues
tokens for operators (see ``scripts/issue_admin_token.py``) and verifies the
bearer token on admin routes.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Optional

from jose import JWTError, jwt

from app.core.config import settings
from app.schemas.auth import TokenPayload

logger = logging.getLogger(__name__)

ADMIN_TOKEN_TYPE = "admin"


class InvalidTokenError(Exception):
    """Raised when a token is malformed, expired, or not an admin token."""

    pass


def create_admin_token(subject: str, expires_minutes: Optional[int] = None) -> str:
    """Create a signed admin JWT.

    Args:
        subject: Who the token is for (recorded in ``sub``)
        expires_minutes: Lifetime; defaults to JWT_ADMIN_TOKEN_EXPIRE_MINUTES

    Returns:
        Encoded token string
    """
    now = datetime.now(UTC)
    minutes = expires_minutes or settings.JWT_ADMIN_TOKEN_EXPIRE_MINUTES

    payload = {
        "sub": subject,
        "type": ADMIN_TOKEN_TYPE,
        "exp": int((now + timedelta(minutes=minutes)).timestamp()),
        "iat": int(now.timestamp()),
    }

    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_admin_token(token: str) -> TokenPayload:
    """Decode and validate an admin JWT.

    Raises:
        InvalidTokenError: If the token is invalid, expired, or of another type
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        token_payload = TokenPayload(
            sub=payload["sub"],
            type=payload["type"],
            exp=payload["exp"],
            iat=payload["iat"],
        )
    except (JWTError, KeyError) as e:
        logger.warning(f"Token decode error: {e}")
        raise InvalidTokenError("Invalid or expired token")

    if token_payload.type != ADMIN_TOKEN_TYPE:
        raise InvalidTokenError("Not an admin token")

    return token_payload
