"""Tests for admin token handling.

Tests cover:
- Token creation and decoding
- Expiry and signature checks
- Rejection of non-admin tokens
"""

from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from app.core.config import settings
from app.services.auth_service import (
    ADMIN_TOKEN_TYPE,
    InvalidTokenError,
    create_admin_token,
    decode_admin_token,
)


def encode(payload, secret=None):
    return jwt.encode(payload, secret or settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


class TestAdminTokens:
    """Test admin JWT issue and verification."""

    def test_round_trip(self):
        """Test a freshly issued token decodes to its subject."""
        token = create_admin_token("ops@example.com")

        payload = decode_admin_token(token)

        assert payload.sub == "ops@example.com"
        assert payload.type == ADMIN_TOKEN_TYPE
        assert payload.exp > payload.iat

    def test_custom_lifetime(self):
        """Test the lifetime argument sets the expiry."""
        payload = decode_admin_token(create_admin_token("ops", expires_minutes=5))

        assert payload.exp - payload.iat == 5 * 60

    def test_expired_token(self):
        """Test expired tokens are refused."""
        now = datetime.now(UTC)
        token = encode(
            {
                "sub": "ops",
                "type": ADMIN_TOKEN_TYPE,
                "exp": int((now - timedelta(minutes=1)).timestamp()),
                "iat": int((now - timedelta(minutes=10)).timestamp()),
            }
        )

        with pytest.raises(InvalidTokenError):
            decode_admin_token(token)

    def test_wrong_signature(self):
        """Test tokens signed with another key are refused."""
        now = datetime.now(UTC)
        token = encode(
            {
                "sub": "ops",
                "type": ADMIN_TOKEN_TYPE,
                "exp": int((now + timedelta(minutes=10)).timestamp()),
                "iat": int(now.timestamp()),
            },
            secret="some-other-secret",
        )

        with pytest.raises(InvalidTokenError):
            decode_admin_token(token)

    def test_other_token_type(self):
        """Test a valid token of another type does not grant admin access."""
        now = datetime.now(UTC)
        token = encode(
            {
                "sub": "ops",
                "type": "refresh",
                "exp": int((now + timedelta(minutes=10)).timestamp()),
                "iat": int(now.timestamp()),
            }
        )

        with pytest.raises(InvalidTokenError) as exc_info:
            decode_admin_token(token)

        assert "Not an admin token" in str(exc_info.value)

    def test_missing_claims(self):
        """Test tokens without the expected claims are refused."""
        token = encode({"sub": "ops", "exp": int(datetime.now(UTC).timestamp()) + 600})

        with pytest.raises(InvalidTokenError):
            decode_admin_token(token)

    def test_garbage(self):
        with pytest.raises(InvalidTokenError):
            decode_admin_token("not-a-jwt")
