"""Authentication schemas."""

from pydantic import BaseModel, Field


class TokenPayload(BaseModel):
    """Schema for JWT token payload (internal use)."""

    sub: str = Field(..., description="Subject (admin identity)")
    type: str = Field(..., description="Token type")
    exp: int = Field(..., description="Expiration timestamp")
    iat: int = Field(..., description="Issued at timestamp")
