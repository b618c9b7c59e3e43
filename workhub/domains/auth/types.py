"""Auth domain type definitions for type safety."""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class AuthJwtPayload(BaseModel):
    """Access token payload issued by the identity provider."""

    # Standard JWT claims
    sub: Optional[str] = Field(None, description="Subject (user ID)")
    iss: Optional[str] = Field(None, description="Token issuer")
    aud: Optional[str | list[str]] = Field(None, description="Token audience")
    exp: Optional[int] = Field(None, description="Expiration timestamp")
    iat: Optional[int] = Field(None, description="Issued at timestamp")

    # Provider-specific claims
    email: Optional[str] = Field(None, description="User email address")
    email_verified: Optional[bool] = Field(
        None, description="Whether email is verified"
    )
    role: Optional[Literal["authenticated", "anon", "service_role"]] = Field(
        None, description="Token role"
    )
    session_id: Optional[str] = Field(None, description="Session identifier")

    model_config = {"extra": "allow"}
