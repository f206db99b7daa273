"""
API request and response models for Gatekeeper REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request models only bound sizes. Content rules (empty
password, malformed email) are enforced by AuthService so the CLI and any
other caller get the same InvalidInput behaviour.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import Claims, Identity, PublicIdentity

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    user_id: str = Field(max_length=255)
    name: str = Field(max_length=255)
    email: str = Field(max_length=320)
    password: str = Field(max_length=255)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: str = Field(max_length=320)
    password: str = Field(max_length=255)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class IdentityResponse(BaseModel):
    """Public identity returned by registration. Never includes the password hash."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    name: str
    email: str

    @classmethod
    def from_public(cls, identity: PublicIdentity) -> "IdentityResponse":
        return cls(user_id=identity.user_id, name=identity.name, email=identity.email)


class TokenResponse(BaseModel):
    """Response for POST /api/v1/auth/login."""

    model_config = ConfigDict(frozen=True)

    token: str
    token_type: str = "bearer"
    expires_in: int


class MeResponse(BaseModel):
    """Response for GET /api/v1/auth/me."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    name: str
    email: str
    about_me: Optional[str] = None
    joined: Optional[str] = None
    is_active: bool = True
    expires_at: str

    @classmethod
    def build(cls, claims: Claims, identity: Optional[Identity]) -> "MeResponse":
        """Combine verified token claims with the stored bookkeeping fields, if any."""
        return cls(
            user_id=claims.user_id,
            name=claims.name,
            email=claims.email,
            about_me=identity.about_me if identity else None,
            joined=identity.joined if identity else None,
            is_active=identity.is_active if identity else True,
            expires_at=claims.expires_at.isoformat(),
        )


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
