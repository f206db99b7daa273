"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Protected routes call get_current_claims(), which reads the
Authorization: Bearer <token> header and verifies it with the shared
AuthService on app.state. TokenExpired and TokenInvalid propagate unchanged
so the API exception handler can log and report each under its own code.

Layer rule: may import from fastapi because this module is part of the
FastAPI dependency injection system. No imports from api/ or core/.
"""

from __future__ import annotations

from fastapi import Request

from auth.errors import TokenInvalid
from auth.models import Claims
from auth.service import AuthService


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def get_current_claims(request: Request) -> Claims:
    """Require a valid session token.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(claims: Claims = Depends(get_current_claims)): ...

    Raises TokenInvalid when no Bearer token is present, otherwise whatever
    AuthService.verify_token() raises.
    """
    token = _bearer_token(request)
    if token is None:
        raise TokenInvalid("Authentication required.")
    service: AuthService = request.app.state.auth_service
    return service.verify_token(token)
