"""
api/routes/v1/auth.py -- Registration, login, and token-holder REST endpoints.

Routes:
  POST /api/v1/auth/register   -- create an identity; 201 with public fields
  POST /api/v1/auth/login      -- verify credentials; 200 with a session token
  GET  /api/v1/auth/me         -- current identity (requires a Bearer token)

Security:
  [H2] POST /login is rate-limited per IP (LOGIN_RATE_LIMIT, default 10/minute).
  [C2] Unknown email and wrong password produce the identical 401 body.
  [M5] Cache-Control: no-store on login responses.

Threading:
  register and login are plain `def` handlers. FastAPI runs them in its
  worker threadpool, so bcrypt's CPU time does not stall the event loop or
  unrelated requests.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import (
    ErrorDetail,
    ErrorResponse,
    IdentityResponse,
    LoginRequest,
    MeResponse,
    RegisterRequest,
    TokenResponse,
)
from auth.dependencies import get_current_claims
from auth.errors import AuthenticationFailed
from auth.models import Claims
from auth.service import AuthService
from core.config import get_settings

# Auth policy:
# - POST /api/v1/auth/register: public (can be disabled with REGISTRATION_ENABLED=false)
# - POST /api/v1/auth/login:    public -- login endpoint must be unauthenticated
# - GET  /api/v1/auth/me:       requires a valid session token (get_current_claims)
router = APIRouter()


def _login_rate_limit() -> str:
    return get_settings().login_rate_limit


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=IdentityResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> IdentityResponse:
    """Register a new identity and return its public fields.

    AuthError subclasses (InvalidInput, EmailAlreadyRegistered, ...) propagate
    to the exception handler in api/main.py, which maps them to 4xx/5xx.
    """
    if not get_settings().registration_enabled:
        raise HTTPException(
            status_code=403,
            detail={"code": "registration_disabled", "message": "Self-registration is disabled."},
        )
    service: AuthService = request.app.state.auth_service
    identity = service.register(body.user_id, body.name, body.email, body.password)
    return IdentityResponse.from_public(identity)


@limiter.limit(_login_rate_limit)  # [H2] must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=TokenResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return a signed session token.

    The 401 body is built here rather than in the generic handler so the
    no-store header is set on failures as well as successes [M5].
    """
    service: AuthService = request.app.state.auth_service
    try:
        token = service.login(body.email, body.password)
    except AuthenticationFailed as exc:
        resp = JSONResponse(
            status_code=401,
            content=ErrorResponse(error=ErrorDetail(code=exc.code, message=exc.message)).model_dump(),
        )
        resp.headers["Cache-Control"] = "no-store"  # [M5]
        resp.headers["WWW-Authenticate"] = "Bearer"
        return resp

    resp = JSONResponse(
        status_code=200,
        content=TokenResponse(
            token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=service.config.token_expire_seconds,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=MeResponse)
def me(request: Request, claims: Claims = Depends(get_current_claims)) -> MeResponse:
    """Return identity information for the holder of the presented token."""
    service: AuthService = request.app.state.auth_service
    identity = service.store.get_by_user_id(claims.user_id)
    return MeResponse.build(claims, identity)
