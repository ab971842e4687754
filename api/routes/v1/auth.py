"""
api/routes/v1/auth.py -- Registration, sign-in and role REST endpoints.

Routes:
  POST /api/v1/auth/signup                -- register a "user" account
  POST /api/v1/auth/signin                -- credential check; returns token, sets cookie
  POST /api/v1/auth/logout                -- clears cookie; 200
  GET  /api/v1/auth/me                    -- identity from the presented token
  GET  /api/v1/auth/role                  -- live role of the token's subject
  GET  /api/v1/auth/users/{user_id}/role  -- role of any user (admin only)
  GET  /api/v1/auth/users                 -- list all users (admin only)

Handlers are plain `def`: bcrypt is CPU-bound and blocking, so FastAPI runs
them in its thread pool. AuthError exceptions raised by the service are
rendered by the handler registered in api/main.py.

Security:
  [H1] POST /signin is rate-limited per client IP (LOGIN_RATE_LIMIT).
  [H2] Unknown email and wrong password produce the same 401 body.
  [H3] Cache-Control: no-store on sign-in responses.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import (
    MeResponse,
    RoleResponse,
    SigninRequest,
    SigninResponse,
    SigninUser,
    SignupRequest,
    UserListResponse,
    UserResponse,
)
from auth.dependencies import get_current_claims, require_admin
from auth.models import SessionClaims
from auth.service import AuthService
from core.config import get_settings

_settings = get_settings()

# Auth policy:
# - POST /api/v1/auth/signup:               public (403 when self-registration is disabled)
# - POST /api/v1/auth/signin:               public, rate-limited
# - POST /api/v1/auth/logout:               public -- clearing a cookie needs no prior auth
# - GET  /api/v1/auth/me:                   requires auth (get_current_claims)
# - GET  /api/v1/auth/role:                 requires auth (get_current_claims)
# - GET  /api/v1/auth/users/{user_id}/role: requires admin (require_admin)
# - GET  /api/v1/auth/users:                requires admin (require_admin)
router = APIRouter()


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/signup", response_model=UserResponse, status_code=201)
def signup(request: Request, body: SignupRequest) -> UserResponse:
    """Register a new account. The role is always "user"."""
    if not _settings.self_registration_enabled:
        raise HTTPException(
            status_code=403,
            detail={"code": "registration_disabled", "message": "Self-registration is disabled."},
        )
    profile = _service(request).signup(body.name, body.email, body.password, body.confirm_password)
    return UserResponse.from_profile(profile)


@limiter.limit(_settings.login_rate_limit)  # [H1] must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/signin", response_model=SigninResponse)
def signin(request: Request, body: SigninRequest) -> JSONResponse:
    """Check email/password and issue a session token.

    The token is returned in the body for API clients and set as an httpOnly
    cookie for browsers. Both carry the same expiry.
    """
    result = _service(request).signin(body.email, body.password)
    resp = JSONResponse(
        status_code=200,
        content=SigninResponse(
            token=result.token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=result.expires_in,
            user=SigninUser(id=result.subject_id, role=result.role.value),
        ).model_dump(),
    )
    _set_auth_cookie(resp, result.token, result.expires_in)
    resp.headers["Cache-Control"] = "no-store"  # [H3]
    return resp


@router.post("/auth/logout")
def logout() -> JSONResponse:
    """Clear the session cookie. Tokens already handed out stay valid until they expire."""
    resp = JSONResponse(content={"message": "Logged out."})
    resp.delete_cookie("access_token")
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=MeResponse)
def me(claims: SessionClaims = Depends(get_current_claims)) -> MeResponse:
    """Return the identity embedded in the presented token."""
    return MeResponse(user_id=claims.subject_id, role=claims.role.value)


@router.get("/auth/role", response_model=RoleResponse)
def current_role(request: Request, claims: SessionClaims = Depends(get_current_claims)) -> RoleResponse:
    """Return the stored role of the token's subject (not the copy in the token)."""
    return RoleResponse(role=_service(request).check_role(claims.subject_id).value)


# ---------------------------------------------------------------------------
# Admin endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/users/{user_id}/role", response_model=RoleResponse)
def user_role(
    request: Request,
    user_id: str,
    claims: SessionClaims = Depends(require_admin),
) -> RoleResponse:
    """Return the role of user_id. 404 if no such user."""
    return RoleResponse(role=_service(request).check_role(user_id).value)


@router.get("/auth/users", response_model=UserListResponse)
def list_users(request: Request, claims: SessionClaims = Depends(require_admin)) -> UserListResponse:
    """List all user accounts. Admin only."""
    profiles = _service(request).list_users()
    return UserListResponse(users=[UserResponse.from_profile(p) for p in profiles])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _set_auth_cookie(response: JSONResponse, token: str, max_age: int) -> None:
    """Write the session token as an httpOnly cookie.

    samesite="lax" keeps the cookie off cross-site POSTs; secure follows
    SECURE_COOKIES; max_age matches the token expiry so both lapse together.
    """
    response.set_cookie(
        "access_token",
        value=token,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        max_age=max_age,
    )
