"""
auth/dependencies.py -- FastAPI Depends() helpers for session tokens.

Two token sources are checked in priority order:
  1. JWT cookie ("access_token") -- set by POST /auth/signin.
  2. Authorization: Bearer <token> header -- API clients.

Both converge on SessionClaims after TokenService.verify(). When both are
present and the cookie fails to verify, the header is tried next. The claims
carry the role at issuance; routes that need the live role call
AuthService.check_role() instead.

get_current_claims() raises HTTP 401 when no valid token is presented.
require_admin() wraps it and raises HTTP 403 when the token's role is not admin.

Layer rule: no imports from api/ or core/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.errors import TokenExpired, TokenInvalid
from auth.models import Role, SessionClaims
from auth.tokens import TokenService


def _candidate_tokens(request: Request) -> list[str]:
    """Return presented tokens in priority order: cookie first, then Bearer header."""
    candidates: list[str] = []
    cookie = request.cookies.get("access_token")
    if cookie:
        candidates.append(cookie)
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        bearer = auth_header[7:].strip()
        if bearer and bearer not in candidates:
            candidates.append(bearer)
    return candidates


def get_current_claims(request: Request) -> SessionClaims:
    """Require a valid session token. Raises HTTP 401 otherwise.

    A stale cookie does not mask a valid Bearer header: each presented token
    is tried in order and the first failure is reported only if none verifies.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(claims: SessionClaims = Depends(get_current_claims)): ...
    """
    candidates = _candidate_tokens(request)
    if not candidates:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    tokens: TokenService = request.app.state.token_service
    failure: TokenInvalid | TokenExpired | None = None
    for token in candidates:
        try:
            return tokens.verify(token)
        except (TokenInvalid, TokenExpired) as exc:
            failure = failure or exc
    raise HTTPException(
        status_code=401,
        detail={"code": failure.code, "message": failure.message},
    ) from failure


def require_admin(request: Request) -> SessionClaims:
    """Require an admin session token. 401 if unauthenticated, 403 if not admin."""
    claims = get_current_claims(request)
    if claims.role is not Role.admin:
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "Admin access required."},
        )
    return claims
