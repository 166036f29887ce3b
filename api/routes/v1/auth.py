"""
api/routes/v1/auth.py -- Login and session identity endpoints.

Routes:
  POST /api/v1/auth/login   -- password login; returns a bearer JWT
  POST /api/v1/users/login  -- same handler, path used by the SPA login form
  GET  /api/v1/me           -- identity from the presented token (requires auth)

Security:
  POST /login is rate-limited per client IP (Settings.login_rate_limit).
  authenticate_user() provides timing equalization -- use it, never inline.
  Wrong username and wrong password produce the same 401 body.
  Cache-Control: no-store on every login response.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import LoginRequest, LoginResponse, MeResponse, UserSummary
from auth.dependencies import get_current_claims
from auth.models import Claims
from auth.passwords import authenticate_user
from auth.store import UserStore
from auth.tokens import TOKEN_LIFETIME, issue_token
from core.config import get_settings

logger = logging.getLogger("yamerito.api")

# Auth policy:
# - POST /api/v1/auth/login:   public -- login endpoint must be unauthenticated
# - POST /api/v1/users/login:  public -- alias of the above
# - GET  /api/v1/me:           requires a valid bearer token (get_current_claims)
router = APIRouter()


def _login_rate_limit() -> str:
    return get_settings().login_rate_limit


def _no_store(resp: JSONResponse) -> JSONResponse:
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit(_login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=LoginResponse)
@router.post("/users/login", response_model=LoginResponse, include_in_schema=False)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password; return a session token.

    Sync def on purpose: the Argon2id verify runs in FastAPI's threadpool
    instead of blocking the event loop.
    """
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.username, body.password)
    if user is None:
        return _no_store(
            JSONResponse(
                status_code=401,
                content={"error": {"code": "bad_credentials", "message": "Invalid username or password."}},
            )
        )

    token = issue_token(user.id, user.username, user.role)
    logger.info("Login succeeded for user id=%s", user.id)
    payload = LoginResponse(
        token=token,
        expires_in=int(TOKEN_LIFETIME.total_seconds()),
        user=UserSummary(id=user.id, username=user.username, role=user.role),
    )
    return _no_store(JSONResponse(status_code=200, content=payload.model_dump(mode="json")))


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/me", response_model=MeResponse)
async def me(claims: Claims = Depends(get_current_claims)) -> MeResponse:
    """Return identity information carried by the caller's token.

    No database lookup: sessions are stateless, so this reflects the token
    as issued.
    """
    return MeResponse(
        user_id=claims.user_id,
        username=claims.username,
        role=claims.role,
        expires_at=claims.expires_at,
    )
