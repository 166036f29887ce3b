"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

One auth method: an "Authorization: Bearer <token>" header carrying a JWT
issued by auth.tokens.issue_token(). The scheme name is matched
case-insensitively. Sessions are stateless -- a valid token is trusted without
a database lookup.

get_current_claims() authenticates and attaches the Claims to
request.state.claims. require_role() builds a dependency that depends on
get_current_claims(), so FastAPI always runs authentication first and the
role check can never be wired up on its own.

Every TokenError becomes the same 401 body. The specific kind goes to the log
only, so clients cannot use responses as an oracle.

Layer rule: no imports from web/.
  auth/dependencies.py may import from fastapi (for Depends/HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import Depends, HTTPException, Request

from auth.errors import AuthorizationDenied, TokenError
from auth.models import Claims, Role
from auth.permissions import enforce_role
from auth.tokens import validate_token

logger = logging.getLogger("yamerito.auth")

_BEARER = "bearer"


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={"code": "unauthorized", "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def _bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization", "")
    if not header:
        raise _unauthorized("Missing Authorization header.")
    parts = header.split()
    if len(parts) != 2 or parts[0].lower() != _BEARER:
        raise _unauthorized("Authorization header must use the Bearer scheme.")
    return parts[1]


def get_current_claims(request: Request) -> Claims:
    """Require a valid bearer token. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(claims: Claims = Depends(get_current_claims)): ...
    """
    token = _bearer_token(request)
    try:
        claims = validate_token(token)
    except TokenError as exc:
        logger.warning(
            "Rejected token on %s %s: %s (%s)",
            request.method,
            request.url.path,
            exc.kind.value,
            exc,
        )
        raise _unauthorized("Invalid or expired token.") from exc
    request.state.claims = claims
    return claims


def require_role(role: Role) -> Callable[..., Claims]:
    """Build a dependency that authenticates, then requires `role`.

    Raises HTTP 401 if unauthenticated, HTTP 403 if the role does not match.
    """

    def dependency(claims: Claims = Depends(get_current_claims)) -> Claims:
        try:
            enforce_role(claims, role)
        except AuthorizationDenied as exc:
            logger.warning(
                "Access denied for user %r (role %s); %s required",
                claims.username,
                claims.role.value,
                role.value,
            )
            raise HTTPException(
                status_code=403,
                detail={"code": "forbidden", "message": "You do not have permission to perform this action."},
            ) from exc
        return claims

    return dependency


require_admin = require_role(Role.ADMIN)
