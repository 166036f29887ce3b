"""
auth/permissions.py -- Role check on top of validated session claims.

The gate takes Claims, and Claims only come out of auth.tokens.validate_token(),
so authorization cannot be evaluated for an unauthenticated caller. The HTTP
composition of the two steps lives in auth/dependencies.require_role().

Layer rule: no imports from api/, web/ or core/.
"""

from __future__ import annotations

from auth.errors import AuthorizationDenied
from auth.models import Claims, Role


def authorize(claims: Claims, required_role: Role) -> bool:
    """Return True iff the claims carry exactly the required role.

    Anything that is not a Role member (raw strings included) never matches;
    outside text must go through auth.models.parse_role() first.
    """
    if not isinstance(required_role, Role) or not isinstance(claims.role, Role):
        return False
    return claims.role is required_role


def enforce_role(claims: Claims, required_role: Role) -> None:
    """Raise AuthorizationDenied unless authorize() allows the claims."""
    if not authorize(claims, required_role):
        raise AuthorizationDenied(f"User {claims.username!r} lacks the required role")
