"""
auth/tokens.py -- Session token issuance and validation (JWT, HS256).

Security design decisions:
  JWT: python-jose with HS256. Tokens carry user_id, username, role, iat,
       exp (iat + 24h) and iss. There is no server-side session store and no
       revocation list: a correctly signed, unexpired token is trusted for its
       whole lifetime.

  Algorithm pinning: the header alg is read and compared against HS256
       BEFORE any signature check. "none", RS256 (key-confusion) and other HMAC
       sizes are all rejected as SignatureInvalid.

  Staged validation: each stage raises its own TokenError subclass, so the
       failure kind is known from where it happened rather than from the
       library's message text:
         1. structure (jws header/payload parse)   -> TokenMalformed
         2. algorithm pin                          -> SignatureInvalid
         3. MAC (jws.verify)                       -> SignatureInvalid
         4. nbf                                    -> TokenNotYetValid
         5. exp / iss / required claims (jwt.decode)-> TokenExpired / TokenInvalid
         6. claim shapes (ids, role enum)          -> TokenInvalid

  Signing secret: JWT_SECRET_KEY, loaded once through init_signing_secret()
       and immutable afterwards. The first write is guarded by a lock; reads
       after that are lock-free. A second initialisation with a different value
       raises ConfigError instead of silently rotating the key.

Layer rule: no imports from api/ or web/. Import from core/ is allowed.
"""

from __future__ import annotations

import json
import threading
from datetime import datetime, timedelta, timezone

from jose import jws, jwt
from jose.exceptions import ExpiredSignatureError, JWSError, JWTError
from pydantic import ValidationError

from auth.errors import (
    ConfigError,
    SignatureInvalid,
    TokenExpired,
    TokenInvalid,
    TokenMalformed,
    TokenNotYetValid,
)
from auth.models import Claims, Role, parse_role
from core.config import get_settings

_ALGORITHM = "HS256"
TOKEN_ISSUER = "yamerito-mvp"
TOKEN_LIFETIME = timedelta(hours=24)

_REQUIRED_CLAIMS = ("user_id", "username", "role")
_DECODE_OPTIONS = {
    "require_exp": True,
    "require_iat": True,
    "require_iss": True,
    # nbf is checked in _check_not_before so it gets its own error kind.
    "verify_nbf": False,
}

# ---------------------------------------------------------------------------
# Signing secret -- write once, read many
# ---------------------------------------------------------------------------

_secret_lock = threading.Lock()
_signing_secret: bytes | None = None


def init_signing_secret(secret: str | None = None) -> bytes:
    """Load the process-wide signing secret exactly once and return it.

    With no argument the value comes from Settings.jwt_secret_key
    (JWT_SECRET_KEY). Call at startup; issue_token() and validate_token()
    also call it lazily.

    Raises ConfigError if no secret is configured, if the configured one is
    too short, or if a different secret is offered after initialisation.
    """
    global _signing_secret
    current = _signing_secret
    if current is not None:
        if secret is not None and secret.encode("utf-8") != current:
            raise ConfigError("Signing secret is already initialised and cannot be replaced.")
        return current

    with _secret_lock:
        if _signing_secret is None:
            if secret is None:
                try:
                    secret = get_settings().jwt_secret_key
                except ValidationError as exc:
                    raise ConfigError(f"Invalid configuration: {exc}") from exc
            if not secret:
                raise ConfigError("JWT_SECRET_KEY is not set in the environment.")
            if len(secret) < 32:
                raise ConfigError("JWT_SECRET_KEY must be at least 32 characters.")
            _signing_secret = secret.encode("utf-8")
        elif secret is not None and secret.encode("utf-8") != _signing_secret:
            raise ConfigError("Signing secret is already initialised and cannot be replaced.")
        return _signing_secret


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Issue
# ---------------------------------------------------------------------------


def issue_token(user_id: int, username: str, role: Role) -> str:
    """Sign and return a compact JWT for a freshly authenticated user.

    iat is truncated to whole seconds (JWT NumericDate) so that the decoded
    exp - iat is exactly TOKEN_LIFETIME.
    """
    secret = init_signing_secret()
    issued_at = _now().replace(microsecond=0)
    payload = {
        "sub": str(user_id),
        "user_id": user_id,
        "username": username,
        "role": Role(role).value,
        "iat": issued_at,
        "exp": issued_at + TOKEN_LIFETIME,
        "iss": TOKEN_ISSUER,
    }
    return jwt.encode(payload, secret, algorithm=_ALGORITHM)


# ---------------------------------------------------------------------------
# Validate
# ---------------------------------------------------------------------------


def _check_not_before(unverified: dict) -> None:
    nbf = unverified.get("nbf")
    if nbf is None:
        return
    if not isinstance(nbf, (int, float)):
        raise TokenInvalid("nbf claim is not a NumericDate")
    if _now().timestamp() < nbf:
        raise TokenNotYetValid("Token is not valid yet")


def _claims_from_payload(payload: dict) -> Claims:
    missing = [k for k in _REQUIRED_CLAIMS if k not in payload]
    if missing:
        raise TokenInvalid(f"Token is missing claims: {', '.join(missing)}")
    user_id = payload["user_id"]
    username = payload["username"]
    if not isinstance(user_id, int) or isinstance(user_id, bool) or not isinstance(username, str):
        raise TokenInvalid("Token identity claims have the wrong type")
    try:
        role = parse_role(payload["role"])
    except ValueError as exc:
        raise TokenInvalid("Token carries an unknown role") from exc
    try:
        issued_at = datetime.fromtimestamp(payload["iat"], tz=timezone.utc)
        expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
    except (OverflowError, OSError, ValueError, TypeError) as exc:
        raise TokenInvalid("Token timestamps are out of range") from exc
    return Claims(
        user_id=user_id,
        username=username,
        role=role,
        issued_at=issued_at,
        expires_at=expires_at,
        issuer=payload["iss"],
    )


def validate_token(token: str) -> Claims:
    """Verify a compact JWT and return its Claims.

    Raises one of TokenMalformed, SignatureInvalid, TokenNotYetValid,
    TokenExpired or TokenInvalid (all TokenError). ConfigError if the
    signing secret is unavailable.
    """
    secret = init_signing_secret()

    # 1. Structure
    try:
        header = jws.get_unverified_header(token)
        unverified = json.loads(jws.get_unverified_claims(token))
    except (JWSError, JWTError, ValueError, TypeError, AttributeError) as exc:
        raise TokenMalformed("Token is not a well-formed JWS") from exc
    if not isinstance(unverified, dict):
        raise TokenMalformed("Token payload is not a JSON object")

    # 2. Algorithm pin
    if header.get("alg") != _ALGORITHM:
        raise SignatureInvalid(f"Unexpected signing algorithm: {header.get('alg')!r}")

    # 3. MAC. Structure and algorithm are already known to be good here, so
    # any JWSError is a signature mismatch.
    try:
        jws.verify(token, secret, algorithms=[_ALGORITHM])
    except JWSError as exc:
        raise SignatureInvalid("Token signature does not match") from exc

    # 4. Not-before
    _check_not_before(unverified)

    # 5. Registered claims
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[_ALGORITHM],
            issuer=TOKEN_ISSUER,
            options=_DECODE_OPTIONS,
        )
    except ExpiredSignatureError as exc:
        raise TokenExpired("Token has expired") from exc
    except JWTError as exc:
        raise TokenInvalid("Token claims are invalid") from exc

    # 6. Private claims
    return _claims_from_payload(payload)
