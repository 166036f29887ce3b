"""
auth/errors.py -- Closed error taxonomy for the credential and session core.

Every exception carries an AuthErrorKind tag. Callers branch on the class or
on .kind, never on the message text, so rewording a message cannot change
control flow.

HTTP mapping (done in auth/dependencies.py and api/routes/, not here):
  FormatError          -> treated as a failed login (401 bad_credentials)
  ConfigError          -> fatal at startup; 500 if it ever reaches a request
  TokenError subclasses-> 401 with one generic message; kind is logged only
  AuthorizationDenied  -> 403
"""

from __future__ import annotations

from enum import Enum


class AuthErrorKind(str, Enum):
    FORMAT = "format"
    CONFIG = "config"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_NOT_YET_VALID = "token_not_yet_valid"
    SIGNATURE_INVALID = "signature_invalid"
    TOKEN_MALFORMED = "token_malformed"
    TOKEN_INVALID = "token_invalid"
    AUTHORIZATION_DENIED = "authorization_denied"


class AuthError(Exception):
    """Base class for every error raised by the auth core."""

    kind: AuthErrorKind


class FormatError(AuthError, ValueError):
    """A stored credential does not match the encoded Argon2id shape."""

    kind = AuthErrorKind.FORMAT


class ConfigError(AuthError, RuntimeError):
    """The signing secret is missing, too short, or being rotated mid-process."""

    kind = AuthErrorKind.CONFIG


class TokenError(AuthError):
    """A session token could not be accepted. Subclasses name the reason."""


class TokenExpired(TokenError):
    kind = AuthErrorKind.TOKEN_EXPIRED


class TokenNotYetValid(TokenError):
    kind = AuthErrorKind.TOKEN_NOT_YET_VALID


class SignatureInvalid(TokenError):
    """MAC mismatch, or a header naming any algorithm other than HS256."""

    kind = AuthErrorKind.SIGNATURE_INVALID


class TokenMalformed(TokenError):
    kind = AuthErrorKind.TOKEN_MALFORMED


class TokenInvalid(TokenError):
    """Catch-all for claim validation failures (issuer, missing keys, bad role)."""

    kind = AuthErrorKind.TOKEN_INVALID


class AuthorizationDenied(AuthError):
    """Valid identity, insufficient role."""

    kind = AuthErrorKind.AUTHORIZATION_DENIED
