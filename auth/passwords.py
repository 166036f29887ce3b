"""
auth/passwords.py -- Argon2id password hashing, verification and login checks.

Security design decisions:
  KDF: argon2-cffi's low-level hash_secret_raw() with Type.ID. We drive the
       raw KDF (rather than argon2.PasswordHasher) because the stored format
       and its parsing are owned by auth/credentials.py, so the verifier can
       honour whatever cost parameters a credential was created with.

  Comparison: hmac.compare_digest. Time depends only on the buffer length,
       never on where two digests first differ.

  Cost: 64 MiB / 3 passes / 2 lanes by default. A hash or verify blocks the
       calling thread for tens to hundreds of milliseconds; that cost is the
       point. FastAPI routes that call into this module are plain `def` so
       Starlette runs them in its thread pool instead of on the event loop.

  Secrets: nothing in this module logs a password, salt or digest.

Layer rule: no imports from api/, web/ or core/.
"""

from __future__ import annotations

import hmac
import logging
import secrets
from typing import TYPE_CHECKING

from argon2.exceptions import HashingError
from argon2.low_level import Type, hash_secret_raw

from auth import credentials
from auth.credentials import ARGON2_VERSION, Argon2Params
from auth.errors import FormatError

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("yamerito.auth")

DEFAULT_PARAMS = Argon2Params()


def _derive(password: str, salt: bytes, params: Argon2Params) -> bytes:
    return hash_secret_raw(
        secret=password.encode("utf-8"),
        salt=salt,
        time_cost=params.time_cost,
        memory_cost=params.memory_cost,
        parallelism=params.parallelism,
        hash_len=params.hash_len,
        type=Type.ID,
        version=ARGON2_VERSION,
    )


def hash_password(password: str, params: Argon2Params | None = None) -> str:
    """Return the encoded Argon2id credential for a plaintext password.

    A fresh salt is drawn from the OS CSPRNG for every call. Entropy failures
    propagate unchanged -- there is no retry.
    """
    params = params or DEFAULT_PARAMS
    salt = secrets.token_bytes(params.salt_len)
    digest = _derive(password, salt, params)
    return credentials.encode(params, salt, digest)


def verify_password(password: str, encoded: str) -> bool:
    """Return True if the plaintext matches the stored credential.

    Re-derives with the parameters decoded from `encoded`, not DEFAULT_PARAMS.
    Raises FormatError when the credential cannot be decoded, or when its
    parameters are ones the KDF refuses (e.g. a salt shorter than 8 bytes).
    Callers must treat FormatError as "cannot authenticate".
    """
    params, salt, expected = credentials.decode(encoded)
    try:
        candidate = _derive(password, salt, params)
    except (HashingError, OverflowError) as exc:
        raise FormatError("Invalid credential: parameters rejected by the KDF") from exc
    return hmac.compare_digest(candidate, expected)


# Timing equalization dummy credential.
# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones. authenticate_user() verifies against it when
# the username does not exist, so response time does not reveal which
# usernames are registered.
_DUMMY_HASH: str = hash_password("yamerito_timing_dummy")


def authenticate_user(store: UserStore, username: str, password: str) -> User | None:
    """Authenticate a username/password login with timing equalization.

    Always runs the KDF whether or not the user exists:
    - Unknown username: verify against _DUMMY_HASH (same cost as a real check)
    - Wrong password: verify against the real credential (same cost)

    A stored credential that fails to decode is logged and treated as a
    failed login, never as a match.

    Returns the User on success, None on any failure.
    """
    user = store.get_by_username(username)
    if user is None or not user.hashed_password:
        # Equalize timing -- do NOT return early before running the KDF.
        verify_password(password, _DUMMY_HASH)
        logger.info("Login attempt for unknown user %r", username)
        return None
    try:
        matched = verify_password(password, user.hashed_password)
    except FormatError as exc:
        logger.error("Stored credential for user %r is unusable: %s", username, exc)
        return None
    if not matched:
        logger.info("Wrong password for user %r", username)
        return None
    return user
