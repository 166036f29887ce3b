"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work; the only behaviour here is parse_role(), which is the single entry
point for turning outside text into a Role.

Layer rule: no imports from api/, web/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Closed set of user roles. Only equality is meaningful -- no ordering."""

    ADMIN = "ADMIN"
    EMPLOYEE = "EMPLOYEE"


def parse_role(value: str) -> Role:
    """Normalize (strip + uppercase) and validate a role string.

    Raises ValueError for anything outside the enumeration. There is no
    fallback value: an unknown role is never coerced into a real one.
    """
    if not isinstance(value, str):
        raise ValueError(f"Invalid role: {value!r}")
    normalized = value.strip().upper()
    for role in Role:
        if role.value == normalized:
            return role
    raise ValueError(f"Invalid role: {value!r}")


@dataclass
class EmployeeDetail:
    """Profile information attached 1:1 to a User.

    id is None before the record is written to the database.
    """

    user_id: int | None = None
    name: str = ""
    last_name: str = ""
    email: str | None = None  # unique when set
    phone_number: str = ""
    position: str = ""
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class User:
    """A login identity.

    hashed_password holds the encoded Argon2id credential
    ($argon2id$v=19$m=..,t=..,p=..$salt$digest) and is never returned by the API.
    """

    username: str
    role: Role
    hashed_password: str = ""
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None
    employee_details: EmployeeDetail | None = None


@dataclass(frozen=True)
class Claims:
    """Identity facts carried inside a validated session token.

    Immutable: a new login produces a new Claims value. expires_at is always
    issued_at + 24 hours for tokens issued by auth.tokens.issue_token().
    """

    user_id: int
    username: str
    role: Role
    issued_at: datetime
    expires_at: datetime
    issuer: str
