"""
API request and response models for Yamerito REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.

Password fields are never whitespace-stripped: the KDF hashes exactly what the
user typed.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import EmployeeDetail, Role, User, parse_role

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def _blank_to_none(value):
    """Treat "" (what HTML forms send for untouched inputs) as "not provided"."""
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1, max_length=255)

    @field_validator("username")
    @classmethod
    def strip_username(cls, value: str) -> str:
        return value.strip()


class EmployeeDetailsInput(BaseModel):
    """Employee profile fields. Every field is optional; omitted fields are left untouched."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, max_length=100, pattern=EMAIL_PATTERN)
    phone_number: Optional[str] = Field(default=None, max_length=20)
    position: Optional[str] = Field(default=None, max_length=100)

    @field_validator("name", "last_name", "email", "phone_number", "position", mode="before")
    @classmethod
    def blank_fields(cls, value):
        return _blank_to_none(value)

    def provided_fields(self) -> dict:
        return self.model_dump(exclude_none=True)


class AdminCreateUser(BaseModel):
    """Request body for POST /api/v1/admin/users.

    role is normalized by parse_role() ("admin", " Employee " are accepted);
    an omitted or blank role means EMPLOYEE. Any other value is a 422.
    """

    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=8, max_length=72)
    role: Role = Role.EMPLOYEE
    employee_details: Optional[EmployeeDetailsInput] = None

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value):
        value = _blank_to_none(value)
        if value is None:
            return Role.EMPLOYEE
        return parse_role(value)


class AdminUpdateUser(BaseModel):
    """Request body for PUT /api/v1/admin/users/{id}. All fields optional.

    Blank strings mean "unchanged", matching what the admin form submits when
    the password input is left empty.
    """

    username: Optional[str] = Field(default=None, min_length=3, max_length=50)
    password: Optional[str] = Field(default=None, min_length=8, max_length=72)
    role: Optional[Role] = None
    employee_details: Optional[EmployeeDetailsInput] = None

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, value):
        value = _blank_to_none(value)
        return value.strip() if isinstance(value, str) else value

    @field_validator("password", mode="before")
    @classmethod
    def blank_password(cls, value):
        return _blank_to_none(value)

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value):
        value = _blank_to_none(value)
        if value is None:
            return None
        return parse_role(value)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class EmployeeDetailsResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    name: str
    last_name: str
    email: Optional[str]
    phone_number: str
    position: str
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, details: EmployeeDetail) -> "EmployeeDetailsResponse":
        return cls(
            id=details.id,
            user_id=details.user_id,
            name=details.name,
            last_name=details.last_name,
            email=details.email,
            phone_number=details.phone_number,
            position=details.position,
            created_at=details.created_at or "",
            updated_at=details.updated_at or "",
        )


class UserSummary(BaseModel):
    """Public identity of a user -- never includes the password hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    role: Role


class UserDetailResponse(UserSummary):
    """User plus employee profile, returned by the admin endpoints."""

    employee_details: Optional[EmployeeDetailsResponse] = None

    @classmethod
    def from_domain(cls, user: User) -> "UserDetailResponse":
        """Factory Method: the domain -> transport mapping lives beside the output model."""
        details = user.employee_details
        return cls(
            id=user.id,
            username=user.username,
            role=user.role,
            employee_details=EmployeeDetailsResponse.from_domain(details) if details is not None else None,
        )


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserSummary
    message: str = "Login successful."


class MeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = "Authenticated user information."
    user_id: int
    username: str
    role: Role
    expires_at: datetime


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
