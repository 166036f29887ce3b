"""
tests/test_permissions.py -- Unit tests for role parsing and the role gate.

Covers:
  - parse_role(): case/whitespace normalization, rejection of unknown values
  - authorize(): exact-match truth table, no hierarchy, non-Role inputs denied
  - enforce_role(): raises AuthorizationDenied with the right kind
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from auth.errors import AuthErrorKind, AuthorizationDenied
from auth.models import Claims, Role, parse_role
from auth.permissions import authorize, enforce_role


def _claims(role) -> Claims:
    now = datetime.now(timezone.utc)
    return Claims(
        user_id=1,
        username="ana",
        role=role,
        issued_at=now,
        expires_at=now + timedelta(hours=24),
        issuer="yamerito-mvp",
    )


class TestParseRole:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("ADMIN", Role.ADMIN),
            ("admin", Role.ADMIN),
            ("  Admin ", Role.ADMIN),
            ("EMPLOYEE", Role.EMPLOYEE),
            ("employee", Role.EMPLOYEE),
            ("\tEmployee\n", Role.EMPLOYEE),
        ],
    )
    def test_accepts_known_roles(self, raw: str, expected: Role) -> None:
        assert parse_role(raw) is expected

    @pytest.mark.parametrize("raw", ["", "   ", "superuser", "ADMINS", "ADM IN", "root"])
    def test_rejects_unknown_roles(self, raw: str) -> None:
        with pytest.raises(ValueError):
            parse_role(raw)

    @pytest.mark.parametrize("raw", [None, 1, Role.ADMIN.value.encode()])
    def test_rejects_non_strings(self, raw) -> None:
        with pytest.raises(ValueError):
            parse_role(raw)


class TestAuthorize:
    @pytest.mark.parametrize(
        ("held", "required", "allowed"),
        [
            (Role.ADMIN, Role.ADMIN, True),
            (Role.EMPLOYEE, Role.EMPLOYEE, True),
            (Role.ADMIN, Role.EMPLOYEE, False),
            (Role.EMPLOYEE, Role.ADMIN, False),
        ],
    )
    def test_exact_match_only(self, held: Role, required: Role, allowed: bool) -> None:
        assert authorize(_claims(held), required) is allowed

    def test_raw_string_requirement_denied(self) -> None:
        assert authorize(_claims(Role.ADMIN), "ADMIN") is False  # type: ignore[arg-type]

    def test_raw_string_claim_denied(self) -> None:
        assert authorize(_claims("ADMIN"), Role.ADMIN) is False


class TestEnforceRole:
    def test_allows_matching_role(self) -> None:
        enforce_role(_claims(Role.ADMIN), Role.ADMIN)

    def test_denies_other_role(self) -> None:
        with pytest.raises(AuthorizationDenied) as excinfo:
            enforce_role(_claims(Role.EMPLOYEE), Role.ADMIN)
        assert excinfo.value.kind is AuthErrorKind.AUTHORIZATION_DENIED
