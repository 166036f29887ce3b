"""
tests/test_admin_users.py -- Integration tests for admin user management routes.

Covers:
  - 401 without a token, 403 for an EMPLOYEE token on every admin route
  - create: 201, role normalization/default, profile, 409 on duplicates,
    422 on invalid input, created user can log in
  - read: list and detail, 404 for unknown/deleted ids
  - update: partial fields, password re-hash, profile upsert, no-op, 409
  - delete: 204 soft delete, self-deletion and self-demotion blocked

Fixtures used (from conftest.py):
  - api_client: (client, token, uid) -- the only admin is "testadmin"
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from auth.models import Role
from auth.tokens import issue_token

ApiClient = tuple[TestClient, str, int]

USERS = "/api/v1/admin/users"


def _headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _create(client: TestClient, token: str, **body) -> dict:
    body.setdefault("password", "password-123")
    resp = client.post(USERS, json=body, headers=_headers(token))
    assert resp.status_code == 201, f"Expected 201, got {resp.status_code}: {resp.text}"
    return resp.json()


def _login(client: TestClient, username: str, password: str) -> int:
    return client.post("/api/v1/auth/login", json={"username": username, "password": password}).status_code


class TestAccessControl:
    @pytest.mark.parametrize(
        ("method", "path"),
        [("get", USERS), ("post", USERS), ("get", f"{USERS}/1"), ("put", f"{USERS}/1"), ("delete", f"{USERS}/1")],
    )
    def test_unauthenticated(self, api_client: ApiClient, method: str, path: str) -> None:
        client, _token, _uid = api_client
        resp = client.request(method, path, json={} if method in ("post", "put") else None)
        assert resp.status_code == 401, f"Expected 401, got {resp.status_code}"

    @pytest.mark.parametrize(
        ("method", "path"),
        [("get", USERS), ("post", USERS), ("get", f"{USERS}/1"), ("put", f"{USERS}/1"), ("delete", f"{USERS}/1")],
    )
    def test_employee_forbidden(self, api_client: ApiClient, method: str, path: str) -> None:
        client, _token, _uid = api_client
        employee = issue_token(9999, "worker", Role.EMPLOYEE)
        resp = client.request(
            method, path, json={} if method in ("post", "put") else None, headers=_headers(employee)
        )
        assert resp.status_code == 403, f"Expected 403, got {resp.status_code}"
        assert resp.json()["error"]["code"] == "forbidden"


class TestCreate:
    def test_create_employee_with_profile(self, api_client: ApiClient) -> None:
        client, token, _uid = api_client
        data = _create(
            client,
            token,
            username="maria",
            password="maria-pass-1",
            role="employee",
            employee_details={
                "name": "Maria",
                "last_name": "Perez",
                "email": "maria@example.com",
                "phone_number": "555-0101",
                "position": "Analyst",
            },
        )
        assert data["username"] == "maria"
        assert data["role"] == "EMPLOYEE"
        details = data["employee_details"]
        assert details["user_id"] == data["id"]
        assert details["email"] == "maria@example.com"
        assert "hashed_password" not in data
        assert _login(client, "maria", "maria-pass-1") == 200

    def test_role_defaults_to_employee(self, api_client: ApiClient) -> None:
        client, token, _uid = api_client
        assert _create(client, token, username="defaultrole")["role"] == "EMPLOYEE"
        assert _create(client, token, username="blankrole", role="")["role"] == "EMPLOYEE"

    def test_role_is_normalized(self, api_client: ApiClient) -> None:
        client, token, _uid = api_client
        assert _create(client, token, username="second-admin", role="  Admin ")["role"] == "ADMIN"

    def test_unknown_role_rejected(self, api_client: ApiClient) -> None:
        client, token, _uid = api_client
        resp = client.post(
            USERS, json={"username": "hacker", "password": "password-123", "role": "SUPERUSER"}, headers=_headers(token)
        )
        assert resp.status_code == 422

    def test_duplicate_username(self, api_client: ApiClient) -> None:
        client, token, _uid = api_client
        _create(client, token, username="dupe")
        resp = client.post(USERS, json={"username": "dupe", "password": "password-123"}, headers=_headers(token))
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "conflict"

    def test_duplicate_email(self, api_client: ApiClient) -> None:
        client, token, _uid = api_client
        _create(client, token, username="mail-one", employee_details={"name": "A", "email": "shared@example.com"})
        resp = client.post(
            USERS,
            json={"username": "mail-two", "password": "password-123", "employee_details": {"email": "shared@example.com"}},
            headers=_headers(token),
        )
        assert resp.status_code == 409
        listed = client.get(USERS, headers=_headers(token)).json()
        assert "mail-two" not in [u["username"] for u in listed], "Failed create must not leave a user behind"

    @pytest.mark.parametrize(
        "body",
        [
            {"username": "ab", "password": "password-123"},
            {"username": "x" * 51, "password": "password-123"},
            {"username": "shortpw", "password": "short"},
            {"username": "longpw", "password": "p" * 73},
            {"username": "bademail", "password": "password-123", "employee_details": {"email": "not-an-email"}},
            {"username": "longphone", "password": "password-123", "employee_details": {"phone_number": "1" * 21}},
        ],
    )
    def test_invalid_input(self, api_client: ApiClient, body: dict) -> None:
        client, token, _uid = api_client
        resp = client.post(USERS, json=body, headers=_headers(token))
        assert resp.status_code == 422, f"Expected 422, got {resp.status_code}: {resp.text}"


class TestRead:
    def test_list_includes_admin(self, api_client: ApiClient) -> None:
        client, token, uid = api_client
        resp = client.get(USERS, headers=_headers(token))
        assert resp.status_code == 200
        users = resp.json()
        assert any(u["id"] == uid and u["role"] == "ADMIN" for u in users)
        assert all("hashed_password" not in u for u in users)

    def test_get_one(self, api_client: ApiClient) -> None:
        client, token, _uid = api_client
        created = _create(client, token, username="readme")
        resp = client.get(f"{USERS}/{created['id']}", headers=_headers(token))
        assert resp.status_code == 200
        assert resp.json()["username"] == "readme"

    def test_get_unknown(self, api_client: ApiClient) -> None:
        client, token, _uid = api_client
        resp = client.get(f"{USERS}/987654", headers=_headers(token))
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"


class TestUpdate:
    def test_partial_update(self, api_client: ApiClient) -> None:
        client, token, _uid = api_client
        created = _create(client, token, username="partial", employee_details={"name": "Old", "last_name": "Name"})
        resp = client.put(
            f"{USERS}/{created['id']}",
            json={"employee_details": {"name": "New"}},
            headers=_headers(token),
        )
        assert resp.status_code == 200, resp.text
        details = resp.json()["employee_details"]
        assert details["name"] == "New"
        assert details["last_name"] == "Name"

    def test_profile_created_when_missing(self, api_client: ApiClient) -> None:
        client, token, _uid = api_client
        created = _create(client, token, username="noprofile")
        assert created["employee_details"] is None
        resp = client.put(
            f"{USERS}/{created['id']}",
            json={"employee_details": {"position": "Intern"}},
            headers=_headers(token),
        )
        assert resp.json()["employee_details"]["position"] == "Intern"

    def test_password_change(self, api_client: ApiClient) -> None:
        client, token, _uid = api_client
        created = _create(client, token, username="rotate", password="first-password")
        resp = client.put(f"{USERS}/{created['id']}", json={"password": "second-password"}, headers=_headers(token))
        assert resp.status_code == 200
        assert _login(client, "rotate", "first-password") == 401
        assert _login(client, "rotate", "second-password") == 200

    def test_blank_password_leaves_it_unchanged(self, api_client: ApiClient) -> None:
        client, token, _uid = api_client
        created = _create(client, token, username="keeppw", password="keep-password")
        resp = client.put(
            f"{USERS}/{created['id']}", json={"password": "", "username": "keeppw2"}, headers=_headers(token)
        )
        assert resp.status_code == 200
        assert _login(client, "keeppw2", "keep-password") == 200

    def test_promote_and_demote(self, api_client: ApiClient) -> None:
        client, token, _uid = api_client
        created = _create(client, token, username="climber")
        promoted = client.put(f"{USERS}/{created['id']}", json={"role": "admin"}, headers=_headers(token))
        assert promoted.json()["role"] == "ADMIN"
        demoted = client.put(f"{USERS}/{created['id']}", json={"role": "EMPLOYEE"}, headers=_headers(token))
        assert demoted.status_code == 200
        assert demoted.json()["role"] == "EMPLOYEE"

    def test_no_changes_returns_current(self, api_client: ApiClient) -> None:
        client, token, _uid = api_client
        created = _create(client, token, username="static")
        resp = client.put(f"{USERS}/{created['id']}", json={}, headers=_headers(token))
        assert resp.status_code == 200
        assert resp.json() == created

    def test_username_conflict(self, api_client: ApiClient) -> None:
        client, token, _uid = api_client
        _create(client, token, username="taken")
        other = _create(client, token, username="wants-taken")
        resp = client.put(f"{USERS}/{other['id']}", json={"username": "taken"}, headers=_headers(token))
        assert resp.status_code == 409

    def test_unknown_user(self, api_client: ApiClient) -> None:
        client, token, _uid = api_client
        resp = client.put(f"{USERS}/987654", json={"username": "ghost"}, headers=_headers(token))
        assert resp.status_code == 404

    def test_self_demotion_blocked(self, api_client: ApiClient) -> None:
        client, token, uid = api_client
        resp = client.put(f"{USERS}/{uid}", json={"role": "EMPLOYEE"}, headers=_headers(token))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "self_demotion"


class TestDelete:
    def test_soft_delete(self, api_client: ApiClient) -> None:
        client, token, _uid = api_client
        created = _create(client, token, username="leaving", password="leaving-pass")
        resp = client.delete(f"{USERS}/{created['id']}", headers=_headers(token))
        assert resp.status_code == 204
        assert client.get(f"{USERS}/{created['id']}", headers=_headers(token)).status_code == 404
        assert _login(client, "leaving", "leaving-pass") == 401
        again = client.delete(f"{USERS}/{created['id']}", headers=_headers(token))
        assert again.status_code == 404

    def test_self_deletion_blocked(self, api_client: ApiClient) -> None:
        client, token, uid = api_client
        resp = client.delete(f"{USERS}/{uid}", headers=_headers(token))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "self_deletion"
