"""
api/routes/v1/users.py -- Admin-only user and employee profile management.

Routes:
  POST   /api/v1/admin/users           -- create user (+ optional profile); 201
  GET    /api/v1/admin/users           -- list live users with profiles
  GET    /api/v1/admin/users/{id}      -- one user
  PUT    /api/v1/admin/users/{id}      -- partial update; password is re-hashed
  DELETE /api/v1/admin/users/{id}      -- soft delete; 204

Every route depends on require_admin, which authenticates first and then
checks the role: 401 without a valid token, 403 for non-admins.

Guards:
  An admin cannot delete or demote their own account.
  The last live admin cannot be deleted or demoted.
  Username and profile email collisions are 409.

Create and update are sync def so Argon2id hashing runs in the threadpool.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.exc import IntegrityError

from api.models import AdminCreateUser, AdminUpdateUser, UserDetailResponse
from auth.dependencies import require_admin
from auth.models import Claims, EmployeeDetail, Role, User
from auth.passwords import hash_password
from auth.store import UserStore

logger = logging.getLogger("yamerito.api")

# Auth policy: every route below requires admin (require_admin).
router = APIRouter()

_CONFLICT_MESSAGE = "A user with that username or email already exists."


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "not_found", "message": "User not found."})


def _bad_request(code: str, message: str) -> HTTPException:
    return HTTPException(status_code=400, detail={"code": code, "message": message})


def _load(user_store: UserStore, user_id: int) -> User:
    user = user_store.get_by_id(user_id)
    if user is None:
        raise _not_found()
    return user


# ---------------------------------------------------------------------------
# Create / read
# ---------------------------------------------------------------------------


@router.post("/admin/users", response_model=UserDetailResponse, status_code=201)
def create_user(
    request: Request,
    body: AdminCreateUser,
    admin: Claims = Depends(require_admin),
) -> UserDetailResponse:
    """Create a user account, optionally with its employee profile."""
    user_store: UserStore = request.app.state.user_store

    details = None
    if body.employee_details is not None:
        details = EmployeeDetail(**body.employee_details.provided_fields())

    new_user = User(
        username=body.username,
        role=body.role,
        hashed_password=hash_password(body.password),
        employee_details=details,
    )
    try:
        user_id = user_store.create_user(new_user)
    except IntegrityError as exc:
        raise HTTPException(status_code=409, detail={"code": "conflict", "message": _CONFLICT_MESSAGE}) from exc

    logger.info("Admin %r created user id=%s role=%s", admin.username, user_id, body.role.value)
    return UserDetailResponse.from_domain(_load(user_store, user_id))


@router.get("/admin/users", response_model=list[UserDetailResponse])
def list_users(request: Request, admin: Claims = Depends(require_admin)) -> list[UserDetailResponse]:
    user_store: UserStore = request.app.state.user_store
    return [UserDetailResponse.from_domain(u) for u in user_store.list_users()]


@router.get("/admin/users/{user_id}", response_model=UserDetailResponse)
def get_user(request: Request, user_id: int, admin: Claims = Depends(require_admin)) -> UserDetailResponse:
    user_store: UserStore = request.app.state.user_store
    return UserDetailResponse.from_domain(_load(user_store, user_id))


# ---------------------------------------------------------------------------
# Update / delete
# ---------------------------------------------------------------------------


@router.put("/admin/users/{user_id}", response_model=UserDetailResponse)
def update_user(
    request: Request,
    user_id: int,
    body: AdminUpdateUser,
    admin: Claims = Depends(require_admin),
) -> UserDetailResponse:
    """Apply a partial update. Fields left out (or blank) are unchanged.

    A body that changes nothing returns the current record.
    """
    user_store: UserStore = request.app.state.user_store
    target = _load(user_store, user_id)

    user_fields: dict = {}
    if body.username is not None and body.username != target.username:
        user_fields["username"] = body.username
    if body.role is not None and body.role is not target.role:
        if target.role is Role.ADMIN:
            if target.id == admin.user_id:
                raise _bad_request("self_demotion", "You cannot remove the admin role from your own account.")
            if user_store.count_admins() <= 1:
                raise _bad_request("last_admin", "Cannot demote the last admin account.")
        user_fields["role"] = body.role
    if body.password is not None:
        user_fields["hashed_password"] = hash_password(body.password)

    employee_fields = body.employee_details.provided_fields() if body.employee_details is not None else {}

    if not user_fields and not employee_fields:
        return UserDetailResponse.from_domain(target)

    try:
        updated = user_store.update_user(user_id, user_fields, employee_fields)
    except IntegrityError as exc:
        raise HTTPException(status_code=409, detail={"code": "conflict", "message": _CONFLICT_MESSAGE}) from exc
    if not updated:
        raise _not_found()

    logger.info("Admin %r updated user id=%s", admin.username, user_id)
    return UserDetailResponse.from_domain(_load(user_store, user_id))


@router.delete("/admin/users/{user_id}", status_code=204)
def delete_user(request: Request, user_id: int, admin: Claims = Depends(require_admin)) -> Response:
    """Soft-delete a user and their profile."""
    user_store: UserStore = request.app.state.user_store
    if user_id == admin.user_id:
        raise _bad_request("self_deletion", "You cannot delete your own account.")

    target = _load(user_store, user_id)
    if target.role is Role.ADMIN and user_store.count_admins() <= 1:
        raise _bad_request("last_admin", "Cannot delete the last admin account.")

    if not user_store.delete_user(user_id):
        raise _not_found()
    logger.info("Admin %r deleted user id=%s", admin.username, user_id)
    return Response(status_code=204)
