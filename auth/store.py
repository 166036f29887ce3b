"""
auth/store.py -- SQLAlchemy Core persistence layer for users and employee profiles.

Pattern: Repository + Data Mapper. UserStore is the repository;
_row_to_user is the mapper. Route and dependency code never touches SQL
directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  hashed_password is written and read as an opaque string -- the store never
  inspects or logs it.

Deletes are soft: deleted_at is stamped on the user and its employee_details
row, and every read filters deleted rows out. Username and email uniqueness
is enforced by the database and surfaces as sqlalchemy.exc.IntegrityError,
which the route layer maps to 409.

User and profile writes that belong together run inside one engine.begin()
transaction so a failed profile insert never leaves a half-created user.

Layer rule: no imports from api/ or web/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine

from auth.models import EmployeeDetail, Role, User
from core.config import get_settings

logger = logging.getLogger("yamerito.store")

# Updatable columns -- validated before any SQL write.
_USER_FIELDS = frozenset({"username", "hashed_password", "role"})
_EMPLOYEE_FIELDS = frozenset({"name", "last_name", "email", "phone_number", "position"})

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(50), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),  # encoded Argon2id credential
    Column("role", String(20), nullable=False),  # "ADMIN" | "EMPLOYEE"
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("deleted_at", String(32), index=True),  # NULL = live row
)

_employee_details = Table(
    "employee_details",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, unique=True),
    Column("name", String(100), nullable=False, server_default=""),
    Column("last_name", String(100), nullable=False, server_default=""),
    Column("email", String(100), unique=True),  # NULL allowed many times
    Column("phone_number", String(20), nullable=False, server_default="", index=True),
    Column("position", String(100), nullable=False, server_default=""),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("deleted_at", String(32), index=True),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _user_select():
    """SELECT live users, LEFT JOINed with their live employee_details row."""
    ed = _employee_details
    return (
        select(
            _users,
            ed.c.id.label("ed_id"),
            ed.c.name.label("ed_name"),
            ed.c.last_name.label("ed_last_name"),
            ed.c.email.label("ed_email"),
            ed.c.phone_number.label("ed_phone_number"),
            ed.c.position.label("ed_position"),
            ed.c.created_at.label("ed_created_at"),
            ed.c.updated_at.label("ed_updated_at"),
        )
        .select_from(_users.outerjoin(ed, (ed.c.user_id == _users.c.id) & ed.c.deleted_at.is_(None)))
        .where(_users.c.deleted_at.is_(None))
    )


def _check_fields(fields: dict, allowed: frozenset, table: str) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unknown {table} fields: {sorted(unknown)!r}")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User and EmployeeDetail entities.

    Usage:
        store = UserStore("sqlite:///:memory:")
        uid = store.create_user(User(username="ana", role=Role.EMPLOYEE, hashed_password=hash_password("...")))
        user = store.get_by_id(uid)
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def has_users(self) -> bool:
        """Return True if at least one live user exists."""
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count()).select_from(_users).where(_users.c.deleted_at.is_(None))
            ).scalar()
        return (result or 0) > 0

    def get_by_username(self, username: str) -> User | None:
        """Look up a live user by exact username (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_user_select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a live user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_user_select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all live users with their profiles, ordered by id."""
        with self.engine.connect() as conn:
            rows = conn.execute(_user_select().order_by(_users.c.id)).fetchall()
        return [_row_to_user(r) for r in rows]

    def count_admins(self) -> int:
        """Return the number of live ADMIN users (last-admin guard)."""
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count())
                .select_from(_users)
                .where((_users.c.role == Role.ADMIN.value) & _users.c.deleted_at.is_(None))
            ).scalar()
        return result or 0

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a user (and its employee_details, if set) atomically.

        Raises sqlalchemy.exc.IntegrityError if the username or profile email
        already exists. Returns the new user id.
        """
        now = _now_iso()
        with self.engine.begin() as conn:
            result = conn.execute(
                _users.insert().values(
                    username=user.username,
                    hashed_password=user.hashed_password,
                    role=Role(user.role).value,
                    created_at=now,
                    updated_at=now,
                )
            )
            user_id = result.inserted_primary_key[0]
            details = user.employee_details
            if details is not None:
                conn.execute(
                    _employee_details.insert().values(
                        user_id=user_id,
                        name=details.name,
                        last_name=details.last_name,
                        email=details.email,
                        phone_number=details.phone_number,
                        position=details.position,
                        created_at=now,
                        updated_at=now,
                    )
                )
        logger.info("Created user id=%s username=%r", user_id, user.username)
        return user_id

    def update_user(self, user_id: int, user_fields: dict, employee_fields: dict | None = None) -> bool:
        """Apply a partial update to a user and, optionally, its profile.

        user_fields accepts username, hashed_password and role.
        employee_fields accepts name, last_name, email, phone_number and
        position; a profile row is created if the user has none yet.

        Both updates run in one transaction. Returns False if the user does not
        exist. Raises IntegrityError on a username/email collision and
        ValueError on an unknown field name.
        """
        _check_fields(user_fields, _USER_FIELDS, "user")
        if employee_fields:
            _check_fields(employee_fields, _EMPLOYEE_FIELDS, "employee_details")
        values = dict(user_fields)
        if "role" in values:
            values["role"] = Role(values["role"]).value
        now = _now_iso()

        with self.engine.begin() as conn:
            result = conn.execute(
                _users.update()
                .where((_users.c.id == user_id) & _users.c.deleted_at.is_(None))
                .values(updated_at=now, **values)
            )
            if result.rowcount == 0:
                return False
            if employee_fields:
                ed = _employee_details
                existing = conn.execute(
                    select(ed.c.id).where((ed.c.user_id == user_id) & ed.c.deleted_at.is_(None))
                ).fetchone()
                if existing is not None:
                    conn.execute(ed.update().where(ed.c.id == existing.id).values(updated_at=now, **employee_fields))
                else:
                    conn.execute(
                        ed.insert().values(user_id=user_id, created_at=now, updated_at=now, **employee_fields)
                    )
        logger.info("Updated user id=%s fields=%s", user_id, sorted(set(user_fields) | set(employee_fields or {})))
        return True

    def delete_user(self, user_id: int) -> bool:
        """Soft-delete a user and its profile. Returns True if a live user was deleted.

        Callers must check self-deletion and last-admin rules before calling
        this method -- the store does not enforce them.
        """
        now = _now_iso()
        with self.engine.begin() as conn:
            result = conn.execute(
                _users.update()
                .where((_users.c.id == user_id) & _users.c.deleted_at.is_(None))
                .values(deleted_at=now, updated_at=now)
            )
            if result.rowcount == 0:
                return False
            conn.execute(
                _employee_details.update()
                .where((_employee_details.c.user_id == user_id) & _employee_details.c.deleted_at.is_(None))
                .values(deleted_at=now, updated_at=now)
            )
        logger.info("Soft-deleted user id=%s", user_id)
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    details = None
    if row.ed_id is not None:
        details = EmployeeDetail(
            id=row.ed_id,
            user_id=row.id,
            name=row.ed_name,
            last_name=row.ed_last_name,
            email=row.ed_email,
            phone_number=row.ed_phone_number,
            position=row.ed_position,
            created_at=row.ed_created_at,
            updated_at=row.ed_updated_at,
        )
    return User(
        id=row.id,
        username=row.username,
        hashed_password=row.hashed_password,
        role=Role(row.role),
        created_at=row.created_at,
        updated_at=row.updated_at,
        employee_details=details,
    )
