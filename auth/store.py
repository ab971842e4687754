"""
auth/store.py -- SQLAlchemy Core implementation of the UserRepository contract.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. The service layer never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Email uniqueness is a UNIQUE constraint on users.email. insert() translates
  the resulting IntegrityError into DuplicateEmailError, so two concurrent
  signups for one email cannot both succeed even if both pass the service's
  find_by_email() pre-check.

DB path: auth/gatehouse_auth.db unless DATABASE_URL says otherwise.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import Role, UserRecord
from auth.repository import DuplicateEmailError, check_filter, new_user_id, now_iso

logger = logging.getLogger("gatehouse.store")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'gatehouse_auth.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_digest", Text, nullable=False),
    Column("role", String(16), nullable=False, server_default=Role.user.value),
    Column("created_at", String(32), nullable=False),
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
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """SQL-backed UserRepository."""

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception:
            logger.exception("Database ping failed")
            return False
        return True

    # ------------------------------------------------------------------
    # UserRepository
    # ------------------------------------------------------------------

    def find_by_id(self, user_id: str) -> UserRecord | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_email(self, email: str) -> UserRecord | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def insert(self, record: UserRecord) -> UserRecord:
        """Insert a new user and return it with id and created_at filled in.

        Raises DuplicateEmailError if the email is already registered.
        """
        stored = replace(record, id=record.id or new_user_id(), created_at=record.created_at or now_iso())
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _users.insert().values(
                        id=stored.id,
                        name=stored.name,
                        email=stored.email,
                        password_digest=stored.password_digest,
                        role=Role(stored.role).value,
                        created_at=stored.created_at,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            # The id is a fresh uuid4, so a conflict here is the email index.
            raise DuplicateEmailError(stored.email) from exc
        return stored

    def find_all(self, criteria: Mapping[str, Any]) -> list[UserRecord]:
        """Return users matching every criteria entry, ordered by email.

        An empty mapping returns all users. Column names come from the
        FILTERABLE_FIELDS whitelist in auth/repository.py, never from raw input.
        """
        wanted = check_filter(criteria)
        query = _users.select()
        for key, value in wanted.items():
            query = query.where(_users.c[key] == value)
        with self.engine.connect() as conn:
            rows = conn.execute(query.order_by(_users.c.email)).fetchall()
        return [_row_to_user(r) for r in rows]

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> UserRecord:
    return UserRecord(
        id=row.id,
        name=row.name,
        email=row.email,
        password_digest=row.password_digest,
        role=Role(row.role),
        created_at=row.created_at,
    )
