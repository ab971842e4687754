"""
auth/repository.py -- The persistence boundary for user records.

UserRepository is a structural Protocol: AuthService depends on these four
methods only and has no knowledge of the storage technology behind them.
auth/store.py provides the SQLAlchemy implementation; InMemoryUserRepository
below serves tests and embedded use.

Contract shared by every implementation:
  - insert() assigns id and created_at and returns the stored record.
  - insert() raises DuplicateEmailError when the email is already present.
    Uniqueness is enforced here, at insert time, not by the service.
  - find_all({}) returns every record. Non-empty filters are equality matches
    on name, email or role; any other key raises ValueError.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Protocol

from auth.models import Role, UserRecord

FILTERABLE_FIELDS = frozenset({"name", "email", "role"})


class DuplicateEmailError(Exception):
    """Raised by insert() when a record with the same email already exists."""


class UserRepository(Protocol):
    def find_by_id(self, user_id: str) -> UserRecord | None: ...

    def find_by_email(self, email: str) -> UserRecord | None: ...

    def insert(self, record: UserRecord) -> UserRecord: ...

    def find_all(self, criteria: Mapping[str, Any]) -> list[UserRecord]: ...


def new_user_id() -> str:
    return uuid.uuid4().hex


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def check_filter(criteria: Mapping[str, Any]) -> dict[str, Any]:
    """Validate filter keys and normalise Role values to their string form."""
    unknown = set(criteria) - FILTERABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown user filter keys: {sorted(unknown)!r}")
    return {k: (v.value if isinstance(v, Role) else v) for k, v in criteria.items()}


class InMemoryUserRepository:
    """Dict-backed UserRepository. Safe for concurrent callers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_id: dict[str, UserRecord] = {}
        self._id_by_email: dict[str, str] = {}

    def find_by_id(self, user_id: str) -> UserRecord | None:
        with self._lock:
            record = self._by_id.get(user_id)
        return replace(record) if record is not None else None

    def find_by_email(self, email: str) -> UserRecord | None:
        with self._lock:
            user_id = self._id_by_email.get(email)
            record = self._by_id.get(user_id) if user_id is not None else None
        return replace(record) if record is not None else None

    def insert(self, record: UserRecord) -> UserRecord:
        stored = replace(record, id=record.id or new_user_id(), created_at=record.created_at or now_iso())
        with self._lock:
            if stored.email in self._id_by_email:
                raise DuplicateEmailError(stored.email)
            if stored.id in self._by_id:
                raise ValueError(f"Duplicate user id {stored.id!r}")
            self._by_id[stored.id] = stored
            self._id_by_email[stored.email] = stored.id
        return replace(stored)

    def find_all(self, criteria: Mapping[str, Any]) -> list[UserRecord]:
        wanted = check_filter(criteria)
        with self._lock:
            records = sorted(self._by_id.values(), key=lambda r: r.email)
        return [
            replace(r)
            for r in records
            if all((r.role.value if k == "role" else getattr(r, k)) == v for k, v in wanted.items())
        ]
