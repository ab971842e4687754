"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container). Stores and the service do the work;
the only behaviour here is the UserProfile projection, which lives beside the
type it produces.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Flat two-value role set. There is no hierarchy between the values."""

    user = "user"
    admin = "admin"


@dataclass
class UserRecord:
    """A stored identity.

    id and created_at are None until the repository inserts the record; the
    repository assigns both. password_digest is the bcrypt output, never the
    plaintext. email is the login key and is compared case-sensitively.
    """

    name: str
    email: str
    password_digest: str
    role: Role = Role.user
    id: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class UserProfile:
    """The caller-safe view of a UserRecord. Never carries the digest."""

    id: str
    name: str
    email: str
    role: Role
    created_at: str | None = None

    @classmethod
    def from_record(cls, record: UserRecord) -> UserProfile:
        return cls(
            id=record.id or "",
            name=record.name,
            email=record.email,
            role=record.role,
            created_at=record.created_at,
        )


@dataclass(frozen=True)
class SessionClaims:
    """Identity carried inside a session token.

    role is a copy taken at issuance. Holders of a token accept that it may be
    stale until the token expires.
    """

    subject_id: str
    role: Role


@dataclass(frozen=True)
class SigninResult:
    token: str
    subject_id: str
    role: Role
    expires_in: int
