"""
auth/service.py -- Registration, sign-in, role lookup and user listing.

AuthService is the only component with business rules. It talks to a
UserRepository, a PasswordHasher and a TokenService, and reports every outcome
either as a return value or as an AuthError subclass from auth/errors.py.

Failure policy:
  Business errors (validation, mismatch, conflict, bad credentials, unknown
  user) are raised directly. Anything else raised by the repository is logged
  with its traceback and re-raised as RepositoryUnavailable, whose message is
  generic. No raw collaborator exception leaves this class.

Security:
  [S1] Sign-in runs a bcrypt verify even when the email is unknown, against a
       dummy digest computed once at construction. Response time therefore
       does not reveal whether an email is registered.
  [S2] Unknown email and wrong password raise the same InvalidCredentials.
  [S3] A freshly issued token is verified again before it is returned. A
       failure is an internal fault, never a client error, and is not retried.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from auth.errors import (
    AuthError,
    EmailTaken,
    InternalFault,
    InvalidCredentials,
    InvalidInput,
    MissingFields,
    PasswordMismatch,
    RepositoryUnavailable,
    UserNotFound,
    ValidationError,
)
from auth.models import Role, SessionClaims, SigninResult, UserProfile, UserRecord
from auth.passwords import PasswordHasher
from auth.repository import DuplicateEmailError, UserRepository
from auth.tokens import TokenService

logger = logging.getLogger("gatehouse.auth")

EMPTY_FIELD_MESSAGE = "must not be empty"


class AuthService:
    def __init__(
        self,
        repository: UserRepository,
        hasher: PasswordHasher,
        tokens: TokenService,
        *,
        token_ttl: int | None = None,
    ) -> None:
        self.repository = repository
        self.hasher = hasher
        self.tokens = tokens
        self.token_ttl = token_ttl if token_ttl is not None else tokens.default_ttl
        # [S1] computed once so the first sign-in is not measurably slower
        self._dummy_digest = hasher.dummy_digest()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def signup(
        self,
        name: str | None,
        email: str | None,
        password: str | None,
        confirm_password: str | None,
    ) -> UserProfile:
        """Register a new account with role "user" and return its profile.

        Every empty input is reported at once under the keys name, email,
        password and cPassword. Only when all four are present are the
        confirmation and the email conflict checked.
        """
        errors: dict[str, str] = {}
        if _blank(name):
            errors["name"] = EMPTY_FIELD_MESSAGE
        if _blank(email):
            errors["email"] = EMPTY_FIELD_MESSAGE
        if not password:
            errors["password"] = EMPTY_FIELD_MESSAGE
        if not confirm_password:
            errors["cPassword"] = EMPTY_FIELD_MESSAGE
        if errors:
            raise ValidationError(errors)

        if password != confirm_password:
            raise PasswordMismatch()

        return self._register(name, email, password, Role.user)

    def create_admin(self, name: str | None, email: str | None, password: str | None) -> UserProfile:
        """Register an account with role "admin". Operator use only (see main.py)."""
        errors: dict[str, str] = {}
        if _blank(name):
            errors["name"] = EMPTY_FIELD_MESSAGE
        if _blank(email):
            errors["email"] = EMPTY_FIELD_MESSAGE
        if not password:
            errors["password"] = EMPTY_FIELD_MESSAGE
        if errors:
            raise ValidationError(errors)
        return self._register(name, email, password, Role.admin)

    def _register(self, name: str, email: str, password: str, role: Role) -> UserProfile:
        with self._repository_call("find_by_email"):
            existing = self.repository.find_by_email(email)
        if existing is not None:
            raise EmailTaken()

        try:
            digest = self.hasher.hash(password)
        except InvalidInput as exc:
            raise ValidationError({"password": exc.message}) from exc

        record = UserRecord(name=name, email=email, password_digest=digest, role=role)
        try:
            with self._repository_call("insert"):
                created = self.repository.insert(record)
        except DuplicateEmailError as exc:
            # Lost a race with a concurrent signup for the same email.
            raise EmailTaken() from exc

        logger.info("Registered user %s with role %s", created.id, created.role.value)
        return UserProfile.from_record(created)

    # ------------------------------------------------------------------
    # Sign-in
    # ------------------------------------------------------------------

    def signin(self, email: str | None, password: str | None) -> SigninResult:
        """Check credentials and issue a session token.

        Raises MissingFields if either input is empty and InvalidCredentials
        for an unknown email or a wrong password [S2].
        """
        if _blank(email) or not password:
            raise MissingFields()

        with self._repository_call("find_by_email"):
            record = self.repository.find_by_email(email)

        if record is None:
            self.hasher.verify(password, self._dummy_digest)  # [S1]
            logger.warning("Failed sign-in: unknown account")
            raise InvalidCredentials()
        if not self.hasher.verify(password, record.password_digest):
            logger.warning("Failed sign-in for user %s: bad password", record.id)
            raise InvalidCredentials()

        expected = SessionClaims(subject_id=record.id, role=record.role)
        token = self.tokens.issue(expected.subject_id, expected.role, self.token_ttl)
        self._check_issued(token, expected)
        return SigninResult(token=token, subject_id=record.id, role=record.role, expires_in=self.token_ttl)

    def _check_issued(self, token: str, expected: SessionClaims) -> None:
        """[S3] Round-trip the token just issued. No retry on failure."""
        try:
            claims = self.tokens.verify(token)
        except AuthError as exc:
            logger.error("Issued token failed self-verification for user %s: %s", expected.subject_id, exc.code)
            raise InternalFault() from exc
        if claims != expected:
            logger.error("Issued token claims differ from the account for user %s", expected.subject_id)
            raise InternalFault()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def check_role(self, user_id: str) -> Role:
        """Return the stored role of user_id. Raises UserNotFound if absent."""
        with self._repository_call("find_by_id"):
            record = self.repository.find_by_id(user_id)
        if record is None:
            raise UserNotFound()
        return record.role

    def list_users(self) -> list[UserProfile]:
        with self._repository_call("find_all"):
            records = self.repository.find_all({})
        return [UserProfile.from_record(r) for r in records]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _repository_call(self, operation: str) -> Iterator[None]:
        """Convert unexpected repository failures into RepositoryUnavailable.

        DuplicateEmailError is part of the insert() contract and passes through.
        """
        try:
            yield
        except (AuthError, DuplicateEmailError):
            raise
        except Exception as exc:
            logger.exception("Repository call %s failed", operation)
            raise RepositoryUnavailable() from exc


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()
