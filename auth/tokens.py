"""
auth/tokens.py -- Signed, time-bounded session tokens.

Security design decisions:
  JWT: python-jose with HS256. A token carries the subject id, the role at
       issuance, iat, exp and iss. The signature binds all of them, so the
       token is self-contained and no server-side session table exists. The
       price is that a token cannot be revoked before it expires.

  Key: injected at construction. TokenService never reads configuration or
       environment itself; api/main.py builds it from core.config at startup.

  Verify order: the compact form is checked for canonical base64url first,
       then python-jose verifies the signature, and only then are claims read.
       Expiry is checked by this module (not by jose) so that the expiration
       instant is exclusive: a token issued with ttl=0 is already expired.

  Canonical encoding [T1]: the last character of a base64url segment carries
       unused low bits. Without the canonical check, flipping those bits would
       yield a different token string that still verifies.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import base64
import binascii
import time
from collections.abc import Callable

from jose import JWTError, jwt

from auth.errors import TokenExpired, TokenInvalid
from auth.models import Role, SessionClaims

_ALGORITHM = "HS256"


class TokenService:
    """Issue and verify HS256 session tokens bound to a subject and a role."""

    def __init__(
        self,
        secret_key: str,
        *,
        default_ttl: int = 3600,
        issuer: str = "gatehouse",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret_key:
            raise ValueError("TokenService requires a non-empty signing key")
        self._secret_key = secret_key
        self.default_ttl = default_ttl
        self.issuer = issuer
        self._clock = clock

    def issue(self, subject_id: str, role: Role, ttl: int | None = None) -> str:
        """Return a signed token for subject_id/role that expires ttl seconds from now.

        ttl defaults to default_ttl. ttl <= 0 produces a token that is already
        expired; that is legal and is how expiry is exercised in tests.
        """
        duration = self.default_ttl if ttl is None else ttl
        now = int(self._clock())
        payload = {
            "sub": subject_id,
            "role": Role(role).value,
            "iat": now,
            "exp": now + duration,
            "iss": self.issuer,
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> SessionClaims:
        """Verify token and return its claims.

        Raises TokenInvalid when the token is malformed, tampered with, signed
        with another key, or issued by another issuer. Raises TokenExpired when
        the signature is good but the expiration instant has been reached.
        """
        if not isinstance(token, str) or not _is_canonical(token):
            raise TokenInvalid()
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[_ALGORITHM],
                issuer=self.issuer,
                options={"verify_exp": False, "verify_aud": False},
            )
        except JWTError as exc:
            raise TokenInvalid() from exc

        exp = payload.get("exp")
        if not isinstance(exp, int) or isinstance(exp, bool):
            raise TokenInvalid()
        if self._clock() >= exp:
            raise TokenExpired()

        subject_id = payload.get("sub")
        if not isinstance(subject_id, str) or not subject_id:
            raise TokenInvalid()
        try:
            role = Role(payload.get("role"))
        except ValueError as exc:
            raise TokenInvalid() from exc
        return SessionClaims(subject_id=subject_id, role=role)


def _is_canonical(token: str) -> bool:
    """Return True if token is three canonical, unpadded base64url segments [T1]."""
    segments = token.split(".")
    if len(segments) != 3:
        return False
    for segment in segments:
        if not segment:
            return False
        try:
            raw = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
        except (binascii.Error, ValueError):
            return False
        if base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii") != segment:
            return False
    return True
