"""
auth/passwords.py -- Password hashing with bcrypt.

bcrypt is used directly, without a passlib wrapper. Its cost factor makes
brute force against a stolen digest expensive, and checkpw() compares in
constant time.

bcrypt only looks at the first 72 bytes of its input (bcrypt 4.1+ rejects
longer input outright). Every plaintext is therefore reduced to
base64(SHA-256(plaintext)) -- 44 ASCII bytes -- before bcrypt sees it, so all
characters of a long password stay significant. The same reduction runs on
hash and verify, so the scheme is self-consistent.

Layer rule: no imports from api/ or core/. Work factor and length bound are
passed in by whoever builds the hasher.
"""

from __future__ import annotations

import base64
import hashlib
import secrets

import bcrypt

from auth.errors import InvalidInput

DEFAULT_ROUNDS = 12
DEFAULT_MAX_LENGTH = 256


class PasswordHasher:
    """One-way salted hashing and constant-time verification of secrets."""

    def __init__(self, *, rounds: int = DEFAULT_ROUNDS, max_length: int = DEFAULT_MAX_LENGTH) -> None:
        self.rounds = rounds
        self.max_length = max_length

    def hash(self, plaintext: str) -> str:
        """Return a 60-character bcrypt digest of plaintext.

        Raises InvalidInput for empty input or input longer than max_length.
        Two calls with the same plaintext return different digests (fresh salt).
        """
        if not plaintext:
            raise InvalidInput("Password must not be empty.")
        if len(plaintext) > self.max_length:
            raise InvalidInput(f"Password must be at most {self.max_length} characters.")
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_prehash(plaintext), salt).decode("ascii")

    def dummy_digest(self) -> str:
        """Return a digest of a random secret, for verify calls that must cost as much as a real one.

        Bypasses the max_length check so it works under any configured bound.
        """
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_prehash(secrets.token_urlsafe(16)), salt).decode("ascii")

    def verify(self, plaintext: str, digest: str) -> bool:
        """Return True if plaintext matches digest.

        Never raises: a mismatch, an empty plaintext, or a malformed digest is
        an ordinary False.
        """
        if not plaintext or not digest:
            return False
        try:
            return bcrypt.checkpw(_prehash(plaintext), digest.encode("ascii"))
        except ValueError:
            # Malformed, non-ASCII, or non-bcrypt digest.
            return False


def _prehash(plaintext: str) -> bytes:
    return base64.b64encode(hashlib.sha256(plaintext.encode("utf-8")).digest())
