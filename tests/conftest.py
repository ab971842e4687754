"""
tests/conftest.py -- Shared test fixtures for Gatehouse.

This module provides:
  - hasher / token_service / repo / service: unit-level collaborators built
    from an in-memory repository and a low bcrypt work factor
  - _make_test_store(): isolated named shared-memory SQLite UserStore
  - _patch_lifespan(): wires a test store and services into app.state
  - api_client: TestClient with a seeded admin and its token

Named shared-memory SQLite URIs (not plain :memory:) are required for the API
fixture because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread.

Environment must be set before any api/ or core/ import: get_settings() is
cached on first use and api/main.py reads it at import time.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before importing application modules.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost", "127.0.0.1"]')

import pytest
from fastapi.testclient import TestClient

from api.main import app, build_services
from auth.models import Role, UserRecord
from auth.passwords import PasswordHasher
from auth.repository import InMemoryUserRepository
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import get_settings

TEST_SECRET = "unit-test-signing-key-0123456789abcdef"

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "adminpass123"


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(TEST_SECRET, default_ttl=3600)


@pytest.fixture
def repo() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def service(repo, hasher, token_service) -> AuthService:
    return AuthService(repo, hasher, token_service)


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _make_test_store(db_suffix: str) -> UserStore:
    """Create an isolated named shared-memory SQLite store.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    return UserStore(db_url=f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(user_store: UserStore, tokens: TokenService, service: AuthService):
    """Return an async context manager that replaces the real lifespan.

    Routes see the isolated test store rather than the production database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.token_service = tokens
        app.state.auth_service = service
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, str], None, None]:
    """Yield (client, admin_token, admin_id) for API integration tests.

    The admin is inserted straight into the store (self-registration only
    creates "user" accounts) and its token is issued by the same TokenService
    the app uses.
    """
    user_store = _make_test_store(request.module.__name__.rsplit(".", 1)[-1])
    tokens, service = build_services(get_settings(), user_store)

    admin = user_store.insert(
        UserRecord(
            name="Admin",
            email=ADMIN_EMAIL,
            password_digest=service.hasher.hash(ADMIN_PASSWORD),
            role=Role.admin,
        )
    )
    token = tokens.issue(admin.id, Role.admin, 3600)

    app.router.lifespan_context = _patch_lifespan(user_store, tokens, service)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, admin.id

    user_store.close()
