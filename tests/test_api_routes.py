"""
tests/test_api_routes.py -- Integration tests for the auth REST routes.

These tests exercise the full stack: FastAPI routing -> token dependency ->
AuthService -> UserStore -> response model serialization, so middleware,
dependency injection and the AuthError envelope are all covered.

Coverage:
  - Signup: 201 as "user", aggregated 422 field errors, 400 mismatch, 409 conflict
  - Signin: 200 with token/role/cookie, 400 missing fields, identical 401 bodies
  - Token routes: /me, /role with Bearer and cookie; 401 for bad/expired tokens
  - Admin routes: /users and /users/{id}/role; 403 for non-admins; 404 unknown id
  - Repository failure on list: 503 with a generic body

Fixtures used (from conftest.py):
  - api_client: (client, admin_token, admin_id); the admin is admin@example.com.
"""

from __future__ import annotations

from unittest.mock import patch

from fastapi.testclient import TestClient

from auth.models import Role

SIGNUP = "/api/v1/auth/signup"
SIGNIN = "/api/v1/auth/signin"


def _signup(client: TestClient, email: str, password: str = "pw123", name: str = "John"):
    return client.post(SIGNUP, json={"name": name, "email": email, "password": password, "cPassword": password})


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestSignupRoute:
    def test_signup_creates_user(self, api_client: tuple[TestClient, str, str]) -> None:
        """POST /signup with all fields must return 201 with role "user" and no digest."""
        client, _token, _uid = api_client
        resp = _signup(client, "john@x.com")
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["role"] == "user"
        assert data["email"] == "john@x.com"
        assert data["name"] == "John"
        assert data["id"]
        assert "password_digest" not in data
        assert "password" not in data

    def test_signup_empty_body_reports_all_fields(self, api_client: tuple[TestClient, str, str]) -> None:
        """An empty body must report all four fields at once, keyed as on the wire."""
        client, _token, _uid = api_client
        resp = client.post(SIGNUP, json={})
        assert resp.status_code == 422
        error = resp.json()["error"]
        assert error["code"] == "validation_error"
        assert error["fields"] == {
            "name": "must not be empty",
            "email": "must not be empty",
            "password": "must not be empty",
            "cPassword": "must not be empty",
        }

    def test_signup_password_mismatch(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _uid = api_client
        resp = client.post(
            SIGNUP, json={"name": "Mia", "email": "mia@x.com", "password": "pw123", "cPassword": "pw321"}
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "password_mismatch"

    def test_signup_overlong_password_is_field_error(self, api_client: tuple[TestClient, str, str]) -> None:
        """Passwords over PASSWORD_MAX_LENGTH come back as a password field error."""
        client, _token, _uid = api_client
        resp = _signup(client, "long@x.com", password="x" * 300)
        assert resp.status_code == 422
        assert set(resp.json()["error"]["fields"]) == {"password"}

    def test_signup_duplicate_email(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _uid = api_client
        assert _signup(client, "dup@x.com").status_code == 201
        resp = _signup(client, "dup@x.com", name="Other")
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "email_taken"


class TestSigninRoute:
    def test_signin_success(self, api_client: tuple[TestClient, str, str]) -> None:
        """A registered user signs in and gets a token, role "user", a cookie and no-store."""
        client, _token, _uid = api_client
        created = _signup(client, "sam@x.com").json()
        resp = client.post(SIGNIN, json={"email": "sam@x.com", "password": "pw123"})
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["token"]
        assert data["token_type"] == "bearer"
        assert data["user"] == {"id": created["id"], "role": "user"}
        assert resp.headers["cache-control"] == "no-store"
        assert "access_token=" in resp.headers.get("set-cookie", "")

    def test_signin_missing_fields(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _uid = api_client
        resp = client.post(SIGNIN, json={})
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "missing_fields"
        assert "fields" not in error

    def test_signin_failures_are_indistinguishable(self, api_client: tuple[TestClient, str, str]) -> None:
        """Unknown email and wrong password must return byte-identical 401 bodies."""
        client, _token, _uid = api_client
        _signup(client, "eve@x.com")
        unknown = client.post(SIGNIN, json={"email": "ghost@x.com", "password": "pw123"})
        wrong = client.post(SIGNIN, json={"email": "eve@x.com", "password": "nope"})
        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json() == wrong.json()
        assert unknown.json()["error"]["code"] == "invalid_credentials"

    def test_admin_signin(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, uid = api_client
        resp = client.post(SIGNIN, json={"email": "admin@example.com", "password": "adminpass123"})
        assert resp.status_code == 200
        assert resp.json()["user"] == {"id": uid, "role": "admin"}


class TestTokenRoutes:
    def test_me_with_bearer(self, api_client: tuple[TestClient, str, str]) -> None:
        client, token, uid = api_client
        resp = client.get("/api/v1/auth/me", headers=_bearer(token))
        assert resp.status_code == 200
        assert resp.json() == {"user_id": uid, "role": "admin"}

    def test_me_with_cookie(self, api_client: tuple[TestClient, str, str]) -> None:
        client, token, uid = api_client
        client.cookies.set("access_token", token)
        try:
            resp = client.get("/api/v1/auth/me")
        finally:
            client.cookies.clear()
        assert resp.status_code == 200
        assert resp.json()["user_id"] == uid

    def test_me_unauthenticated(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _uid = api_client
        resp = client.get("/api/v1/auth/me")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"

    def test_me_tampered_token(self, api_client: tuple[TestClient, str, str]) -> None:
        client, token, _uid = api_client
        tampered = token[:-5] + ("AAAAA" if not token.endswith("AAAAA") else "BBBBB")
        resp = client.get("/api/v1/auth/me", headers=_bearer(tampered))
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "token_invalid"

    def test_me_expired_token(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, uid = api_client
        expired = client.app.state.token_service.issue(uid, Role.admin, 0)
        resp = client.get("/api/v1/auth/me", headers=_bearer(expired))
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "token_expired"

    def test_stale_cookie_falls_back_to_bearer(self, api_client: tuple[TestClient, str, str]) -> None:
        client, token, uid = api_client
        client.cookies.set("access_token", client.app.state.token_service.issue(uid, Role.admin, 0))
        try:
            resp = client.get("/api/v1/auth/me", headers=_bearer(token))
            stale_only = client.get("/api/v1/auth/me")
        finally:
            client.cookies.clear()
        assert resp.status_code == 200
        assert resp.json()["user_id"] == uid
        assert stale_only.status_code == 401
        assert stale_only.json()["error"]["code"] == "token_expired"

    def test_live_role(self, api_client: tuple[TestClient, str, str]) -> None:
        """GET /role returns the stored role of the token subject."""
        client, _token, _uid = api_client
        _signup(client, "rita@x.com")
        signin = client.post(SIGNIN, json={"email": "rita@x.com", "password": "pw123"}).json()
        client.cookies.clear()
        resp = client.get("/api/v1/auth/role", headers=_bearer(signin["token"]))
        assert resp.status_code == 200
        assert resp.json() == {"role": "user"}

    def test_logout_clears_cookie(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _uid = api_client
        resp = client.post("/api/v1/auth/logout")
        assert resp.status_code == 200
        assert "access_token=" in resp.headers.get("set-cookie", "")


class TestAdminRoutes:
    def test_check_role_admin(self, api_client: tuple[TestClient, str, str]) -> None:
        client, token, uid = api_client
        resp = client.get(f"/api/v1/auth/users/{uid}/role", headers=_bearer(token))
        assert resp.status_code == 200
        assert resp.json() == {"role": "admin"}

    def test_check_role_unknown_is_404(self, api_client: tuple[TestClient, str, str]) -> None:
        client, token, _uid = api_client
        resp = client.get("/api/v1/auth/users/no-such-user/role", headers=_bearer(token))
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    def test_list_users(self, api_client: tuple[TestClient, str, str]) -> None:
        client, token, _uid = api_client
        _signup(client, "zoe@x.com", name="Zoe")
        resp = client.get("/api/v1/auth/users", headers=_bearer(token))
        assert resp.status_code == 200
        users = resp.json()["users"]
        emails = [u["email"] for u in users]
        assert "admin@example.com" in emails
        assert "zoe@x.com" in emails
        assert all("password_digest" not in u for u in users)

    def test_list_users_requires_admin(self, api_client: tuple[TestClient, str, str]) -> None:
        client, _token, _uid = api_client
        _signup(client, "uma@x.com")
        user_token = client.post(SIGNIN, json={"email": "uma@x.com", "password": "pw123"}).json()["token"]
        client.cookies.clear()
        resp = client.get("/api/v1/auth/users", headers=_bearer(user_token))
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "forbidden"

    def test_list_users_repository_failure(self, api_client: tuple[TestClient, str, str]) -> None:
        """A store failure must surface as 503 with a generic message, not a raw 500."""
        client, token, _uid = api_client
        store = client.app.state.user_store
        with patch.object(store, "find_all", side_effect=RuntimeError("Database error")):
            resp = client.get("/api/v1/auth/users", headers=_bearer(token))
        assert resp.status_code == 503
        error = resp.json()["error"]
        assert error["code"] == "service_unavailable"
        assert "Database error" not in resp.text
