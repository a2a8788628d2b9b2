"""
HTTP route tests
"""

import pytest
from fastapi.testclient import TestClient
from supabase import AuthApiError

from account_portal.main import create_app
from account_portal.mutations.results import RemoteResult
from account_portal.utils.dependencies import get_remote_client


@pytest.fixture
def app(remote_client):
    app = create_app()
    app.dependency_overrides[get_remote_client] = lambda: remote_client
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


class TestServiceEndpoints:
    """Test service endpoints"""

    def test_health(self, client):
        """Test health check endpoint"""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "account-portal"
        assert data["supabase_configured"] is True

    def test_root(self, client):
        """Test root endpoint"""
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "Account Portal"


class TestAuthRoutes:
    """Test auth API routes"""

    def test_login_page_for_signed_in_user(self, client):
        """Test GET /auth/login redirects signed in users"""
        response = client.get("/auth/login")
        assert response.json()["redirect"] == "/settings/accounts"

    def test_login_page_error_param(self, client, remote_client):
        """Test GET /auth/login with an error parameter"""
        remote_client.get_user.return_value = RemoteResult(data=None)

        response = client.get("/auth/login", params={"error": '{"message": "Token expired", "status": 401}'})

        assert response.json() == {
            "redirect": None,
            "error": {"message": "Token expired", "status": 401},
        }

    def test_login_sets_session_cookies(self, client, app):
        """Test POST /auth/login sets the session cookies"""
        response = client.post("/auth/login", json={"email": "a@b.com", "password": "hunter2"})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert data["redirect"] == "/settings/accounts"
        assert response.cookies.get("sb-access-token") == "access-token-1"
        assert response.cookies.get("sb-refresh-token") == "refresh-token-1"

    def test_login_validation_error(self, client, remote_client):
        """Test POST /auth/login with an invalid email"""
        response = client.post("/auth/login", json={"email": "not-an-email", "password": "hunter2"})

        assert response.status_code == 422
        data = response.json()
        assert data["status"] == "invalid"
        assert data["field_errors"] == [{"field": "email", "message": "Invalid email address"}]
        remote_client.sign_in_with_password.assert_not_awaited()

    def test_login_rejected(self, client, remote_client):
        """Test POST /auth/login with bad credentials"""
        remote_client.sign_in_with_password.return_value = RemoteResult(
            error=AuthApiError("Invalid login credentials", 400, "invalid_credentials")
        )

        response = client.post("/auth/login", json={"email": "a@b.com", "password": "wrong"})

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["kind"] == "remote_error"
        assert data["error"]["digest"] in data["error_message"]
        assert "sb-access-token" not in response.cookies

    def test_passwordless_login(self, client):
        """Test POST /auth/login with use_otp"""
        response = client.post("/auth/login", json={"email": "a@b.com", "use_otp": True})

        assert response.status_code == 200
        assert response.json()["redirect"] == "/login/otp?email=a%40b.com"

    def test_verify_otp(self, client):
        """Test POST /auth/otp/verify"""
        response = client.post("/auth/otp/verify", json={"email": "a@b.com", "token": "123456"})

        assert response.status_code == 200
        assert response.cookies.get("sb-access-token") == "access-token-1"

    def test_register_links_to_profile_settings(self, client, remote_client):
        """Test POST /auth/register"""
        response = client.post("/auth/register", json={"email": "a@b.com", "password": "hunter2"})

        assert response.status_code == 200
        assert response.json()["redirect"] == "/login"
        credentials = remote_client.sign_up.await_args.args[0]
        assert credentials["options"]["email_redirect_to"].endswith("/settings/profile")

    def test_password_reset(self, client, remote_client):
        """Test POST /auth/password-reset"""
        response = client.post("/auth/password-reset", json={"email": "a@b.com"})

        assert response.status_code == 200
        assert response.json()["redirect"] == "/login/reset-password/sent"
        email, options = remote_client.reset_password_for_email.await_args.args
        assert email == "a@b.com"
        assert options["redirect_to"].endswith("/login/reset-password/new")

    def test_new_password_requires_session(self, client, remote_client):
        """Test POST /auth/password-reset/new without a session"""
        remote_client.get_user.return_value = RemoteResult(error={"message": "Auth session missing!"})

        response = client.post("/auth/password-reset/new", json={"password": "new-secret"})

        assert response.status_code == 401
        assert response.json() == {"error": True, "message": "Not authenticated", "status_code": 401}
        remote_client.update_user.assert_not_awaited()

    def test_logout_clears_cookies(self, client):
        """Test POST /auth/logout"""
        response = client.post("/auth/logout")

        assert response.status_code == 200
        assert response.json()["redirect"] == "/login"
        assert "sb-access-token" in response.headers.get("set-cookie", "")

    def test_logout_drops_cached_profile(self, client, app, remote_client):
        """Test POST /auth/logout removes the user's cached profile"""
        client.get("/users/me/profile")
        assert ("profiles", "user-123") in app.state.query_cache

        response = client.post("/auth/logout")

        assert response.status_code == 200
        assert ("profiles", "user-123") not in app.state.query_cache
        client.get("/users/me/profile")
        assert remote_client.get_profile.await_count == 2


class TestUserRoutes:
    """Test user API routes"""

    def test_profile_is_cached_until_updated(self, client, remote_client):
        """Test GET /users/me/profile is cached until an update"""
        first = client.get("/users/me/profile")
        second = client.get("/users/me/profile")

        assert first.status_code == 200
        assert first.json()["username"] == "sosa"
        assert second.json() == first.json()
        assert remote_client.get_profile.await_count == 1

        updated = client.put(
            "/users/me/profile",
            json={"username": "hsosa", "full_name": "Hector Sosa", "preferred_name": "Hector"}
        )
        assert updated.status_code == 200
        assert updated.json()["data"]["profile"]["username"] == "hsosa"

        client.get("/users/me/profile")
        assert remote_client.get_profile.await_count == 2

    def test_missing_profile(self, client, remote_client):
        """Test GET /users/me/profile without a profile"""
        remote_client.get_profile.return_value = RemoteResult(data=None)

        response = client.get("/users/me/profile")

        assert response.status_code == 404
        assert response.json()["message"].startswith("No data found!")

    def test_profile_validation(self, client, remote_client):
        """Test PUT /users/me/profile with short names"""
        response = client.put("/users/me/profile", json={"username": "ab", "full_name": "Hector", "preferred_name": "Hec"})

        assert response.status_code == 422
        assert response.json()["field_errors"][0]["field"] == "username"
        remote_client.update_profile.assert_not_awaited()

    def test_update_credentials(self, client, remote_client):
        """Test PUT /users/me/credentials"""
        response = client.put("/users/me/credentials", json={"email": "new@b.com", "password": "hunter2"})

        assert response.status_code == 200
        assert response.json()["redirect"] == "/settings/credentials"

    def test_accounts_page(self, client):
        """Test GET /users/me/accounts"""
        response = client.get("/users/me/accounts")

        assert response.status_code == 200
        data = response.json()
        assert data["greeting"] == "Hello, Hector!"
        assert data["username"] == "sosa"
        assert data["sign_out"]["status"] == "idle"

    def test_accounts_page_reuses_cached_profile(self, client, remote_client):
        """Test GET /users/me/accounts reads the profile cached by GET /users/me/profile"""
        client.get("/users/me/profile")

        response = client.get("/users/me/accounts")

        assert response.json()["username"] == "sosa"
        assert remote_client.get_profile.await_count == 1
