"""
Auth and profile service tests
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from supabase import AuthApiError

from account_portal.mutations.errors import ErrorKind, RemoteOperationError, UserFacingError
from account_portal.mutations.invalidation import CacheScope
from account_portal.mutations.results import RemoteResult
from account_portal.schemas.user import Profile
from account_portal.services.auth_service import (
    AuthService,
    is_anonymous_user,
    reset_password_mutation,
    sign_in_mutation,
    sign_in_otp_mutation,
    sign_out_mutation,
    sign_up_mutation,
)
from account_portal.services.profile_service import (
    ProfileService,
    profile_query,
    profile_query_key,
    update_profile_mutation,
)
from account_portal.utils.config import Settings
from account_portal.utils.supabase_client import SupabaseRemoteClient, create_remote_client


class TestAuthService:
    """Test auth service calls"""

    @pytest.mark.asyncio
    async def test_sign_up_rejects_existing_user(self, remote_client):
        """Test sign up with no identities means the user exists"""
        existing = SimpleNamespace(id="user-123", identities=[])
        remote_client.sign_up.return_value = RemoteResult(data=SimpleNamespace(user=existing, session=None))

        with pytest.raises(UserFacingError, match="User already registered"):
            await AuthService.sign_up_with_email_password(remote_client, {"email": "a@b.com", "password": "hunter2"})

    @pytest.mark.asyncio
    async def test_sign_up_existing_user_surfaces_message(self, remote_client, bus):
        """Test the duplicate registration message reaches the state"""
        existing = SimpleNamespace(id="user-123", identities=[])
        remote_client.sign_up.return_value = RemoteResult(data=SimpleNamespace(user=existing, session=None))
        executor = sign_up_mutation(remote_client, bus)

        state = await executor.run({"email": "a@b.com", "password": "hunter2"})

        assert state.error.kind == ErrorKind.REMOTE
        assert state.error.message == "User already registered"

    @pytest.mark.asyncio
    async def test_sign_in_raises_returned_error(self, remote_client):
        """Test returned auth errors are raised"""
        remote_client.sign_in_with_password.return_value = RemoteResult(
            error=AuthApiError("Invalid login credentials", 400, "invalid_credentials")
        )
        with pytest.raises(RemoteOperationError):
            await AuthService.sign_in_with_email_password(remote_client, {"email": "a@b.com", "password": "wrong"})

    @pytest.mark.asyncio
    async def test_otp_sign_up_creates_user(self, remote_client):
        """Test one-time password sign up creates the user"""
        await AuthService.sign_up_with_email_otp(remote_client, {"email": "a@b.com"})
        remote_client.sign_in_with_otp.assert_awaited_once_with(
            {"email": "a@b.com", "options": {"should_create_user": True}}
        )

    @pytest.mark.asyncio
    async def test_otp_sign_in_does_not_create_user(self, remote_client):
        """Test one-time password sign in never creates a user"""
        await AuthService.sign_in_with_email_otp(
            remote_client,
            {"email": "a@b.com", "options": {"email_redirect_to": "http://localhost:3000/"}}
        )
        remote_client.sign_in_with_otp.assert_awaited_once_with({
            "email": "a@b.com",
            "options": {"should_create_user": False, "email_redirect_to": "http://localhost:3000/"},
        })

    @pytest.mark.asyncio
    async def test_verify_otp_uses_email_type(self, remote_client, session):
        """Test OTP verification uses the email type"""
        data = await AuthService.verify_otp(remote_client, {"email": "a@b.com", "token": "123456"})
        remote_client.verify_otp.assert_awaited_once_with({"email": "a@b.com", "token": "123456", "type": "email"})
        assert data.session is session

    @pytest.mark.asyncio
    async def test_reset_password_redirect(self, remote_client):
        """Test the reset email links back to the portal"""
        await AuthService.reset_password_for_email(remote_client, "a@b.com", "http://localhost:3000/login/reset-password/new")
        remote_client.reset_password_for_email.assert_awaited_once_with(
            "a@b.com", {"redirect_to": "http://localhost:3000/login/reset-password/new"}
        )

    @pytest.mark.asyncio
    async def test_get_user_returns_none_on_error(self, remote_client):
        """Test an unusable session resolves to no user"""
        remote_client.get_user.return_value = RemoteResult(error=AuthApiError("Auth session missing!", 400, None))
        assert await AuthService.get_user(remote_client) is None

    @pytest.mark.parametrize("user,expected", [
        (None, False),
        (SimpleNamespace(is_anonymous=True), True),
        (SimpleNamespace(is_anonymous=False), False),
        ({"is_anonymous": True}, True),
        (SimpleNamespace(), False),
    ])
    def test_is_anonymous_user(self, user, expected):
        """Test anonymous user detection"""
        assert is_anonymous_user(user) is expected


class TestMutationFactories:
    """Test auth and profile mutation factories"""

    def test_state_changing_operations_invalidate(self, remote_client, bus):
        """Test state changing factories carry a scope"""
        assert sign_up_mutation(remote_client, bus).invalidates is CacheScope.ALL
        assert sign_in_mutation(remote_client, bus).invalidates is CacheScope.ALL
        assert sign_out_mutation(remote_client, bus).invalidates is CacheScope.ALL
        assert update_profile_mutation(remote_client, bus).invalidates is CacheScope.PROFILE

    def test_sending_emails_does_not_invalidate(self, remote_client, bus):
        """Test email sending factories do not invalidate"""
        assert not sign_in_otp_mutation(remote_client, bus).is_state_changing
        assert not reset_password_mutation(remote_client, bus).is_state_changing

    @pytest.mark.asyncio
    async def test_login_failure_message(self, remote_client, bus):
        """Test the login failure message"""
        remote_client.sign_in_with_password.return_value = RemoteResult(
            error=AuthApiError("Invalid login credentials", 400, "invalid_credentials")
        )
        executor = sign_in_mutation(remote_client, bus)

        state = await executor.run({"email": "a@b.com", "password": "wrong"})

        assert state.error.message == f"Log in was not successful, please try again; ref: {state.error.digest}"

    @pytest.mark.asyncio
    async def test_sign_out_ignores_request(self, remote_client, bus):
        """Test sign out takes no arguments"""
        executor = sign_out_mutation(remote_client, bus)
        await executor.run(None)
        remote_client.sign_out.assert_awaited_once_with()
        assert executor.is_success


class TestProfileService:
    """Test profile service calls"""

    @pytest.mark.asyncio
    async def test_get_profile(self, remote_client):
        """Test reading a profile"""
        profile = await ProfileService.get_profile(remote_client, "user-123")
        assert isinstance(profile, Profile)
        assert profile.username == "sosa"

    @pytest.mark.asyncio
    async def test_get_missing_profile(self, remote_client):
        """Test a missing profile is None"""
        remote_client.get_profile.return_value = RemoteResult(data=None)
        assert await ProfileService.get_profile(remote_client, "user-404") is None

    @pytest.mark.asyncio
    async def test_update_missing_profile(self, remote_client):
        """Test updating a missing profile fails"""
        remote_client.update_profile = AsyncMock(return_value=RemoteResult(data=None))
        with pytest.raises(UserFacingError, match="Profile not found"):
            await ProfileService.update_profile(remote_client, {"id": "user-404", "username": "nobody"})

    @pytest.mark.asyncio
    async def test_profile_query_refetches_after_update(self, remote_client, bus):
        """Test the profile query refetches after an update"""
        query = profile_query(remote_client, "user-123", bus)
        await query.result()
        assert query.key == profile_query_key("user-123")

        executor = update_profile_mutation(remote_client, bus)
        await executor.run({"id": "user-123", "username": "hsosa"})
        await query.wait()

        assert remote_client.get_profile.await_count == 2


def supabase_client_mock():
    client = MagicMock()
    client.auth = MagicMock()
    for method in ("sign_up", "sign_in_with_password", "sign_in_with_otp", "verify_otp",
                   "reset_password_for_email", "sign_out", "update_user", "get_user", "set_session"):
        setattr(client.auth, method, AsyncMock())
    return client


def table_mock(client, response):
    """Chainable postgrest builder whose execute() resolves to response"""
    builder = MagicMock()
    for method in ("select", "eq", "maybe_single", "update"):
        getattr(builder, method).return_value = builder
    builder.execute = AsyncMock(return_value=response)
    client.table.return_value = builder
    return builder


class TestSupabaseRemoteClient:
    """Test the Supabase remote client adapter"""

    @pytest.mark.asyncio
    async def test_auth_api_error_is_returned(self):
        """Test AuthApiError is returned, not raised"""
        client = supabase_client_mock()
        error = AuthApiError("Invalid login credentials", 400, "invalid_credentials")
        client.auth.sign_in_with_password.side_effect = error

        result = await SupabaseRemoteClient(client).sign_in_with_password({"email": "a@b.com", "password": "x"})

        assert result.error is error
        assert result.data is None

    @pytest.mark.asyncio
    async def test_success_data(self, session):
        """Test SDK responses become result data"""
        client = supabase_client_mock()
        response = SimpleNamespace(user=None, session=session)
        client.auth.verify_otp.return_value = response

        result = await SupabaseRemoteClient(client).verify_otp({"email": "a@b.com", "token": "123456", "type": "email"})

        assert result.ok
        assert result.data is response

    @pytest.mark.asyncio
    async def test_get_user(self, user):
        """Test get_user unwraps the user"""
        client = supabase_client_mock()
        client.auth.get_user.return_value = SimpleNamespace(user=user)
        assert (await SupabaseRemoteClient(client).get_user()).data is user

        client.auth.get_user.return_value = None
        assert (await SupabaseRemoteClient(client).get_user()).data is None

    @pytest.mark.asyncio
    async def test_get_profile(self, sample_profile_data):
        """Test reading a profile"""
        client = supabase_client_mock()
        builder = table_mock(client, SimpleNamespace(data=sample_profile_data))

        result = await SupabaseRemoteClient(client, profiles_table="profiles").get_profile("user-123")

        client.table.assert_called_once_with("profiles")
        builder.eq.assert_called_once_with("id", "user-123")
        assert result.data == sample_profile_data

    @pytest.mark.asyncio
    async def test_get_missing_profile(self):
        """Test a missing profile is None"""
        client = supabase_client_mock()
        table_mock(client, None)
        assert (await SupabaseRemoteClient(client).get_profile("user-404")).data is None

    @pytest.mark.asyncio
    async def test_update_profile_does_not_write_id(self, sample_profile_data):
        """Test profile updates never write the id column"""
        client = supabase_client_mock()
        builder = table_mock(client, SimpleNamespace(data=[sample_profile_data]))

        result = await SupabaseRemoteClient(client).update_profile({"id": "user-123", "username": "sosa"})

        builder.update.assert_called_once_with({"username": "sosa"})
        builder.eq.assert_called_once_with("id", "user-123")
        assert result.data == sample_profile_data

    @pytest.mark.asyncio
    async def test_unconfigured_client(self):
        """Test a client cannot be built without credentials"""
        settings = Settings(supabase_url="", supabase_anon_key="")
        with pytest.raises(RuntimeError):
            await create_remote_client(settings)


class TestSettings:
    """Test application settings"""

    def test_site_url_is_normalized(self):
        """Test site URL normalization"""
        assert Settings(site_url="portal.example.com").site_url == "https://portal.example.com/"
        assert Settings(site_url="http://localhost:3000/").site_url == "http://localhost:3000/"

    def test_invalid_log_format(self):
        """Test unknown log formats are rejected"""
        with pytest.raises(ValueError):
            Settings(log_format="xml")

    def test_nested_route_override(self, monkeypatch):
        """Test route targets can be overridden from the environment"""
        monkeypatch.setenv("ROUTES__SIGN_IN_SUCCESS", "/dashboard")
        settings = Settings()
        assert settings.routes.sign_in_success == "/dashboard"
        assert settings.routes.login_page == "/login"
