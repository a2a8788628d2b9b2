"""
Pytest fixtures for account portal tests
"""

from types import SimpleNamespace
from typing import Any, Dict
from unittest.mock import AsyncMock, MagicMock

import pytest

from account_portal.mutations.invalidation import InvalidationBus
from account_portal.mutations.results import RemoteResult
from account_portal.utils.config import RouteTable


@pytest.fixture
def user():
    """Signed-in Supabase user"""
    return SimpleNamespace(
        id="user-123",
        email="a@b.com",
        is_anonymous=False,
        identities=[{"id": "identity-1", "provider": "email"}],
    )


@pytest.fixture
def session():
    """Supabase session"""
    return SimpleNamespace(
        access_token="access-token-1",
        refresh_token="refresh-token-1",
        expires_in=3600,
    )


@pytest.fixture
def sample_profile_data() -> Dict[str, Any]:
    """Row of the profiles table"""
    return {
        "id": "user-123",
        "username": "sosa",
        "full_name": "Hector Sosa",
        "preferred_name": "Hector",
        "email": "a@b.com",
    }


@pytest.fixture
def remote_client(user, session, sample_profile_data):
    """Remote identity/profile client where every call succeeds"""
    client = MagicMock()
    client.sign_up = AsyncMock(return_value=RemoteResult(data=SimpleNamespace(user=user, session=None)))
    client.sign_in_with_password = AsyncMock(return_value=RemoteResult(data=SimpleNamespace(user=user, session=session)))
    client.sign_in_with_otp = AsyncMock(return_value=RemoteResult())
    client.verify_otp = AsyncMock(return_value=RemoteResult(data=SimpleNamespace(user=user, session=session)))
    client.reset_password_for_email = AsyncMock(return_value=RemoteResult())
    client.sign_out = AsyncMock(return_value=RemoteResult())
    client.update_user = AsyncMock(return_value=RemoteResult(data=SimpleNamespace(user=user)))
    client.get_user = AsyncMock(return_value=RemoteResult(data=user))
    client.get_profile = AsyncMock(return_value=RemoteResult(data=dict(sample_profile_data)))
    client.update_profile = AsyncMock(
        side_effect=lambda patch: RemoteResult(data={**sample_profile_data, **patch})
    )
    return client


@pytest.fixture
def bus():
    return InvalidationBus()


@pytest.fixture
def routes():
    return RouteTable()


@pytest.fixture
def navigator():
    return MagicMock()
