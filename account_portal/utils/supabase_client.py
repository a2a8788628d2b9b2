"""
Supabase Client
Remote identity/profile client port and its Supabase adapter
"""

import logging
from typing import Any, Dict, Optional, Protocol

from supabase import AsyncClient, AuthApiError, AuthError, acreate_client
from supabase.lib.client_options import AsyncClientOptions

from account_portal.mutations.results import RemoteResult
from account_portal.utils.config import Settings

logger = logging.getLogger(__name__)


class RemoteClient(Protocol):
    """Operations the portal consumes from the identity/profile service"""

    async def sign_up(self, credentials: Dict[str, Any]) -> RemoteResult:
        ...

    async def sign_in_with_password(self, credentials: Dict[str, Any]) -> RemoteResult:
        ...

    async def sign_in_with_otp(self, credentials: Dict[str, Any]) -> RemoteResult:
        ...

    async def verify_otp(self, params: Dict[str, Any]) -> RemoteResult:
        ...

    async def reset_password_for_email(self, email: str, options: Optional[Dict[str, Any]] = None) -> RemoteResult:
        ...

    async def sign_out(self) -> RemoteResult:
        ...

    async def update_user(self, attributes: Dict[str, Any]) -> RemoteResult:
        ...

    async def get_user(self) -> RemoteResult:
        ...

    async def get_profile(self, profile_id: str) -> RemoteResult:
        ...

    async def update_profile(self, patch: Dict[str, Any]) -> RemoteResult:
        ...


class SupabaseRemoteClient:
    """
    Supabase-backed RemoteClient

    Rejections reported by the auth API come back in the error field;
    transport failures and anything else are raised.
    """

    def __init__(self, client: AsyncClient, profiles_table: str = "profiles"):
        self.client = client
        self.profiles_table = profiles_table

    async def sign_up(self, credentials: Dict[str, Any]) -> RemoteResult:
        try:
            response = await self.client.auth.sign_up(credentials)
        except AuthApiError as e:
            return RemoteResult(error=e)
        return RemoteResult(data=response)

    async def sign_in_with_password(self, credentials: Dict[str, Any]) -> RemoteResult:
        try:
            response = await self.client.auth.sign_in_with_password(credentials)
        except AuthApiError as e:
            return RemoteResult(error=e)
        return RemoteResult(data=response)

    async def sign_in_with_otp(self, credentials: Dict[str, Any]) -> RemoteResult:
        try:
            response = await self.client.auth.sign_in_with_otp(credentials)
        except AuthApiError as e:
            return RemoteResult(error=e)
        return RemoteResult(data=response)

    async def verify_otp(self, params: Dict[str, Any]) -> RemoteResult:
        try:
            response = await self.client.auth.verify_otp(params)
        except AuthApiError as e:
            return RemoteResult(error=e)
        return RemoteResult(data=response)

    async def reset_password_for_email(self, email: str, options: Optional[Dict[str, Any]] = None) -> RemoteResult:
        try:
            await self.client.auth.reset_password_for_email(email, options or {})
        except AuthApiError as e:
            return RemoteResult(error=e)
        return RemoteResult()

    async def sign_out(self) -> RemoteResult:
        try:
            await self.client.auth.sign_out()
        except AuthApiError as e:
            return RemoteResult(error=e)
        return RemoteResult()

    async def update_user(self, attributes: Dict[str, Any]) -> RemoteResult:
        try:
            response = await self.client.auth.update_user(attributes)
        except AuthApiError as e:
            return RemoteResult(error=e)
        return RemoteResult(data=response)

    async def get_user(self) -> RemoteResult:
        try:
            response = await self.client.auth.get_user()
        except AuthApiError as e:
            return RemoteResult(error=e)
        return RemoteResult(data=response.user if response else None)

    async def get_profile(self, profile_id: str) -> RemoteResult:
        response = await (
            self.client.table(self.profiles_table)
            .select("*")
            .eq("id", profile_id)
            .maybe_single()
            .execute()
        )
        # maybe_single() yields no response at all when the row is missing
        return RemoteResult(data=response.data if response else None)

    async def update_profile(self, patch: Dict[str, Any]) -> RemoteResult:
        values = {k: v for k, v in patch.items() if k != "id"}
        response = await (
            self.client.table(self.profiles_table)
            .update(values)
            .eq("id", patch["id"])
            .execute()
        )
        rows = response.data or []
        return RemoteResult(data=rows[0] if rows else None)


async def create_remote_client(
    settings: Settings,
    access_token: Optional[str] = None,
    refresh_token: Optional[str] = None
) -> SupabaseRemoteClient:
    """
    Build a Supabase client, restoring the caller's session when tokens are given

    Sessions live in cookies, so the client neither persists nor refreshes
    them on its own.
    """
    if not settings.is_configured():
        raise RuntimeError("Missing SUPABASE_URL or SUPABASE_ANON_KEY in environment")

    client = await acreate_client(
        settings.supabase_url,
        settings.supabase_anon_key,
        options=AsyncClientOptions(persist_session=False, auto_refresh_token=False)
    )

    if access_token and refresh_token:
        try:
            await client.auth.set_session(access_token, refresh_token)
        except AuthError as e:
            logger.warning(f"Discarding unusable session tokens: {e}")

    return SupabaseRemoteClient(client, profiles_table=settings.profiles_table)
