"""
Settings Forms
Profile, credentials and accounts pages
"""

import logging
from functools import partial
from typing import Any, Dict, Optional

from pydantic import BaseModel

from account_portal.forms.auth import SignOutForm
from account_portal.forms.base import FormController, FormView, Navigator
from account_portal.mutations.invalidation import InvalidationBus
from account_portal.mutations.query import Query
from account_portal.mutations.state import MutationState, Succeeded
from account_portal.schemas.user import CredentialsSchema, Profile, ProfileUpdateSchema
from account_portal.services.auth_service import update_user_mutation
from account_portal.services.profile_service import ProfileService, profile_query, update_profile_mutation
from account_portal.utils.config import RouteTable
from account_portal.utils.supabase_client import RemoteClient

logger = logging.getLogger(__name__)


class CredentialsForm(FormController):
    """Change the signed-in user's email and password"""

    schema = CredentialsSchema

    def __init__(
        self,
        client: RemoteClient,
        bus: Optional[InvalidationBus],
        routes: RouteTable,
        navigator: Optional[Navigator] = None,
    ):
        super().__init__(navigator)
        self.executor = update_user_mutation(
            client, bus,
            on_success=lambda data, request: self.navigate(routes.credentials_update_success),
        )


class ProfileForm(FormController):
    """Update username, full name and preferred name"""

    schema = ProfileUpdateSchema

    def __init__(
        self,
        client: RemoteClient,
        bus: Optional[InvalidationBus],
        routes: RouteTable,
        profile_id: str,
        navigator: Optional[Navigator] = None,
    ):
        super().__init__(navigator)
        self.profile_id = profile_id
        self.executor = update_profile_mutation(
            client, bus,
            on_success=lambda data, request: self.navigate(routes.profile_update_success),
            on_error=lambda error, request: logger.error(f"Profile update failed: {error.message}"),
        )

    def to_request(self, model: BaseModel) -> Dict[str, Any]:
        return {"id": self.profile_id, **model.model_dump()}

    def success_data(self, state: MutationState) -> Optional[Dict[str, Any]]:
        if isinstance(state, Succeeded) and isinstance(state.data, Profile):
            return {"profile": state.data.model_dump()}
        return None


class AccountsView:
    """Accounts page: the user's profile plus a sign-out action"""

    def __init__(
        self,
        client: RemoteClient,
        bus: Optional[InvalidationBus],
        routes: RouteTable,
        user_id: str,
        navigator: Optional[Navigator] = None,
        query: Optional[Query] = None,
    ):
        self._fetch_profile = partial(ProfileService.get_profile, client, user_id)
        self.profile: Query = query or profile_query(client, user_id, bus)
        self.sign_out_form = SignOutForm(client, bus, routes, navigator)

    async def load(self) -> Optional[Profile]:
        # Shared cached queries keep no fetcher of their own
        return await self.profile.result(self._fetch_profile)

    def sign_out(self) -> None:
        self.sign_out_form.submit()

    async def sign_out_and_wait(self) -> FormView:
        return await self.sign_out_form.submit_and_wait({})

    def view(self) -> Dict[str, Any]:
        profile = self.profile
        sign_out = self.sign_out_form.view()
        result: Dict[str, Any] = {
            "is_loading": profile.is_loading,
            "is_error": profile.is_error,
            "error_message": profile.error.message if profile.error else None,
            "found": profile.data is not None,
            "sign_out": sign_out.to_dict(),
        }
        if profile.data is not None:
            data: Profile = profile.data
            result.update({
                "username": data.username,
                "email": data.email,
                "initials": data.username.upper()[:2],
                "greeting": f"Hello, {data.preferred_name}!" if data.preferred_name else "Hi there!",
            })
        return result

    def close(self) -> None:
        self.profile.close()
        self.sign_out_form.dispose()
