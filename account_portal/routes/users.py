"""
User Routes
Profile, credentials and accounts settings for the signed-in user
"""

import logging
from functools import partial
from typing import Any, Dict

from fastapi import APIRouter, Body, HTTPException, status

from account_portal.forms.base import RedirectRecorder
from account_portal.forms.settings import AccountsView, CredentialsForm, ProfileForm
from account_portal.mutations.invalidation import CacheScope
from account_portal.routes.helpers import ERROR_STATUS_CODES, render_view
from account_portal.services.profile_service import ProfileService, profile_query_key
from account_portal.utils.dependencies import (
    CurrentUser,
    InvalidationBusDep,
    QueryCacheDep,
    RemoteClientDep,
    SettingsDep,
)
from account_portal.utils.logger import get_audit_logger

logger = logging.getLogger(__name__)
audit = get_audit_logger()

router = APIRouter()


@router.get("/me/profile")
async def get_profile(
    current_user: CurrentUser,
    remote: RemoteClientDep,
    cache: QueryCacheDep
):
    """
    Get the signed-in user's profile

    Served from the query cache until a profile mutation invalidates it
    """
    query = await cache.fetch(
        profile_query_key(current_user.id),
        partial(ProfileService.get_profile, remote, current_user.id),
        scope=CacheScope.PROFILE
    )

    if query.is_error:
        raise HTTPException(
            status_code=ERROR_STATUS_CODES[query.error.kind],
            detail=query.error.message
        )
    if query.data is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No data found! Please contact the administrator for more information."
        )
    return query.data.model_dump()


@router.put("/me/profile")
async def update_profile(
    current_user: CurrentUser,
    remote: RemoteClientDep,
    bus: InvalidationBusDep,
    settings: SettingsDep,
    payload: Dict[str, Any] = Body(...)
):
    """Update username, full name and preferred name"""
    form = ProfileForm(remote, bus, settings.routes, current_user.id, RedirectRecorder())
    view = await form.submit_and_wait(payload)
    if form.executor.is_success:
        audit.log_user_action("update", "profile", user_id=current_user.id)
    return render_view(view)


@router.put("/me/credentials")
async def update_credentials(
    current_user: CurrentUser,
    remote: RemoteClientDep,
    bus: InvalidationBusDep,
    settings: SettingsDep,
    payload: Dict[str, Any] = Body(...)
):
    """Change email and password"""
    form = CredentialsForm(remote, bus, settings.routes, RedirectRecorder())
    view = await form.submit_and_wait(payload)
    if form.executor.is_success:
        audit.log_user_action("update", "credentials", user_id=current_user.id)
    return render_view(view)


@router.get("/me/accounts")
async def get_accounts(
    current_user: CurrentUser,
    remote: RemoteClientDep,
    bus: InvalidationBusDep,
    cache: QueryCacheDep,
    settings: SettingsDep
):
    """Accounts page state: greeting, username and email"""
    query = cache.get(profile_query_key(current_user.id), scope=CacheScope.PROFILE)
    view = AccountsView(remote, bus, settings.routes, current_user.id, query=query)
    await view.load()
    return view.view()
