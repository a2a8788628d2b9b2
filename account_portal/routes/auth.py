"""
Authentication Routes
Login, one-time password, registration, password reset and logout
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Query

from account_portal.forms.auth import (
    LoginForm,
    NewPasswordForm,
    OtpForm,
    RegisterForm,
    ResetPasswordForm,
    SignOutForm,
)
from account_portal.forms.base import RedirectRecorder
from account_portal.forms.pages import resolve_login_page
from account_portal.routes.helpers import clear_session, render_view, store_session
from account_portal.schemas.user import SearchParamError
from account_portal.services.auth_service import AuthService
from account_portal.services.profile_service import profile_query_key
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


@router.get("/login")
async def login_page(
    remote: RemoteClientDep,
    settings: SettingsDep,
    error: Optional[str] = Query(None)
):
    """
    Login page state

    Signed-in visitors are sent on; otherwise returns the (optional) error
    forwarded in the ``error`` query parameter.
    """
    redirect = await resolve_login_page(remote, settings.routes)
    if redirect:
        return {"redirect": redirect}

    parsed = SearchParamError.parse(error) if error is not None else None
    return {
        "redirect": None,
        "error": parsed.model_dump() if parsed else None
    }


@router.post("/login")
async def login(
    remote: RemoteClientDep,
    bus: InvalidationBusDep,
    settings: SettingsDep,
    payload: Dict[str, Any] = Body(...)
):
    """
    Sign in with email and password, or request a one-time password
    when ``use_otp`` is set
    """
    form = LoginForm(remote, bus, settings.routes, RedirectRecorder())
    view = await form.submit_and_wait(payload)

    response = render_view(view)
    if form.sign_in.is_success:
        store_session(response, form.session, settings)
        audit.log_user_action("sign_in", "session", email=payload.get("email"))
    elif form.sign_in.is_error:
        audit.log_user_action(
            "sign_in", "session",
            email=payload.get("email"),
            outcome="failure",
            details={"digest": form.sign_in.error.digest}
        )
    return response


@router.post("/otp/verify")
async def verify_otp(
    remote: RemoteClientDep,
    bus: InvalidationBusDep,
    settings: SettingsDep,
    payload: Dict[str, Any] = Body(...)
):
    """Exchange an emailed one-time password for a session"""
    form = OtpForm(remote, bus, settings.routes, RedirectRecorder())
    view = await form.submit_and_wait(payload)

    response = render_view(view)
    if form.executor.is_success:
        store_session(response, form.session, settings)
        audit.log_user_action("verify_otp", "session", email=payload.get("email"))
    return response


@router.post("/register")
async def register(
    remote: RemoteClientDep,
    bus: InvalidationBusDep,
    settings: SettingsDep,
    payload: Dict[str, Any] = Body(...)
):
    """Create an account; the confirmation email links to profile settings"""
    form = RegisterForm(
        remote, bus, settings.routes, RedirectRecorder(),
        email_redirect_to=settings.site_url + settings.routes.profile_settings.lstrip("/")
    )
    view = await form.submit_and_wait(payload)
    if form.executor.is_success:
        audit.log_user_action("sign_up", "account", email=payload.get("email"))
    return render_view(view)


@router.post("/password-reset")
async def request_password_reset(
    remote: RemoteClientDep,
    bus: InvalidationBusDep,
    settings: SettingsDep,
    payload: Dict[str, Any] = Body(...)
):
    """Send a password reset email"""
    form = ResetPasswordForm(
        remote, bus, settings.routes, RedirectRecorder(),
        redirect_to=settings.site_url + "login/reset-password/new"
    )
    return render_view(await form.submit_and_wait(payload))


@router.post("/password-reset/new")
async def set_new_password(
    current_user: CurrentUser,
    remote: RemoteClientDep,
    bus: InvalidationBusDep,
    settings: SettingsDep,
    payload: Dict[str, Any] = Body(...)
):
    """Set a new password for the user signed in through the reset link"""
    form = NewPasswordForm(remote, bus, settings.routes, RedirectRecorder())
    view = await form.submit_and_wait(payload)
    if form.executor.is_success:
        audit.log_user_action("password_reset", "credentials", user_id=current_user.id)
    return render_view(view)


@router.post("/logout")
async def logout(
    remote: RemoteClientDep,
    bus: InvalidationBusDep,
    cache: QueryCacheDep,
    settings: SettingsDep
):
    """Sign out, drop the session cookies and the user's cached reads"""
    user = await AuthService.get_user(remote)
    form = SignOutForm(remote, bus, settings.routes, RedirectRecorder())
    view = await form.submit_and_wait({})

    response = render_view(view)
    if form.executor.is_success:
        clear_session(response)
        if user is not None:
            cache.remove(profile_query_key(user.id))
        audit.log_user_action("sign_out", "session", user_id=getattr(user, "id", None))
    return response
