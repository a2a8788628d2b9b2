"""
Authentication Forms
Login, registration, one-time password and password reset flows
"""

import logging
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode

from pydantic import BaseModel

from account_portal.forms.base import FormController, FormView, Navigator
from account_portal.mutations.errors import ErrorKind, NormalizedError
from account_portal.mutations.invalidation import InvalidationBus
from account_portal.mutations.state import Failed, Idle, MutationState, Succeeded
from account_portal.schemas.user import (
    LoginModeSchema,
    LoginSchema,
    NewPasswordSchema,
    OtpLoginSchema,
    PasswordResetSchema,
    RegisterSchema,
    SearchParamError,
    VerifyOtpSchema,
)
from account_portal.services.auth_service import (
    reset_password_mutation,
    sign_in_mutation,
    sign_in_otp_mutation,
    sign_out_mutation,
    sign_up_mutation,
    update_user_mutation,
    verify_otp_mutation,
)
from account_portal.utils.config import RouteTable
from account_portal.utils.supabase_client import RemoteClient

logger = logging.getLogger(__name__)


def user_summary(user: Any) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {
        "id": getattr(user, "id", None),
        "email": getattr(user, "email", None),
    }


class LoginForm(FormController):
    """
    Sign in with a password, or request a one-time password

    ``use_otp`` in the submitted values switches to the passwordless flow,
    which only requires an email.
    """

    schema = LoginSchema

    def __init__(
        self,
        client: RemoteClient,
        bus: Optional[InvalidationBus],
        routes: RouteTable,
        navigator: Optional[Navigator] = None,
        error: Optional[SearchParamError] = None,
    ):
        super().__init__(navigator)
        self.routes = routes
        self.search_param_error = error
        self.sign_in = sign_in_mutation(
            client, bus,
            on_success=lambda data, request: self.navigate(routes.sign_in_success),
        )
        self.passwordless_sign_in = sign_in_otp_mutation(
            client, bus,
            on_success=lambda data, request: self.navigate(
                f"{routes.otp_sent}?{urlencode({'email': request['email']})}"
            ),
        )
        self.executor = self.sign_in

    def submit(self, values: Mapping[str, Any]) -> bool:
        mode = self.validate(values, LoginModeSchema)
        if mode is None:
            return False
        use_otp = mode.use_otp
        model = self.validate(values, OtpLoginSchema if use_otp else LoginSchema)
        if model is None:
            return False

        self.redirect = None
        if use_otp:
            self.executor = self.passwordless_sign_in
            self.passwordless_sign_in.execute({"email": model.email})
        else:
            self.executor = self.sign_in
            self.sign_in.execute({"email": model.email, "password": model.password})
        return True

    async def wait(self) -> None:
        await self.sign_in.wait()
        await self.passwordless_sign_in.wait()

    @property
    def session(self) -> Any:
        data = self.sign_in.data
        return getattr(data, "session", None) if data is not None else None

    def success_data(self, state: MutationState) -> Optional[Dict[str, Any]]:
        if isinstance(state, Succeeded) and state.data is not None:
            return {"user": user_summary(getattr(state.data, "user", None))}
        return None

    def view(self) -> FormView:
        if self.field_errors:
            return super().view()

        error = self.sign_in.error or self.passwordless_sign_in.error
        if error is None and self.search_param_error is not None and self.executor.is_idle:
            error = NormalizedError(kind=ErrorKind.REMOTE, message=self.search_param_error.message)

        state = self.executor.state
        status = state.status
        if error is not None and isinstance(state, Idle):
            status = Failed.status
        return FormView(
            status=status,
            is_pending=self.sign_in.is_pending or self.passwordless_sign_in.is_pending,
            is_error=error is not None,
            error=error,
            redirect=self.redirect,
            data=self.success_data(state),
        )


class RegisterForm(FormController):
    """Create an account with email and password"""

    schema = RegisterSchema

    def __init__(
        self,
        client: RemoteClient,
        bus: Optional[InvalidationBus],
        routes: RouteTable,
        navigator: Optional[Navigator] = None,
        email_redirect_to: Optional[str] = None,
    ):
        super().__init__(navigator)
        self.email_redirect_to = email_redirect_to
        self.executor = sign_up_mutation(
            client, bus,
            on_success=lambda data, request: self.navigate(routes.sign_up_success),
        )

    def to_request(self, model: BaseModel) -> Dict[str, Any]:
        request = {"email": model.email, "password": model.password}
        if self.email_redirect_to:
            request["options"] = {"email_redirect_to": self.email_redirect_to}
        return request

    def success_data(self, state: MutationState) -> Optional[Dict[str, Any]]:
        if isinstance(state, Succeeded) and state.data is not None:
            return {"user": user_summary(getattr(state.data, "user", None))}
        return None


class OtpForm(FormController):
    """Verify the emailed one-time password"""

    schema = VerifyOtpSchema

    def __init__(
        self,
        client: RemoteClient,
        bus: Optional[InvalidationBus],
        routes: RouteTable,
        navigator: Optional[Navigator] = None,
    ):
        super().__init__(navigator)
        self.executor = verify_otp_mutation(
            client, bus,
            on_success=lambda data, request: self.navigate(routes.sign_in_success),
        )

    @property
    def session(self) -> Any:
        data = self.executor.data
        return getattr(data, "session", None) if data is not None else None


class ResetPasswordForm(FormController):
    """Request a password reset email"""

    schema = PasswordResetSchema

    def __init__(
        self,
        client: RemoteClient,
        bus: Optional[InvalidationBus],
        routes: RouteTable,
        navigator: Optional[Navigator] = None,
        redirect_to: Optional[str] = None,
    ):
        super().__init__(navigator)
        self.executor = reset_password_mutation(
            client, bus,
            redirect_to=redirect_to,
            on_success=lambda data, request: self.navigate(routes.password_reset_sent),
        )

    def to_request(self, model: BaseModel) -> str:
        return model.email


class NewPasswordForm(FormController):
    """Set a new password for the user signed in through the reset link"""

    schema = NewPasswordSchema

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
            on_success=lambda data, request: self.navigate(routes.sign_in_success),
        )


class SignOutForm(FormController):
    """Sign out; there is nothing to validate"""

    schema = None

    def __init__(
        self,
        client: RemoteClient,
        bus: Optional[InvalidationBus],
        routes: RouteTable,
        navigator: Optional[Navigator] = None,
    ):
        super().__init__(navigator)
        self.executor = sign_out_mutation(
            client, bus,
            on_success=lambda data, request: self.navigate(routes.sign_out_success),
        )

    def submit(self, values: Optional[Mapping[str, Any]] = None) -> bool:
        self.redirect = None
        self.executor.execute(None)
        return True
