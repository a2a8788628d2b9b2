"""
Form controllers for the account portal pages
"""

from .auth import LoginForm, NewPasswordForm, OtpForm, RegisterForm, ResetPasswordForm, SignOutForm
from .base import FormController, FormView, Navigator, RedirectRecorder
from .pages import require_user, resolve_login_page
from .settings import AccountsView, CredentialsForm, ProfileForm

__all__ = [
    "LoginForm",
    "NewPasswordForm",
    "OtpForm",
    "RegisterForm",
    "ResetPasswordForm",
    "SignOutForm",
    "FormController",
    "FormView",
    "Navigator",
    "RedirectRecorder",
    "require_user",
    "resolve_login_page",
    "AccountsView",
    "CredentialsForm",
    "ProfileForm",
]
