"""
Data schemas for the account portal
"""

from .user import (
    CredentialsSchema,
    EmailSchema,
    LoginModeSchema,
    LoginSchema,
    NewPasswordSchema,
    OtpLoginSchema,
    PasswordResetSchema,
    Profile,
    ProfileUpdateSchema,
    RegisterSchema,
    SearchParamError,
    VerifyOtpSchema,
)

__all__ = [
    "CredentialsSchema",
    "EmailSchema",
    "LoginModeSchema",
    "LoginSchema",
    "NewPasswordSchema",
    "OtpLoginSchema",
    "PasswordResetSchema",
    "Profile",
    "ProfileUpdateSchema",
    "RegisterSchema",
    "SearchParamError",
    "VerifyOtpSchema",
]
