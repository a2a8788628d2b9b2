"""
User data schemas

Pydantic models validating form input before any remote call, and the
remotely owned profile record.
"""

import json
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

PASSWORD_MIN_LENGTH = 5
NAME_MIN_LENGTH = 3
OTP_LENGTH = 6


def _check_email(v: str) -> str:
    try:
        validate_email(v, check_deliverability=False)
    except EmailNotValidError:
        raise ValueError("Invalid email address")
    return v.strip().lower()


def _check_min_length(v: str, length: int) -> str:
    if len(v) < length:
        raise ValueError(f"Must be {length} or more characters long")
    return v


class FormSchema(BaseModel):
    """Base for submitted form payloads; submitted requests are immutable"""
    model_config = ConfigDict(frozen=True)


class EmailSchema(FormSchema):
    """Schema for flows that only need an email"""
    email: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return _check_email(v)


class EmailPasswordSchema(EmailSchema):
    """Schema for email + password credentials"""
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return _check_min_length(v, PASSWORD_MIN_LENGTH)


class LoginModeSchema(FormSchema):
    """Which login flow was requested; the JSON string "false" means False"""
    use_otp: bool = False


class LoginSchema(EmailPasswordSchema):
    """Schema for password sign in"""


class OtpLoginSchema(EmailSchema):
    """Schema for passwordless (one-time password) sign in"""


class RegisterSchema(EmailPasswordSchema):
    """Schema for account registration"""


class VerifyOtpSchema(EmailSchema):
    """Schema for one-time password verification"""
    token: str

    @field_validator("token")
    @classmethod
    def validate_token(cls, v):
        if len(v) != OTP_LENGTH or not v.isdigit():
            raise ValueError(f"Must be a {OTP_LENGTH} digit code")
        return v


class PasswordResetSchema(EmailSchema):
    """Schema for password reset request"""


class NewPasswordSchema(FormSchema):
    """Schema for setting a new password after a reset"""
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return _check_min_length(v, PASSWORD_MIN_LENGTH)


class CredentialsSchema(EmailPasswordSchema):
    """Schema for changing email and password"""


class ProfileUpdateSchema(FormSchema):
    """Schema for profile settings"""
    username: str
    full_name: str
    preferred_name: str

    @field_validator("username", "full_name", "preferred_name")
    @classmethod
    def validate_names(cls, v):
        return _check_min_length(v, NAME_MIN_LENGTH)


class Profile(BaseModel):
    """Row of the remote profiles table"""
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str
    username: str
    full_name: Optional[str] = None
    preferred_name: Optional[str] = None
    email: str


class SearchParamError(BaseModel):
    """Error forwarded to the login page in the ``error`` query parameter"""
    message: str = "An error occurred"
    status: int = 500

    @classmethod
    def parse(cls, raw: Optional[str]) -> "SearchParamError":
        """Lenient parse: every malformed part falls back to its default"""
        try:
            payload = json.loads(raw or "")
        except (TypeError, ValueError):
            return cls()
        if not isinstance(payload, dict):
            return cls()

        values = {}
        if isinstance(payload.get("message"), str):
            values["message"] = payload["message"]
        status = payload.get("status")
        if isinstance(status, (int, float)) and not isinstance(status, bool):
            values["status"] = int(status)
        try:
            return cls(**values)
        except ValidationError:
            return cls()
