# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261018v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the auth endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from core.responses import ApiModel
from core.security import BCRYPT_MAX_PASSWORD_BYTES


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")
    return value


# -- Requests --------------------------------------------------------------


class SignUpRequest(ApiModel):
    name: str = Field(min_length=2, max_length=255)
    email: EmailStr
    password: str = Field(min_length=6)
    is_freelancer: bool = False
    is_client: bool = False

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class LoginRequest(ApiModel):
    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class LogoutRequest(ApiModel):
    # Fallback for clients that cannot send the cookie
    refresh_token: Optional[str] = None


class ForgotPasswordRequest(ApiModel):
    email: EmailStr


class ResetPasswordRequest(ApiModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=6)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class VerifyEmailRequest(ApiModel):
    token: str = Field(min_length=1)


class VerifyPhoneRequest(ApiModel):
    phone: str = Field(min_length=10, max_length=32)
    code: str = Field(min_length=4)


# -- Responses -------------------------------------------------------------


class UserResponse(ApiModel):
    """Everything about a user except the password hash."""

    id: str
    name: str
    email: str
    phone: Optional[str] = None
    is_freelancer: bool
    is_client: bool
    is_email_verified: bool
    is_phone_verified: bool
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AuthPayload(ApiModel):
    user: UserResponse
    access_token: str


class AccessTokenPayload(ApiModel):
    access_token: str
