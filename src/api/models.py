"""Pydantic models for API request/response."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from domain.model.user import User


class RegisterRequest(BaseModel):
    """Request model for user registration."""
    username: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    """Request model for user login."""
    email: EmailStr
    password: str = Field(..., min_length=1)


class MFAVerifyRequest(BaseModel):
    """Second login step: TOTP code plus the pending token from /auth/login."""
    model_config = ConfigDict(populate_by_name=True)

    code: str = Field(..., min_length=1, max_length=16)
    temp_token: str = Field(..., alias="tempToken", min_length=1)


class MFAEnableRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=16)


class RoleUpdateRequest(BaseModel):
    role: str


class SettingsUpdateRequest(BaseModel):
    """Profile fields a user may change about themselves."""
    model_config = ConfigDict(extra="forbid")

    username: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None


class UserResponse(BaseModel):
    """Safe user projection; never carries the password hash or MFA secret."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    username: str
    email: str
    role: str
    require_mfa: bool = Field(..., alias="requireMFA")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls.model_validate(user.to_safe_dict())


class SettingsResponse(UserResponse):
    mfa_enabled: bool = Field(..., alias="mfaEnabled")
    mfa_setup_pending: bool = Field(..., alias="mfaSetupPending")

    @classmethod
    def from_domain(cls, user: User) -> "SettingsResponse":
        return cls.model_validate({
            **user.to_safe_dict(),
            "mfaEnabled": user.mfa_enabled,
            "mfaSetupPending": user.mfa_setup_pending,
        })


class AuthResponse(BaseModel):
    """Response model for register and non-MFA login."""
    token: str
    user: UserResponse


class LoginResponse(BaseModel):
    """Either a session token with the user, or the MFA hand-off."""
    model_config = ConfigDict(populate_by_name=True)

    token: Optional[str] = None
    user: Optional[UserResponse] = None
    require_mfa: Optional[bool] = Field(None, alias="requireMFA")
    temp_token: Optional[str] = Field(None, alias="tempToken")


class TokenResponse(BaseModel):
    token: str


class MFASetupResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    qr_code: str = Field(..., alias="qrCode")
    secret: str
    otpauth_url: str = Field(..., alias="otpauthUrl")


class MessageResponse(BaseModel):
    message: str


class MFADisableResponse(BaseModel):
    message: str
    user: UserResponse
