"""Pydantic schemas related to authentication."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator

from penwwws.utils import is_strong_password
from penwwws.views.users import UserResponse

_PASSWORD_RULE_MESSAGE = (
    "Password must be at least 8 characters long and contain a letter, "
    "a digit and a symbol"
)


class RegisterRequest(BaseModel):
    """Request model for account registration."""

    fullName: str = Field(
        ...,
        min_length=1,
        max_length=120,
        validation_alias=AliasChoices("fullName", "full_name"),
        serialization_alias="fullName",
    )
    email: EmailStr
    password: str = Field(..., max_length=128)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("fullName")
    @classmethod
    def validate_full_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Full name cannot be empty")
        return value

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not is_strong_password(value):
            raise ValueError(_PASSWORD_RULE_MESSAGE)
        return value


class LoginRequest(BaseModel):
    """Credentials submitted to obtain an access token."""

    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class OAuthRequest(BaseModel):
    """Provider access token exchanged for a Penwwws session."""

    token: str = Field(..., min_length=1)
    provider: str = Field(..., min_length=1)


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirmRequest(BaseModel):
    password: str = Field(..., max_length=128)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not is_strong_password(value):
            raise ValueError(_PASSWORD_RULE_MESSAGE)
        return value


class TokenResponse(BaseModel):
    """Standard access token response body."""

    access_token: str = Field(serialization_alias="accessToken")
    token_type: str = Field(default="bearer", serialization_alias="tokenType")
    expires_in: int = Field(
        default=0,
        serialization_alias="expiresIn",
        description="Seconds until the token expires",
    )
    user: UserResponse


__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "OAuthRequest",
    "PasswordResetRequest",
    "PasswordResetConfirmRequest",
    "TokenResponse",
]
