"""Pydantic schemas for user resources."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field

from penwwws.models.school import SchoolRole
from penwwws.models.user import AuthProvider


class UserResponse(BaseModel):
    """Public representation of a user account."""

    id: int
    email: EmailStr
    fullName: str = Field(
        ...,
        validation_alias=AliasChoices("fullName", "full_name"),
        serialization_alias="fullName",
    )
    avatarUrl: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("avatarUrl", "avatar_url"),
        serialization_alias="avatarUrl",
    )
    provider: AuthProvider
    isEmailVerified: bool = Field(
        ...,
        validation_alias=AliasChoices("isEmailVerified", "is_email_verified"),
        serialization_alias="isEmailVerified",
    )
    createdAt: datetime = Field(
        ...,
        validation_alias=AliasChoices("createdAt", "created_at"),
        serialization_alias="createdAt",
    )
    updatedAt: datetime = Field(
        ...,
        validation_alias=AliasChoices("updatedAt", "updated_at"),
        serialization_alias="updatedAt",
    )

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class MemberResponse(BaseModel):
    """A user listed as a member of a school, group or subject."""

    id: int
    email: EmailStr
    fullName: str = Field(
        ...,
        validation_alias=AliasChoices("fullName", "full_name"),
        serialization_alias="fullName",
    )
    avatarUrl: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("avatarUrl", "avatar_url"),
        serialization_alias="avatarUrl",
    )
    role: Optional[SchoolRole] = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


__all__ = ["UserResponse", "MemberResponse"]
