"""Pydantic schemas for attendance-kiosk credentials."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class DeviceCreateRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=120)


class DeviceCredentialResponse(BaseModel):
    id: int
    credentialId: str = Field(
        ...,
        validation_alias=AliasChoices("credentialId", "credential_id"),
        serialization_alias="credentialId",
    )
    name: Optional[str] = None
    schoolId: int = Field(
        ...,
        validation_alias=AliasChoices("schoolId", "school_id"),
        serialization_alias="schoolId",
    )
    lastLoginAt: Optional[datetime] = Field(
        None,
        validation_alias=AliasChoices("lastLoginAt", "last_login_at"),
        serialization_alias="lastLoginAt",
    )
    createdAt: datetime = Field(
        ...,
        validation_alias=AliasChoices("createdAt", "created_at"),
        serialization_alias="createdAt",
    )

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class DeviceCreatedResponse(DeviceCredentialResponse):
    """Returned once, at creation time: the plain password is not stored."""

    password: str


class DeviceLoginRequest(BaseModel):
    id: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1, max_length=128)


class DeviceLoginResponse(BaseModel):
    access_token: str = Field(serialization_alias="accessToken")
    token_type: str = Field(default="bearer", serialization_alias="tokenType")
    expires_in: int = Field(default=0, serialization_alias="expiresIn")
    credential: DeviceCredentialResponse


class DeviceGroupResponse(BaseModel):
    """Group as exposed to kiosks (school id omitted)."""

    id: int
    name: str
    parentId: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("parentId", "parent_id"),
        serialization_alias="parentId",
    )
    updatedAt: datetime = Field(
        ...,
        validation_alias=AliasChoices("updatedAt", "updated_at"),
        serialization_alias="updatedAt",
    )

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class DeviceSubjectResponse(BaseModel):
    id: int
    name: str
    updatedAt: datetime = Field(
        ...,
        validation_alias=AliasChoices("updatedAt", "updated_at"),
        serialization_alias="updatedAt",
    )

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


__all__ = [
    "DeviceCreateRequest",
    "DeviceCredentialResponse",
    "DeviceCreatedResponse",
    "DeviceLoginRequest",
    "DeviceLoginResponse",
    "DeviceGroupResponse",
    "DeviceSubjectResponse",
]
