"""Pydantic schemas for invitation tokens and admissions."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator

from penwwws.models.invitation import AdmissionStatus
from penwwws.models.school import SchoolRole
from penwwws.views.users import MemberResponse


class InvitationCreateRequest(BaseModel):
    """Payload to mint an invitation link, optionally e-mailed to someone."""

    role: SchoolRole = SchoolRole.STUDENT
    email: Optional[EmailStr] = None
    expiresInHours: Optional[int] = Field(
        None,
        ge=1,
        le=24 * 365,
        validation_alias=AliasChoices("expiresInHours", "expires_in_hours"),
        serialization_alias="expiresInHours",
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("role")
    @classmethod
    def forbid_super_admin(cls, value: SchoolRole) -> SchoolRole:
        if value == SchoolRole.SUPER_ADMIN:
            raise ValueError("Invitations cannot grant the super admin role")
        return value


class InvitationResponse(BaseModel):
    id: int
    token: str
    role: SchoolRole
    email: Optional[str] = None
    schoolId: int = Field(
        ...,
        validation_alias=AliasChoices("schoolId", "school_id"),
        serialization_alias="schoolId",
    )
    expiresAt: Optional[datetime] = Field(
        None,
        validation_alias=AliasChoices("expiresAt", "expires_at"),
        serialization_alias="expiresAt",
    )
    createdAt: datetime = Field(
        ...,
        validation_alias=AliasChoices("createdAt", "created_at"),
        serialization_alias="createdAt",
    )

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class AdmissionReviewRequest(BaseModel):
    accept: bool


class AdmissionResponse(BaseModel):
    id: int
    schoolId: int = Field(
        ...,
        validation_alias=AliasChoices("schoolId", "school_id"),
        serialization_alias="schoolId",
    )
    role: SchoolRole
    status: AdmissionStatus
    user: MemberResponse
    createdAt: datetime = Field(
        ...,
        validation_alias=AliasChoices("createdAt", "created_at"),
        serialization_alias="createdAt",
    )

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


__all__ = [
    "InvitationCreateRequest",
    "InvitationResponse",
    "AdmissionReviewRequest",
    "AdmissionResponse",
]
