"""Pydantic schemas for School resources."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from penwwws.models.school import SchoolRole


def _strip_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("Name cannot be empty")
    return value


class SchoolCreateRequest(BaseModel):
    """Payload for creating a new School."""

    name: str = Field(..., min_length=1, max_length=120)

    @field_validator("name")
    @classmethod
    def normalise_name(cls, value: Optional[str]) -> Optional[str]:
        return _strip_name(value)


class SchoolUpdateRequest(BaseModel):
    """Payload for updating an existing School."""

    name: str = Field(..., min_length=1, max_length=120)

    @field_validator("name")
    @classmethod
    def normalise_name(cls, value: Optional[str]) -> Optional[str]:
        return _strip_name(value)


class SchoolResponse(BaseModel):
    """Serialized representation of a School."""

    id: int
    name: str
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


class UserSchoolResponse(SchoolResponse):
    """A school seen from one of its members."""

    role: SchoolRole


class MemberRoleUpdateRequest(BaseModel):
    role: SchoolRole


__all__ = [
    "SchoolCreateRequest",
    "SchoolUpdateRequest",
    "SchoolResponse",
    "UserSchoolResponse",
    "MemberRoleUpdateRequest",
]
