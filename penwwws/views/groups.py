"""Pydantic schemas for group management."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from penwwws.views.users import MemberResponse


def _strip_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("Name cannot be empty")
    return value


class GroupCreateRequest(BaseModel):
    """Payload to create a group, optionally under a parent group."""

    name: str = Field(..., min_length=1, max_length=120)
    parentId: Optional[int] = Field(
        None,
        ge=1,
        validation_alias=AliasChoices("parentId", "parent_id"),
        serialization_alias="parentId",
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("name")
    @classmethod
    def normalise_name(cls, value: Optional[str]) -> Optional[str]:
        return _strip_name(value)


class GroupUpdateRequest(BaseModel):
    """Payload to rename and/or re-parent a group.

    ``parentId`` set to ``null`` moves the group to the top level; leaving it
    out keeps the current parent.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=120)
    parentId: Optional[int] = Field(
        None,
        ge=1,
        validation_alias=AliasChoices("parentId", "parent_id"),
        serialization_alias="parentId",
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("name")
    @classmethod
    def normalise_name(cls, value: Optional[str]) -> Optional[str]:
        return _strip_name(value)

    @model_validator(mode="after")
    def require_change(self) -> "GroupUpdateRequest":
        if not self.model_fields_set & {"name", "parentId"}:
            raise ValueError("Provide a name or a parentId to update")
        return self

    @property
    def changes_parent(self) -> bool:
        return "parentId" in self.model_fields_set


class GroupResponse(BaseModel):
    id: int
    name: str
    parentId: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("parentId", "parent_id"),
        serialization_alias="parentId",
    )
    schoolId: int = Field(
        ...,
        validation_alias=AliasChoices("schoolId", "school_id"),
        serialization_alias="schoolId",
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


class GroupDetailResponse(GroupResponse):
    childIds: list[int] = Field(
        default_factory=list,
        serialization_alias="childIds",
    )


class GroupUpdateResponse(GroupResponse):
    """Updated group plus any children detached to avoid a cycle."""

    detachedGroupIds: list[int] = Field(
        default_factory=list,
        serialization_alias="detachedGroupIds",
    )


class GroupMembershipResponse(BaseModel):
    id: int
    groupId: int = Field(
        ...,
        validation_alias=AliasChoices("groupId", "group_id"),
        serialization_alias="groupId",
    )
    userId: int = Field(
        ...,
        validation_alias=AliasChoices("userId", "user_id"),
        serialization_alias="userId",
    )

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


GroupMemberResponse = MemberResponse


__all__ = [
    "GroupCreateRequest",
    "GroupUpdateRequest",
    "GroupResponse",
    "GroupDetailResponse",
    "GroupUpdateResponse",
    "GroupMembershipResponse",
    "GroupMemberResponse",
]
