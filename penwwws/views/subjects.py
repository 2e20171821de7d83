"""Pydantic schemas for subjects, topics and documents."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from penwwws.views.users import MemberResponse


class NamedPayload(BaseModel):
    """Create/rename payload shared by subjects, topics and documents."""

    name: str = Field(..., min_length=1, max_length=120)

    @field_validator("name")
    @classmethod
    def normalise_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name cannot be empty")
        return value


class SubjectCreateRequest(NamedPayload):
    pass


class SubjectUpdateRequest(NamedPayload):
    pass


class TopicCreateRequest(NamedPayload):
    pass


class TopicUpdateRequest(NamedPayload):
    pass


class DocumentUpdateRequest(NamedPayload):
    name: str = Field(..., min_length=1, max_length=255)


class DocumentResponse(BaseModel):
    id: int
    name: str
    url: str
    contentType: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("contentType", "content_type"),
        serialization_alias="contentType",
    )
    sizeBytes: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("sizeBytes", "size_bytes"),
        serialization_alias="sizeBytes",
    )
    topicId: int = Field(
        ...,
        validation_alias=AliasChoices("topicId", "topic_id"),
        serialization_alias="topicId",
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


class TopicResponse(BaseModel):
    id: int
    name: str
    subjectId: int = Field(
        ...,
        validation_alias=AliasChoices("subjectId", "subject_id"),
        serialization_alias="subjectId",
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


class TopicDetailResponse(TopicResponse):
    documents: list[DocumentResponse] = Field(default_factory=list)


class SubjectResponse(BaseModel):
    id: int
    name: str
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


class SubjectDetailResponse(SubjectResponse):
    topics: list[TopicDetailResponse] = Field(default_factory=list)
    members: list[MemberResponse] = Field(default_factory=list)


class SubjectMembershipResponse(BaseModel):
    id: int
    subjectId: int = Field(
        ...,
        validation_alias=AliasChoices("subjectId", "subject_id"),
        serialization_alias="subjectId",
    )
    userId: int = Field(
        ...,
        validation_alias=AliasChoices("userId", "user_id"),
        serialization_alias="userId",
    )

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


__all__ = [
    "SubjectCreateRequest",
    "SubjectUpdateRequest",
    "SubjectResponse",
    "SubjectDetailResponse",
    "SubjectMembershipResponse",
    "TopicCreateRequest",
    "TopicUpdateRequest",
    "TopicResponse",
    "TopicDetailResponse",
    "DocumentUpdateRequest",
    "DocumentResponse",
]
