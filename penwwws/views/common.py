"""Common request and response schemas."""

from typing import Annotated, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

PositiveId = Annotated[int, Field(ge=1)]


class ErrorResponse(BaseModel):
    detail: str
    code: Optional[str] = None


class SuccessResponse(BaseModel):
    message: str
    data: Optional[dict] = None


class UserIdsRequest(BaseModel):
    """Payload carrying the users an operation applies to."""

    userIds: list[PositiveId] = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("userIds", "user_ids"),
        serialization_alias="userIds",
    )

    model_config = ConfigDict(populate_by_name=True)


__all__ = ["ErrorResponse", "SuccessResponse", "UserIdsRequest", "PositiveId"]
