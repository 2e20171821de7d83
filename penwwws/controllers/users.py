"""User controller exposing the caller's own profile."""

from __future__ import annotations

from fastapi import APIRouter
from sqlalchemy import select

from penwwws.controllers.dependencies import CurrentUserDep, SessionDep
from penwwws.models.school import School as SchoolModel, SchoolMembership
from penwwws.views import UserResponse, UserSchoolResponse

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def read_current_user(current_user: CurrentUserDep) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.get("/me/schools", response_model=list[UserSchoolResponse])
async def list_my_schools(
    current_user: CurrentUserDep,
    session: SessionDep,
) -> list[UserSchoolResponse]:
    """Schools the caller belongs to, with the caller's role in each."""

    result = await session.execute(
        select(SchoolModel, SchoolMembership.role)
        .join(SchoolMembership, SchoolMembership.school_id == SchoolModel.id)
        .where(SchoolMembership.user_id == current_user.id)
        .order_by(SchoolModel.name)
    )
    return [
        UserSchoolResponse(
            id=school.id,
            name=school.name,
            createdAt=school.created_at,
            updatedAt=school.updated_at,
            role=role,
        )
        for school, role in result.all()
    ]
