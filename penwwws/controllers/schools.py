"""School controller offering CRUD operations and membership management."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Response, status
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from penwwws.controllers.dependencies import (
    CurrentUserDep,
    SchoolAdminDep,
    SchoolMemberDep,
    SessionDep,
    SuperAdminDep,
)
from penwwws.models.group import Group
from penwwws.models.group_membership import GroupMembership
from penwwws.models.school import School as SchoolModel, SchoolMembership, SchoolRole
from penwwws.models.subject import Subject, SubjectMembership
from penwwws.views import (
    MemberResponse,
    MemberRoleUpdateRequest,
    SchoolCreateRequest,
    SchoolResponse,
    SchoolUpdateRequest,
    UserIdsRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schools", tags=["schools"])


async def _get_school_or_404(session: AsyncSession, school_id: int) -> SchoolModel:
    school = await session.get(SchoolModel, school_id)
    if school is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="School not found",
        )
    return school


def _serialize_member(membership: SchoolMembership) -> MemberResponse:
    user = membership.user
    return MemberResponse(
        id=user.id,
        email=user.email,
        fullName=user.full_name,
        avatarUrl=user.avatar_url,
        role=membership.role,
    )


@router.post("/", response_model=SchoolResponse, status_code=status.HTTP_201_CREATED)
async def create_school(
    payload: SchoolCreateRequest,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> SchoolResponse:
    """Create a school owned by the caller (``SUPER_ADMIN``)."""

    school = SchoolModel(name=payload.name)
    session.add(school)
    try:
        await session.flush()
        session.add(
            SchoolMembership(
                user_id=current_user.id,
                school_id=school.id,
                role=SchoolRole.SUPER_ADMIN,
            )
        )
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Could not create school",
        ) from exc

    await session.refresh(school)
    logger.info("User %s created school %s", current_user.id, school.id)
    return SchoolResponse.model_validate(school)


@router.get("/", response_model=list[SchoolResponse])
async def list_schools(
    session: SessionDep,
    current_user: CurrentUserDep,
) -> list[SchoolResponse]:
    result = await session.execute(
        select(SchoolModel)
        .join(SchoolMembership, SchoolMembership.school_id == SchoolModel.id)
        .where(SchoolMembership.user_id == current_user.id)
        .order_by(SchoolModel.name)
    )
    schools = result.scalars().all()
    return [SchoolResponse.model_validate(school) for school in schools]


@router.get("/{school_id}", response_model=SchoolResponse)
async def get_school(
    school_id: int,
    session: SessionDep,
    _member: SchoolMemberDep,
) -> SchoolResponse:
    school = await _get_school_or_404(session, school_id)
    return SchoolResponse.model_validate(school)


@router.put("/{school_id}", response_model=SchoolResponse)
async def update_school(
    school_id: int,
    payload: SchoolUpdateRequest,
    session: SessionDep,
    _admin: SchoolAdminDep,
) -> SchoolResponse:
    school = await _get_school_or_404(session, school_id)
    school.name = payload.name

    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="School information conflicts with existing records",
        ) from exc

    await session.refresh(school)
    return SchoolResponse.model_validate(school)


@router.delete("/{school_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_school(
    school_id: int,
    session: SessionDep,
    _owner: SuperAdminDep,
) -> Response:
    school = await _get_school_or_404(session, school_id)

    await session.delete(school)
    await session.commit()
    logger.info("Deleted school %s", school_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{school_id}/members", response_model=list[MemberResponse])
async def list_members(
    school_id: int,
    session: SessionDep,
    _admin: SchoolAdminDep,
) -> list[MemberResponse]:
    result = await session.execute(
        select(SchoolMembership)
        .where(SchoolMembership.school_id == school_id)
        .order_by(SchoolMembership.id)
    )
    return [_serialize_member(membership) for membership in result.scalars().all()]


@router.patch("/{school_id}/members/{user_id}", response_model=MemberResponse)
async def update_member_role(
    school_id: int,
    user_id: int,
    payload: MemberRoleUpdateRequest,
    session: SessionDep,
    _admin: SchoolAdminDep,
) -> MemberResponse:
    """Change a member's role; the ``SUPER_ADMIN`` role is never transferable."""

    result = await session.execute(
        select(SchoolMembership).where(
            SchoolMembership.school_id == school_id,
            SchoolMembership.user_id == user_id,
        )
    )
    membership = result.scalar_one_or_none()
    if membership is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Member not found",
        )
    if SchoolRole.SUPER_ADMIN in (membership.role, payload.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="The super admin role cannot be assigned or changed",
        )

    membership.role = payload.role
    await session.commit()
    return _serialize_member(membership)


@router.delete("/{school_id}/members", status_code=status.HTTP_204_NO_CONTENT)
async def remove_members(
    school_id: int,
    payload: UserIdsRequest,
    session: SessionDep,
    _admin: SchoolAdminDep,
) -> Response:
    """Remove users from the school together with its group and subject seats."""

    user_ids = list(dict.fromkeys(payload.userIds))
    owners = await session.execute(
        select(SchoolMembership.user_id).where(
            SchoolMembership.school_id == school_id,
            SchoolMembership.user_id.in_(user_ids),
            SchoolMembership.role == SchoolRole.SUPER_ADMIN,
        )
    )
    if owners.scalars().first() is not None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="The super admin cannot be removed from the school",
        )

    school_groups = select(Group.id).where(Group.school_id == school_id)
    school_subjects = select(Subject.id).where(Subject.school_id == school_id)
    await session.execute(
        delete(GroupMembership).where(
            GroupMembership.user_id.in_(user_ids),
            GroupMembership.group_id.in_(school_groups),
        )
    )
    await session.execute(
        delete(SubjectMembership).where(
            SubjectMembership.user_id.in_(user_ids),
            SubjectMembership.subject_id.in_(school_subjects),
        )
    )
    await session.execute(
        delete(SchoolMembership).where(
            SchoolMembership.school_id == school_id,
            SchoolMembership.user_id.in_(user_ids),
        )
    )
    await session.commit()
    logger.info("Removed users %s from school %s", user_ids, school_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
