"""Endpoints for hierarchical groups and their memberships."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import APIRouter, HTTPException, Response, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from penwwws.controllers.dependencies import GroupManagerDep, SchoolAdminDep, SessionDep
from penwwws.models.group import Group
from penwwws.services.group_hierarchy import (
    CycleRejectedError,
    GroupCycleError,
    GroupNotFoundError,
    GroupSchoolMismatchError,
    InvalidParentError,
    MembersNotInSchoolError,
)
from penwwws.views import (
    GroupCreateRequest,
    GroupDetailResponse,
    GroupMemberResponse,
    GroupMembershipResponse,
    GroupResponse,
    GroupUpdateRequest,
    GroupUpdateResponse,
    UserIdsRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schools/{school_id}/groups", tags=["groups"])


@contextmanager
def _hierarchy_errors() -> Iterator[None]:
    """Translate hierarchy failures into HTTP errors."""

    try:
        yield
    except GroupNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Group not found",
        ) from exc
    except GroupSchoolMismatchError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Group belongs to another school",
        ) from exc
    except MembersNotInSchoolError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Users not found in this school: {exc.user_ids}",
        ) from exc
    except InvalidParentError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except CycleRejectedError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A group cannot be moved under one of its own descendants",
        ) from exc
    except GroupCycleError as exc:
        logger.error("Refusing to traverse cyclic group data: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Group hierarchy contains a cycle",
        ) from exc


async def _ensure_unique_name(
    session: SessionDep,
    school_id: int,
    name: str,
    exclude_id: int | None = None,
) -> None:
    query = select(func.count(Group.id)).where(
        Group.school_id == school_id,
        func.lower(Group.name) == name.lower(),
    )
    if exclude_id is not None:
        query = query.where(Group.id != exclude_id)
    duplicate = await session.execute(query)
    if duplicate.scalar_one() > 0:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Another group with this name already exists in this school",
        )


@router.post("/", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    school_id: int,
    payload: GroupCreateRequest,
    _admin: SchoolAdminDep,
    session: SessionDep,
    manager: GroupManagerDep,
) -> GroupResponse:
    """Create a group, optionally nested under an existing group of the school."""

    if payload.parentId is not None:
        with _hierarchy_errors():
            await manager.get_parent(school_id, payload.parentId)

    await _ensure_unique_name(session, school_id, payload.name)

    group = Group(name=payload.name, school_id=school_id, parent_id=payload.parentId)
    session.add(group)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Unable to create group",
        ) from exc

    await session.refresh(group)
    return GroupResponse.model_validate(group)


@router.get("/", response_model=list[GroupResponse])
async def list_groups(
    school_id: int,
    _admin: SchoolAdminDep,
    session: SessionDep,
) -> list[GroupResponse]:
    result = await session.execute(
        select(Group).where(Group.school_id == school_id).order_by(Group.name)
    )
    return [GroupResponse.model_validate(group) for group in result.scalars().all()]


@router.get("/{group_id}", response_model=GroupDetailResponse)
async def get_group(
    school_id: int,
    group_id: int,
    _admin: SchoolAdminDep,
    session: SessionDep,
    manager: GroupManagerDep,
) -> GroupDetailResponse:
    with _hierarchy_errors():
        group = await manager.get_group(school_id, group_id)

    children = await session.execute(
        select(Group.id).where(Group.parent_id == group.id).order_by(Group.id)
    )
    detail = GroupDetailResponse.model_validate(group)
    detail.childIds = list(children.scalars().all())
    return detail


@router.put("/{group_id}", response_model=GroupUpdateResponse)
async def update_group(
    school_id: int,
    group_id: int,
    payload: GroupUpdateRequest,
    _admin: SchoolAdminDep,
    session: SessionDep,
    manager: GroupManagerDep,
) -> GroupUpdateResponse:
    """Rename and/or re-parent a group.

    Moving a group under one of its own descendants detaches the group's
    direct children to the top level first (see ``GROUPS_CYCLE_POLICY``);
    their ids are returned in ``detachedGroupIds``.
    """

    with _hierarchy_errors():
        group = await manager.get_group(school_id, group_id)

    if payload.name is not None and payload.name != group.name:
        await _ensure_unique_name(session, school_id, payload.name, exclude_id=group.id)
        group.name = payload.name

    detached: list[int] = []
    try:
        if payload.changes_parent:
            with _hierarchy_errors():
                result = await manager.reparent(school_id, group_id, payload.parentId)
            detached = result.detached_ids
        else:
            await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Group information conflicts with existing records",
        ) from exc
    except HTTPException:
        await session.rollback()
        raise

    await session.refresh(group)
    response = GroupUpdateResponse.model_validate(group)
    response.detachedGroupIds = detached
    return response


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(
    school_id: int,
    group_id: int,
    _admin: SchoolAdminDep,
    manager: GroupManagerDep,
) -> Response:
    """Delete a group; its child groups move to the top level."""

    with _hierarchy_errors():
        await manager.delete_group(school_id, group_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{group_id}/members", response_model=list[GroupMemberResponse])
async def list_group_members(
    school_id: int,
    group_id: int,
    _admin: SchoolAdminDep,
    manager: GroupManagerDep,
) -> list[GroupMemberResponse]:
    """Return the distinct members of the group and all of its subgroups."""

    with _hierarchy_errors():
        members = await manager.subtree_members(school_id, group_id)

    return [
        GroupMemberResponse(
            id=member.user.id,
            email=member.user.email,
            fullName=member.user.full_name,
            avatarUrl=member.user.avatar_url,
            role=member.role,
        )
        for member in members
    ]


@router.post(
    "/{group_id}/members",
    response_model=list[GroupMembershipResponse],
    status_code=status.HTTP_201_CREATED,
)
async def assign_group_members(
    school_id: int,
    group_id: int,
    payload: UserIdsRequest,
    _admin: SchoolAdminDep,
    manager: GroupManagerDep,
) -> list[GroupMembershipResponse]:
    """Add school members to the group and every ancestor group.

    Returns the membership rows created; existing ones are left alone.
    """

    with _hierarchy_errors():
        created = await manager.assign_members(school_id, group_id, payload.userIds)
    return [GroupMembershipResponse.model_validate(membership) for membership in created]


@router.delete("/{group_id}/members", status_code=status.HTTP_204_NO_CONTENT)
async def unassign_group_members(
    school_id: int,
    group_id: int,
    payload: UserIdsRequest,
    _admin: SchoolAdminDep,
    manager: GroupManagerDep,
) -> Response:
    with _hierarchy_errors():
        await manager.remove_members(school_id, group_id, payload.userIds)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
