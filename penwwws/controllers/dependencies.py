"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from penwwws.config.settings import settings
from penwwws.database import get_session
from penwwws.infrastructure.persistence.repositories_sqlalchemy import (
    SQLAlchemyGroupRepository,
)
from penwwws.models.device import DeviceCredential
from penwwws.models.school import School, SchoolMembership, SchoolRole
from penwwws.models.user import User as UserModel
from penwwws.services.group_hierarchy import GroupHierarchyManager
from penwwws.utils import AuthenticationError, TokenPayload, decode_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")
SessionDep = Annotated[AsyncSession, Depends(get_session)]
TokenDep = Annotated[str, Depends(oauth2_scheme)]


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _decode(token: str) -> TokenPayload:
    try:
        return decode_access_token(token)
    except AuthenticationError:
        raise _credentials_error() from None


async def get_current_user(token: TokenDep, session: SessionDep) -> UserModel:
    """Resolve and validate the user referenced by the bearer token."""

    payload = _decode(token)
    try:
        user_id = payload.user_id()
    except AuthenticationError:
        raise _credentials_error() from None

    result = await session.execute(select(UserModel).where(UserModel.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise _credentials_error("User not found")

    return user


CurrentUserDep = Annotated[UserModel, Depends(get_current_user)]


@dataclass(slots=True)
class DeviceContext:
    """Kiosk credential together with the school it acts for."""

    credential: DeviceCredential
    school: School


async def get_current_device(token: TokenDep, session: SessionDep) -> DeviceContext:
    """Resolve the kiosk credential referenced by a device token."""

    payload = _decode(token)
    try:
        credential_pk = payload.device_id()
    except AuthenticationError:
        raise _credentials_error() from None

    result = await session.execute(
        select(DeviceCredential, School)
        .join(School, School.id == DeviceCredential.school_id)
        .where(DeviceCredential.id == credential_pk)
    )
    row = result.one_or_none()
    if row is None:
        raise _credentials_error("Device not found")

    credential, school = row
    if payload.school_id is not None and payload.school_id != school.id:
        raise _credentials_error()
    return DeviceContext(credential=credential, school=school)


CurrentDeviceDep = Annotated[DeviceContext, Depends(get_current_device)]


async def get_school_membership(
    school_id: int,
    current_user: CurrentUserDep,
    session: SessionDep,
) -> SchoolMembership:
    """Return the caller's membership of ``school_id``; members only."""

    school = await session.get(School, school_id)
    if school is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="School not found",
        )

    result = await session.execute(
        select(SchoolMembership).where(
            SchoolMembership.school_id == school_id,
            SchoolMembership.user_id == current_user.id,
        )
    )
    membership = result.scalar_one_or_none()
    if membership is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not a member of this school",
        )
    return membership


SchoolMemberDep = Annotated[SchoolMembership, Depends(get_school_membership)]


async def require_school_admin(membership: SchoolMemberDep) -> SchoolMembership:
    if not membership.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only school admins can perform this action",
        )
    return membership


SchoolAdminDep = Annotated[SchoolMembership, Depends(require_school_admin)]


async def require_super_admin(membership: SchoolMemberDep) -> SchoolMembership:
    if membership.role != SchoolRole.SUPER_ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the school owner can perform this action",
        )
    return membership


SuperAdminDep = Annotated[SchoolMembership, Depends(require_super_admin)]


def get_group_manager(session: SessionDep) -> GroupHierarchyManager:
    return GroupHierarchyManager(
        SQLAlchemyGroupRepository(session),
        cycle_policy=settings.groups.cycle_policy,
    )


GroupManagerDep = Annotated[GroupHierarchyManager, Depends(get_group_manager)]


__all__ = [
    "get_current_user",
    "get_current_device",
    "get_school_membership",
    "require_school_admin",
    "require_super_admin",
    "get_group_manager",
    "oauth2_scheme",
    "DeviceContext",
    "SessionDep",
    "CurrentUserDep",
    "CurrentDeviceDep",
    "SchoolMemberDep",
    "SchoolAdminDep",
    "SuperAdminDep",
    "GroupManagerDep",
]
