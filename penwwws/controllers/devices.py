"""Attendance-kiosk credentials and the read-only routes kiosks use."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from penwwws.config.settings import settings
from penwwws.controllers.dependencies import CurrentDeviceDep, SchoolAdminDep, SessionDep
from penwwws.models.device import DeviceCredential
from penwwws.models.group import Group
from penwwws.models.group_membership import GroupMembership
from penwwws.models.school import SchoolMembership, SchoolRole
from penwwws.models.subject import Subject, SubjectMembership
from penwwws.models.user import User as UserModel
from penwwws.telemetry import increment_login
from penwwws.utils import (
    create_device_token,
    generate_device_credentials,
    hash_password,
    verify_password,
)
from penwwws.views import (
    DeviceCreatedResponse,
    DeviceCreateRequest,
    DeviceCredentialResponse,
    DeviceGroupResponse,
    DeviceLoginRequest,
    DeviceLoginResponse,
    DeviceSubjectResponse,
    MemberResponse,
    SchoolResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schools/{school_id}/devices", tags=["devices"])
kiosk_router = APIRouter(prefix="/device", tags=["device"])


async def _members(
    session: AsyncSession,
    school_id: int,
    *conditions,
    role: SchoolRole | None = None,
) -> list[MemberResponse]:
    """Users narrowed by ``conditions``, each with their role in the school.

    With ``role`` only school members holding that role are returned.
    """

    in_school = (SchoolMembership.user_id == UserModel.id) & (
        SchoolMembership.school_id == school_id
    )
    query = (
        select(UserModel, SchoolMembership.role)
        .join(SchoolMembership, in_school, isouter=role is None)
        .where(*conditions)
        .order_by(UserModel.full_name, UserModel.id)
    )
    if role is not None:
        query = query.where(SchoolMembership.role == role)

    result = await session.execute(query)
    return [
        MemberResponse(
            id=user.id,
            email=user.email,
            fullName=user.full_name,
            avatarUrl=user.avatar_url,
            role=member_role,
        )
        for user, member_role in result.all()
    ]


# School admin management ----------------------------------------------------


@router.post(
    "/", response_model=DeviceCreatedResponse, status_code=status.HTTP_201_CREATED
)
async def create_device(
    school_id: int,
    payload: DeviceCreateRequest,
    session: SessionDep,
    admin: SchoolAdminDep,
) -> DeviceCreatedResponse:
    """Generate kiosk credentials; the password is only ever returned here."""

    credential_id, password = generate_device_credentials()
    device = DeviceCredential(
        credential_id=credential_id,
        password_hash=hash_password(password),
        name=payload.name,
        school_id=school_id,
        created_by_id=admin.user_id,
    )
    session.add(device)
    await session.commit()
    await session.refresh(device)
    logger.info("Created device credential %s for school %s", device.id, school_id)

    return DeviceCreatedResponse(
        **DeviceCredentialResponse.model_validate(device).model_dump(),
        password=password,
    )


@router.get("/", response_model=list[DeviceCredentialResponse])
async def list_devices(
    school_id: int,
    session: SessionDep,
    _admin: SchoolAdminDep,
) -> list[DeviceCredentialResponse]:
    result = await session.execute(
        select(DeviceCredential)
        .where(DeviceCredential.school_id == school_id)
        .order_by(DeviceCredential.created_at)
    )
    return [
        DeviceCredentialResponse.model_validate(item) for item in result.scalars().all()
    ]


@router.delete("/{device_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_device(
    school_id: int,
    device_id: int,
    session: SessionDep,
    _admin: SchoolAdminDep,
) -> Response:
    device = await session.get(DeviceCredential, device_id)
    if device is None or device.school_id != school_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Device not found",
        )

    await session.delete(device)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Kiosk routes ---------------------------------------------------------------


@kiosk_router.post("/login", response_model=DeviceLoginResponse)
async def device_login(
    payload: DeviceLoginRequest,
    response: Response,
    session: SessionDep,
) -> DeviceLoginResponse:
    result = await session.execute(
        select(DeviceCredential).where(DeviceCredential.credential_id == payload.id)
    )
    device = result.scalar_one_or_none()
    if device is None or not verify_password(payload.password, device.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid device credentials",
        )

    device.last_login_at = datetime.utcnow()
    await session.commit()

    access_token = create_device_token(device.id, device.school_id)
    response.headers["Authorization"] = f"Bearer {access_token}"
    increment_login("device")
    return DeviceLoginResponse(
        access_token=access_token,
        expires_in=settings.security.device_token_expires_minutes * 60,
        credential=DeviceCredentialResponse.model_validate(device),
    )


@kiosk_router.get("/school", response_model=SchoolResponse)
async def device_school(device: CurrentDeviceDep) -> SchoolResponse:
    return SchoolResponse.model_validate(device.school)


@kiosk_router.get("/school/students", response_model=list[MemberResponse])
async def device_students(
    device: CurrentDeviceDep,
    session: SessionDep,
) -> list[MemberResponse]:
    return await _members(session, device.school.id, role=SchoolRole.STUDENT)


@kiosk_router.get(
    "/school/students/group/{group_id}", response_model=list[MemberResponse]
)
async def device_group_students(
    group_id: int,
    device: CurrentDeviceDep,
    session: SessionDep,
) -> list[MemberResponse]:
    """Everyone directly assigned to the group, with their school role."""

    group = await session.get(Group, group_id)
    if group is None or group.school_id != device.school.id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Group not found",
        )

    members = select(GroupMembership.user_id).where(GroupMembership.group_id == group.id)
    return await _members(session, device.school.id, UserModel.id.in_(members))


@kiosk_router.get(
    "/school/students/subject/{subject_id}", response_model=list[MemberResponse]
)
async def device_subject_students(
    subject_id: int,
    device: CurrentDeviceDep,
    session: SessionDep,
) -> list[MemberResponse]:
    subject = await session.get(Subject, subject_id)
    if subject is None or subject.school_id != device.school.id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Subject not found",
        )

    members = select(SubjectMembership.user_id).where(
        SubjectMembership.subject_id == subject.id
    )
    return await _members(session, device.school.id, UserModel.id.in_(members))


@kiosk_router.get("/school/groups", response_model=list[DeviceGroupResponse])
async def device_groups(
    device: CurrentDeviceDep,
    session: SessionDep,
) -> list[DeviceGroupResponse]:
    result = await session.execute(
        select(Group)
        .where(Group.school_id == device.school.id)
        .order_by(Group.updated_at)
    )
    return [DeviceGroupResponse.model_validate(item) for item in result.scalars().all()]


@kiosk_router.get("/school/subjects", response_model=list[DeviceSubjectResponse])
async def device_subjects(
    device: CurrentDeviceDep,
    session: SessionDep,
) -> list[DeviceSubjectResponse]:
    result = await session.execute(
        select(Subject)
        .where(Subject.school_id == device.school.id)
        .order_by(Subject.updated_at)
    )
    return [
        DeviceSubjectResponse.model_validate(item) for item in result.scalars().all()
    ]
