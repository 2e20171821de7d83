"""Invitation links and the admission requests they produce."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, HTTPException, Response, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from penwwws.controllers.dependencies import CurrentUserDep, SchoolAdminDep, SessionDep
from penwwws.models.invitation import Admission, AdmissionStatus, InvitationToken
from penwwws.models.school import School as SchoolModel, SchoolMembership
from penwwws.services import frontend_link, try_send_link_email
from penwwws.utils import generate_url_token
from penwwws.views import (
    AdmissionResponse,
    AdmissionReviewRequest,
    InvitationCreateRequest,
    InvitationResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["invitations"])


async def _reload_admission(session: AsyncSession, admission_id: int) -> Admission:
    """Re-read an admission with its user and server-side defaults."""

    result = await session.execute(
        select(Admission)
        .where(Admission.id == admission_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


@router.post(
    "/schools/{school_id}/invitations",
    response_model=InvitationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_invitation(
    school_id: int,
    payload: InvitationCreateRequest,
    session: SessionDep,
    admin: SchoolAdminDep,
) -> InvitationResponse:
    """Mint an invitation token; when ``email`` is given the link is mailed."""

    expires_at = None
    if payload.expiresInHours is not None:
        expires_at = datetime.utcnow() + timedelta(hours=payload.expiresInHours)

    invitation = InvitationToken(
        token=generate_url_token(),
        school_id=school_id,
        role=payload.role,
        email=payload.email,
        created_by_id=admin.user_id,
        expires_at=expires_at,
    )
    session.add(invitation)
    await session.commit()
    await session.refresh(invitation)
    logger.info(
        "Invitation %s created for school %s with role %s",
        invitation.id,
        school_id,
        invitation.role.value,
    )

    if payload.email:
        school = await session.get(SchoolModel, school_id)
        await try_send_link_email(
            recipient=payload.email,
            subject=f"You are invited to join {school.name}",
            heading=f"You have been invited to join {school.name} on Penwwws",
            button_label="Join school",
            link=frontend_link(f"/invite/{invitation.token}"),
        )

    return InvitationResponse.model_validate(invitation)


@router.get(
    "/schools/{school_id}/invitations",
    response_model=list[InvitationResponse],
)
async def list_invitations(
    school_id: int,
    session: SessionDep,
    _admin: SchoolAdminDep,
) -> list[InvitationResponse]:
    result = await session.execute(
        select(InvitationToken)
        .where(InvitationToken.school_id == school_id)
        .order_by(InvitationToken.created_at.desc())
    )
    return [InvitationResponse.model_validate(item) for item in result.scalars().all()]


@router.delete(
    "/schools/{school_id}/invitations/{invitation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_invitation(
    school_id: int,
    invitation_id: int,
    session: SessionDep,
    _admin: SchoolAdminDep,
) -> Response:
    invitation = await session.get(InvitationToken, invitation_id)
    if invitation is None or invitation.school_id != school_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invitation not found",
        )

    await session.delete(invitation)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/invitations/{token}/accept",
    response_model=AdmissionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def accept_invitation(
    token: str,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> AdmissionResponse:
    """Turn an invitation into a pending admission awaiting admin review."""

    result = await session.execute(
        select(InvitationToken).where(InvitationToken.token == token)
    )
    invitation = result.scalar_one_or_none()
    if invitation is None or invitation.is_expired():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired invitation",
        )

    membership = await session.execute(
        select(SchoolMembership.id).where(
            SchoolMembership.school_id == invitation.school_id,
            SchoolMembership.user_id == current_user.id,
        )
    )
    if membership.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You are already a member of this school",
        )

    pending = await session.execute(
        select(Admission.id).where(
            Admission.school_id == invitation.school_id,
            Admission.user_id == current_user.id,
            Admission.status == AdmissionStatus.PENDING,
        )
    )
    if pending.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An admission request is already pending",
        )

    admission = Admission(
        user_id=current_user.id,
        school_id=invitation.school_id,
        invitation_id=invitation.id,
        role=invitation.role,
        status=AdmissionStatus.PENDING,
    )
    session.add(admission)
    await session.commit()
    return AdmissionResponse.model_validate(
        await _reload_admission(session, admission.id)
    )


@router.get(
    "/schools/{school_id}/admissions",
    response_model=list[AdmissionResponse],
)
async def list_admissions(
    school_id: int,
    session: SessionDep,
    _admin: SchoolAdminDep,
) -> list[AdmissionResponse]:
    result = await session.execute(
        select(Admission)
        .where(
            Admission.school_id == school_id,
            Admission.status == AdmissionStatus.PENDING,
        )
        .order_by(Admission.created_at)
    )
    return [AdmissionResponse.model_validate(item) for item in result.scalars().all()]


@router.post(
    "/schools/{school_id}/admissions/{admission_id}/review",
    response_model=AdmissionResponse,
)
async def review_admission(
    school_id: int,
    admission_id: int,
    payload: AdmissionReviewRequest,
    session: SessionDep,
    admin: SchoolAdminDep,
) -> AdmissionResponse:
    """Accept (creating the membership) or reject a pending admission."""

    result = await session.execute(
        select(Admission).where(
            Admission.id == admission_id,
            Admission.school_id == school_id,
        )
    )
    admission = result.scalar_one_or_none()
    if admission is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Admission not found",
        )
    if admission.status != AdmissionStatus.PENDING:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Admission has already been reviewed",
        )

    admission.reviewed_by_id = admin.user_id
    if payload.accept:
        admission.status = AdmissionStatus.ACCEPTED
        session.add(
            SchoolMembership(
                user_id=admission.user_id,
                school_id=school_id,
                role=admission.role,
            )
        )
    else:
        admission.status = AdmissionStatus.REJECTED

    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User is already a member of this school",
        ) from exc

    admission = await _reload_admission(session, admission_id)
    logger.info(
        "Admission %s for school %s %s",
        admission_id,
        school_id,
        admission.status.value.lower(),
    )
    return AdmissionResponse.model_validate(admission)
