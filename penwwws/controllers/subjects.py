"""Subjects, their topics and the documents uploaded to them."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, Response, UploadFile, status
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from penwwws.config.settings import settings
from penwwws.controllers.dependencies import SchoolAdminDep, SchoolMemberDep, SessionDep
from penwwws.models.school import SchoolMembership, SchoolRole
from penwwws.models.subject import Document, Subject, SubjectMembership, Topic
from penwwws.models.user import User as UserModel
from penwwws.services import StorageError, delete_document, upload_document
from penwwws.telemetry import observe_document_upload
from penwwws.views import (
    DocumentResponse,
    DocumentUpdateRequest,
    MemberResponse,
    SubjectCreateRequest,
    SubjectDetailResponse,
    SubjectMembershipResponse,
    SubjectResponse,
    SubjectUpdateRequest,
    TopicCreateRequest,
    TopicDetailResponse,
    TopicResponse,
    TopicUpdateRequest,
    UserIdsRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schools/{school_id}/subjects", tags=["subjects"])


async def _get_subject_or_404(
    session: AsyncSession,
    school_id: int,
    subject_id: int,
) -> Subject:
    subject = await session.get(Subject, subject_id)
    if subject is None or subject.school_id != school_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Subject not found",
        )
    return subject


async def _get_topic_or_404(
    session: AsyncSession,
    subject_id: int,
    topic_id: int,
) -> Topic:
    topic = await session.get(Topic, topic_id)
    if topic is None or topic.subject_id != subject_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Topic not found",
        )
    return topic


async def _get_document_or_404(
    session: AsyncSession,
    topic_id: int,
    document_id: int,
) -> Document:
    document = await session.get(Document, document_id)
    if document is None or document.topic_id != topic_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found",
        )
    return document


async def _ensure_can_manage(
    session: AsyncSession,
    membership: SchoolMembership,
    subject: Subject,
) -> None:
    """Admins manage every subject; teachers only the ones they are assigned to."""

    if membership.is_admin:
        return
    if membership.role == SchoolRole.TEACHER:
        assigned = await session.execute(
            select(SubjectMembership.id).where(
                SubjectMembership.subject_id == subject.id,
                SubjectMembership.user_id == membership.user_id,
            )
        )
        if assigned.scalar_one_or_none() is not None:
            return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Only admins or the subject's teachers can perform this action",
    )


async def _purge_objects(keys: list[str]) -> None:
    """Remove stored files of rows deleted by a cascade; failures are only logged."""

    for key in keys:
        try:
            await delete_document(key)
        except StorageError as exc:
            logger.warning("Could not remove stored object %s: %s", key, exc)


# Subjects -------------------------------------------------------------------


@router.post("/", response_model=SubjectResponse, status_code=status.HTTP_201_CREATED)
async def create_subject(
    school_id: int,
    payload: SubjectCreateRequest,
    session: SessionDep,
    _admin: SchoolAdminDep,
) -> SubjectResponse:
    subject = Subject(name=payload.name, school_id=school_id)
    session.add(subject)
    await session.commit()
    await session.refresh(subject)
    return SubjectResponse.model_validate(subject)


@router.get("/", response_model=list[SubjectResponse])
async def list_subjects(
    school_id: int,
    session: SessionDep,
    _member: SchoolMemberDep,
) -> list[SubjectResponse]:
    result = await session.execute(
        select(Subject).where(Subject.school_id == school_id).order_by(Subject.name)
    )
    return [SubjectResponse.model_validate(item) for item in result.scalars().all()]


@router.get("/{subject_id}", response_model=SubjectDetailResponse)
async def get_subject(
    school_id: int,
    subject_id: int,
    session: SessionDep,
    _member: SchoolMemberDep,
) -> SubjectDetailResponse:
    """Subject with its topics (and their documents) and assigned members."""

    subject = await _get_subject_or_404(session, school_id, subject_id)

    topics = await session.execute(
        select(Topic)
        .where(Topic.subject_id == subject.id)
        .options(selectinload(Topic.documents))
        .order_by(Topic.id)
    )
    members = await session.execute(
        select(UserModel, SchoolMembership.role)
        .join(SubjectMembership, SubjectMembership.user_id == UserModel.id)
        .outerjoin(
            SchoolMembership,
            (SchoolMembership.user_id == UserModel.id)
            & (SchoolMembership.school_id == school_id),
        )
        .where(SubjectMembership.subject_id == subject.id)
        .order_by(SubjectMembership.id)
    )

    return SubjectDetailResponse(
        **SubjectResponse.model_validate(subject).model_dump(),
        topics=[
            TopicDetailResponse.model_validate(topic)
            for topic in topics.scalars().all()
        ],
        members=[
            MemberResponse(
                id=user.id,
                email=user.email,
                fullName=user.full_name,
                avatarUrl=user.avatar_url,
                role=role,
            )
            for user, role in members.all()
        ],
    )


@router.put("/{subject_id}", response_model=SubjectResponse)
async def update_subject(
    school_id: int,
    subject_id: int,
    payload: SubjectUpdateRequest,
    session: SessionDep,
    _admin: SchoolAdminDep,
) -> SubjectResponse:
    subject = await _get_subject_or_404(session, school_id, subject_id)
    subject.name = payload.name
    await session.commit()
    await session.refresh(subject)
    return SubjectResponse.model_validate(subject)


@router.delete("/{subject_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subject(
    school_id: int,
    subject_id: int,
    session: SessionDep,
    _admin: SchoolAdminDep,
) -> Response:
    subject = await _get_subject_or_404(session, school_id, subject_id)
    keys = await session.execute(
        select(Document.storage_key)
        .join(Topic, Topic.id == Document.topic_id)
        .where(Topic.subject_id == subject.id)
    )
    stored = list(keys.scalars().all())

    await session.delete(subject)
    await session.commit()
    await _purge_objects(stored)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{subject_id}/members",
    response_model=list[SubjectMembershipResponse],
    status_code=status.HTTP_201_CREATED,
)
async def assign_subject_members(
    school_id: int,
    subject_id: int,
    payload: UserIdsRequest,
    session: SessionDep,
    _admin: SchoolAdminDep,
) -> list[SubjectMembershipResponse]:
    """Assign school members to the subject; returns the rows created."""

    subject = await _get_subject_or_404(session, school_id, subject_id)
    user_ids = list(dict.fromkeys(payload.userIds))

    known = await session.execute(
        select(SchoolMembership.user_id).where(
            SchoolMembership.school_id == school_id,
            SchoolMembership.user_id.in_(user_ids),
        )
    )
    missing = sorted(set(user_ids) - set(known.scalars().all()))
    if missing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Users not found in this school: {missing}",
        )

    existing = await session.execute(
        select(SubjectMembership.user_id).where(
            SubjectMembership.subject_id == subject.id,
            SubjectMembership.user_id.in_(user_ids),
        )
    )
    assigned = set(existing.scalars().all())
    created = [
        SubjectMembership(subject_id=subject.id, user_id=user_id)
        for user_id in user_ids
        if user_id not in assigned
    ]
    if not created:
        return []

    session.add_all(created)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Subject membership conflicts with existing records",
        ) from exc
    return [SubjectMembershipResponse.model_validate(item) for item in created]


@router.delete("/{subject_id}/members", status_code=status.HTTP_204_NO_CONTENT)
async def unassign_subject_members(
    school_id: int,
    subject_id: int,
    payload: UserIdsRequest,
    session: SessionDep,
    _admin: SchoolAdminDep,
) -> Response:
    subject = await _get_subject_or_404(session, school_id, subject_id)
    await session.execute(
        delete(SubjectMembership).where(
            SubjectMembership.subject_id == subject.id,
            SubjectMembership.user_id.in_(payload.userIds),
        )
    )
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Topics ---------------------------------------------------------------------


@router.post(
    "/{subject_id}/topics",
    response_model=TopicResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_topic(
    school_id: int,
    subject_id: int,
    payload: TopicCreateRequest,
    session: SessionDep,
    membership: SchoolMemberDep,
) -> TopicResponse:
    subject = await _get_subject_or_404(session, school_id, subject_id)
    await _ensure_can_manage(session, membership, subject)

    topic = Topic(name=payload.name, subject_id=subject.id)
    session.add(topic)
    await session.commit()
    await session.refresh(topic)
    return TopicResponse.model_validate(topic)


@router.put("/{subject_id}/topics/{topic_id}", response_model=TopicResponse)
async def update_topic(
    school_id: int,
    subject_id: int,
    topic_id: int,
    payload: TopicUpdateRequest,
    session: SessionDep,
    membership: SchoolMemberDep,
) -> TopicResponse:
    subject = await _get_subject_or_404(session, school_id, subject_id)
    await _ensure_can_manage(session, membership, subject)
    topic = await _get_topic_or_404(session, subject.id, topic_id)

    topic.name = payload.name
    await session.commit()
    await session.refresh(topic)
    return TopicResponse.model_validate(topic)


@router.delete(
    "/{subject_id}/topics/{topic_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_topic(
    school_id: int,
    subject_id: int,
    topic_id: int,
    session: SessionDep,
    membership: SchoolMemberDep,
) -> Response:
    subject = await _get_subject_or_404(session, school_id, subject_id)
    await _ensure_can_manage(session, membership, subject)
    topic = await _get_topic_or_404(session, subject.id, topic_id)

    keys = await session.execute(
        select(Document.storage_key).where(Document.topic_id == topic.id)
    )
    stored = list(keys.scalars().all())

    await session.delete(topic)
    await session.commit()
    await _purge_objects(stored)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Documents ------------------------------------------------------------------


@router.post(
    "/{subject_id}/topics/{topic_id}/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_topic_document(
    school_id: int,
    subject_id: int,
    topic_id: int,
    session: SessionDep,
    membership: SchoolMemberDep,
    file: UploadFile = File(...),
    name: Optional[str] = Form(None),
) -> DocumentResponse:
    """Store an uploaded file in S3 and attach it to the topic."""

    subject = await _get_subject_or_404(session, school_id, subject_id)
    await _ensure_can_manage(session, membership, subject)
    topic = await _get_topic_or_404(session, subject.id, topic_id)

    data = await file.read()
    if not data:
        observe_document_upload("rejected")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty",
        )
    if len(data) > settings.s3.max_upload_bytes:
        observe_document_upload("rejected")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Uploaded file exceeds {settings.s3.max_upload_bytes} bytes",
        )

    filename = file.filename or "document"
    display_name = (name or "").strip() or filename
    try:
        object_key, url = await upload_document(
            school_id,
            topic.id,
            data,
            filename=filename,
            content_type=file.content_type,
        )
    except StorageError as exc:
        logger.error("Document upload for topic %s failed: %s", topic.id, exc)
        observe_document_upload("failed")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Could not store the uploaded file",
        ) from exc

    document = Document(
        name=display_name[:255],
        url=url,
        storage_key=object_key,
        content_type=file.content_type,
        size_bytes=len(data),
        topic_id=topic.id,
        uploaded_by_id=membership.user_id,
    )
    session.add(document)
    await session.commit()
    await session.refresh(document)
    observe_document_upload("stored")
    return DocumentResponse.model_validate(document)


@router.put(
    "/{subject_id}/topics/{topic_id}/documents/{document_id}",
    response_model=DocumentResponse,
)
async def update_document(
    school_id: int,
    subject_id: int,
    topic_id: int,
    document_id: int,
    payload: DocumentUpdateRequest,
    session: SessionDep,
    membership: SchoolMemberDep,
) -> DocumentResponse:
    subject = await _get_subject_or_404(session, school_id, subject_id)
    await _ensure_can_manage(session, membership, subject)
    topic = await _get_topic_or_404(session, subject.id, topic_id)
    document = await _get_document_or_404(session, topic.id, document_id)

    document.name = payload.name
    await session.commit()
    await session.refresh(document)
    return DocumentResponse.model_validate(document)


@router.delete(
    "/{subject_id}/topics/{topic_id}/documents/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_topic_document(
    school_id: int,
    subject_id: int,
    topic_id: int,
    document_id: int,
    session: SessionDep,
    membership: SchoolMemberDep,
) -> Response:
    """Remove the stored object, then the document row."""

    subject = await _get_subject_or_404(session, school_id, subject_id)
    await _ensure_can_manage(session, membership, subject)
    topic = await _get_topic_or_404(session, subject.id, topic_id)
    document = await _get_document_or_404(session, topic.id, document_id)

    try:
        await delete_document(document.storage_key)
    except StorageError as exc:
        logger.error("Removing stored object %s failed: %s", document.storage_key, exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Could not remove the stored file",
        ) from exc

    await session.delete(document)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
