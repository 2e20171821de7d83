"""SQLAlchemy models for school invitations and the admissions they produce."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Column,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import relationship

from penwwws.models.base import Base
from penwwws.models.school import SchoolRole


class AdmissionStatus(str, Enum):
    """Lifecycle of a request to join a school."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class InvitationToken(Base):
    """Shareable token letting a user ask to join a school with a given role."""

    __tablename__ = "invitation_tokens"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(128), nullable=False, unique=True, index=True)
    school_id = Column(
        Integer,
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role = Column(
        SqlEnum(SchoolRole, name="school_role"),
        nullable=False,
        default=SchoolRole.STUDENT,
    )
    email = Column(String(255), nullable=True)
    created_by_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at < (now or datetime.utcnow())


class Admission(Base):
    """Pending or reviewed request to join a school."""

    __tablename__ = "admissions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    school_id = Column(
        Integer,
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    invitation_id = Column(
        Integer,
        ForeignKey("invitation_tokens.id", ondelete="SET NULL"),
        nullable=True,
    )
    role = Column(
        SqlEnum(SchoolRole, name="school_role"),
        nullable=False,
    )
    status = Column(
        SqlEnum(AdmissionStatus, name="admission_status"),
        nullable=False,
        default=AdmissionStatus.PENDING,
    )
    reviewed_by_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = Column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=datetime.utcnow,
    )

    user = relationship("User", foreign_keys=[user_id], lazy="joined")


__all__ = ["InvitationToken", "Admission", "AdmissionStatus"]
