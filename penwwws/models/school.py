"""SQLAlchemy models representing schools and their members."""

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
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from penwwws.models.base import Base


class SchoolRole(str, Enum):
    """Role a user holds inside a school."""

    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"


ADMIN_ROLES = frozenset({SchoolRole.SUPER_ADMIN, SchoolRole.ADMIN})


class School(Base):
    __tablename__ = "schools"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
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

    members = relationship(
        "SchoolMembership",
        back_populates="school",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    groups = relationship(
        "Group",
        back_populates="school",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    subjects = relationship(
        "Subject",
        back_populates="school",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class SchoolMembership(Base):
    """Association between a user and a school carrying the user's role."""

    __tablename__ = "school_memberships"

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
    role = Column(
        SqlEnum(SchoolRole, name="school_role"),
        nullable=False,
        default=SchoolRole.STUDENT,
    )
    created_at = Column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "school_id",
            name="uq_school_memberships_user_school",
        ),
    )

    school = relationship("School", back_populates="members")
    user = relationship("User", back_populates="school_memberships", lazy="joined")

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


__all__ = ["School", "SchoolMembership", "SchoolRole", "ADMIN_ROLES"]
