"""SQLAlchemy model for application users."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime
from sqlalchemy import Enum as SqlEnum
from sqlalchemy import Integer, String, Text, func
from sqlalchemy.orm import relationship

from penwwws.models.base import Base


class AuthProvider(str, Enum):
    """How the account authenticates."""

    CREDENTIALS = "credentials"
    GOOGLE = "google"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(120), nullable=False)
    # Null for accounts created through an OAuth provider.
    password_hash = Column(String(256), nullable=True)
    provider = Column(
        SqlEnum(AuthProvider, name="auth_provider"),
        nullable=False,
        default=AuthProvider.CREDENTIALS,
    )
    is_email_verified = Column(Boolean, nullable=False, default=False)
    avatar_url = Column(Text, nullable=True)
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

    school_memberships = relationship(
        "SchoolMembership",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    group_memberships = relationship(
        "GroupMembership",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    subject_memberships = relationship(
        "SubjectMembership",
        back_populates="user",
        cascade="all, delete-orphan",
    )


__all__ = ["User", "AuthProvider"]
