"""SQLAlchemy model for attendance-kiosk login credentials."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func

from penwwws.models.base import Base


class DeviceCredential(Base):
    """Credential a kiosk uses to act on behalf of a single school."""

    __tablename__ = "device_credentials"

    id = Column(Integer, primary_key=True, index=True)
    credential_id = Column(String(64), nullable=False, unique=True, index=True)
    password_hash = Column(String(256), nullable=False)
    name = Column(String(120), nullable=True)
    school_id = Column(
        Integer,
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_by_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )


__all__ = ["DeviceCredential"]
