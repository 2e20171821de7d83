"""Persisted request log model."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, String, func

from .base import Base


class RequestLog(Base):
    """One handled HTTP request, optionally attributed to a user or kiosk."""

    __tablename__ = "request_logs"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime, nullable=False, server_default=func.now(), index=True)
    method = Column(String(10), nullable=False)
    url = Column(String(2048), nullable=False)
    route = Column(String(255), nullable=True)
    status_code = Column(Integer, nullable=False)
    client_ip = Column(String(64), nullable=True)
    duration_ms = Column(Integer, nullable=True)
    # "user:<id>" or "device:<id>"
    actor = Column(String(64), nullable=True, index=True)
    school_id = Column(Integer, nullable=True, index=True)
    session_id = Column(String(512), nullable=True)
    session_fingerprint = Column(String(64), nullable=True, index=True)
    session_expires_at = Column(DateTime, nullable=True)


__all__ = ["RequestLog"]
