"""Structured logging middleware for FastAPI requests."""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, ClassVar, Optional

from cryptography.fernet import Fernet
from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from penwwws.config.settings import settings
from penwwws.database import session_scope
from penwwws.models.log import RequestLog
from penwwws.utils import AuthenticationError, TokenPayload, decode_access_token

logger = logging.getLogger("penwwws.middleware.structured")

COLOR_RESET = "\u001b[0m"
COLOR_GREEN = "\u001b[32m"
COLOR_CYAN = "\u001b[36m"
COLOR_YELLOW = "\u001b[33m"
COLOR_RED = "\u001b[31m"


@dataclass(slots=True)
class SessionContext:
    """Who issued the request, as far as the bearer token tells."""

    identifier: str
    actor: str
    school_id: Optional[int]
    expires_at: Optional[datetime]
    fingerprint: str


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """Log one line per request and optionally persist it as a ``RequestLog``."""

    _cipher: ClassVar[Optional[Fernet]] = None

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start_time = time.perf_counter()
        log_payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc),
            "method": request.method,
            "url": str(request.url),
            "client_ip": request.client.host if request.client else None,
        }
        session_context = self._build_session_context(request)

        try:
            response = await call_next(request)
        except Exception as exc:
            log_payload["status_code"] = 500
            log_payload["duration_ms"] = self._elapsed_ms(start_time)
            log_payload["error"] = repr(exc)
            logger.exception(self._format_console_message(log_payload, session_context))
            raise

        route = request.scope.get("route")
        log_payload["route"] = getattr(route, "path", None)
        log_payload["status_code"] = response.status_code
        log_payload["duration_ms"] = self._elapsed_ms(start_time)
        logger.info(self._format_console_message(log_payload, session_context))

        if settings.persist_request_logs:
            await self._persist_log(log_payload, session_context)
        return response

    @staticmethod
    def _elapsed_ms(start_time: float) -> float:
        return round((time.perf_counter() - start_time) * 1000, 2)

    @staticmethod
    def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
        if value is None or value.tzinfo is None:
            return value
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    async def _persist_log(
        self,
        payload: dict[str, Any],
        session_context: SessionContext | None,
    ) -> None:
        entry = RequestLog(
            timestamp=self._naive_utc(payload["timestamp"]),
            method=payload["method"],
            url=payload["url"][:2048],
            route=payload.get("route"),
            status_code=payload["status_code"],
            client_ip=payload.get("client_ip"),
            duration_ms=int(payload["duration_ms"]),
        )
        if session_context is not None:
            entry.actor = session_context.actor
            entry.school_id = session_context.school_id
            entry.session_id = session_context.identifier
            entry.session_fingerprint = session_context.fingerprint
            entry.session_expires_at = self._naive_utc(session_context.expires_at)

        try:
            async with session_scope() as session:
                session.add(entry)
                await session.commit()
        except SQLAlchemyError:
            logger.exception("Failed to persist request log entry")

    def _build_session_context(self, request: Request) -> SessionContext | None:
        """Describe the caller from its bearer token; anonymous requests yield None."""

        token = self._extract_bearer_token(request)
        if token is None:
            return None
        try:
            payload = decode_access_token(token)
        except AuthenticationError:
            return None

        actor = self._actor(payload)
        issued_at = payload.iat or datetime.now(timezone.utc)
        fingerprint = hashlib.sha256(
            f"{actor}:{int(issued_at.timestamp())}".encode("utf-8")
        ).hexdigest()

        metadata: dict[str, Any] = {
            "session": fingerprint,
            "actor": actor,
            "started_at": issued_at.isoformat(),
            "expires_at": payload.exp.isoformat(),
        }
        if request.client:
            metadata["client_ip"] = request.client.host
        user_agent = request.headers.get("user-agent")
        if user_agent:
            metadata["user_agent"] = user_agent[:256]

        return SessionContext(
            identifier=self._encrypt_session_metadata(metadata),
            actor=actor,
            school_id=payload.school_id,
            expires_at=payload.exp,
            fingerprint=fingerprint,
        )

    @staticmethod
    def _actor(payload: TokenPayload) -> str:
        if payload.is_device:
            return payload.sub
        return f"user:{payload.sub}"

    @classmethod
    def _encrypt_session_metadata(cls, metadata: dict[str, Any]) -> str:
        """Encrypt session metadata into an opaque token."""

        payload_bytes = json.dumps(metadata, default=str, separators=(",", ":"))
        return cls._get_cipher().encrypt(payload_bytes.encode("utf-8")).decode("utf-8")

    @classmethod
    def _get_cipher(cls) -> Fernet:
        """Return a cached Fernet cipher initialised from the JWT secret."""

        if cls._cipher is None:
            secret_bytes = (
                settings.security.jwt_secret_key.get_secret_value().encode("utf-8")
            )
            digest = hashlib.sha256(secret_bytes).digest()
            cls._cipher = Fernet(base64.urlsafe_b64encode(digest))
        return cls._cipher

    @staticmethod
    def _extract_bearer_token(request: Request) -> Optional[str]:
        auth_header = request.headers.get("authorization")
        if not auth_header:
            return None

        scheme, _, token = auth_header.partition(" ")
        if scheme.lower() != "bearer" or not token:
            return None
        return token

    @staticmethod
    def _format_console_message(
        payload: dict[str, Any],
        session_context: SessionContext | None,
    ) -> str:
        """Return request metadata wrapped with ANSI color codes."""

        status = payload.get("status_code") or 0
        if 200 <= status < 300:
            color = COLOR_GREEN
        elif 400 <= status < 500:
            color = COLOR_YELLOW
        elif status >= 500:
            color = COLOR_RED
        else:
            color = COLOR_CYAN

        fields = [
            ("method", payload.get("method")),
            ("url", payload.get("url")),
            ("client_ip", payload.get("client_ip")),
            ("actor", session_context.actor if session_context else None),
            ("status", status),
            ("duration_ms", payload.get("duration_ms")),
        ]
        message = ", ".join(
            f"{name}={value if value is not None else '-'}" for name, value in fields
        )
        return f"{color}{message}{COLOR_RESET}"
