"""Security helpers for password management and JWT handling."""

from __future__ import annotations

import base64
import hashlib
import hmac
import os
import re
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from penwwws.config.settings import settings

_SALT_BYTES = 16
_ITERATIONS = 120_000
_DEVICE_PASSWORD_LENGTH = 16
_DEVICE_PASSWORD_CHARSET = string.ascii_letters + string.digits
_DEVICE_SUBJECT_PREFIX = "device:"
_PASSWORD_RULE = re.compile(r"^(?=.*[a-zA-Z])(?=.*[0-9])(?=.*[!@#$%^&*(),.?\":{}|<>]).{8,}$")

DEVICE_SCOPE = "device"
USER_SCOPE = "user"


def hash_password(password: str) -> str:
    """Return a salted PBKDF2 hash for the supplied password."""

    salt = os.urandom(_SALT_BYTES)
    derived = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt,
        _ITERATIONS,
    )
    return base64.b64encode(salt + derived).decode("utf-8")


def verify_password(password: str, hashed: str | None) -> bool:
    """Check whether the provided password matches the stored hash."""

    if not hashed:
        return False

    try:
        decoded = base64.b64decode(hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False

    salt = decoded[:_SALT_BYTES]
    stored = decoded[_SALT_BYTES:]
    candidate = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt,
        _ITERATIONS,
    )
    return hmac.compare_digest(candidate, stored)


def is_strong_password(password: str) -> bool:
    """At least 8 characters with a letter, a digit and a symbol."""

    return bool(_PASSWORD_RULE.match(password))


def generate_url_token() -> str:
    """Return an opaque token suitable for e-mailed links."""

    return secrets.token_hex(32)


def generate_device_credentials() -> tuple[str, str]:
    """Return a fresh ``(credential_id, password)`` pair for a kiosk."""

    credential_id = secrets.token_hex(6)
    password = "".join(
        secrets.choice(_DEVICE_PASSWORD_CHARSET)
        for _ in range(_DEVICE_PASSWORD_LENGTH)
    )
    return credential_id, password


class AuthenticationError(Exception):
    """Raised when a JWT cannot be decoded or is otherwise invalid."""


class TokenPayload(BaseModel):
    """Minimal payload structure embedded in JWT access tokens."""

    sub: str
    exp: datetime
    scope: str = USER_SCOPE
    school_id: int | None = None
    user: dict[str, Any] | None = None
    iat: datetime | None = None

    @property
    def is_device(self) -> bool:
        return self.scope == DEVICE_SCOPE

    def device_id(self) -> int:
        """Return the credential row id of a device token."""

        if not self.is_device or not self.sub.startswith(_DEVICE_SUBJECT_PREFIX):
            raise AuthenticationError("Not a device token")
        try:
            return int(self.sub[len(_DEVICE_SUBJECT_PREFIX):])
        except ValueError as exc:
            raise AuthenticationError("Malformed device token") from exc

    def user_id(self) -> int:
        if self.is_device:
            raise AuthenticationError("Not a user token")
        try:
            return int(self.sub)
        except ValueError as exc:
            raise AuthenticationError("Malformed user token") from exc


def _encode(claims: dict[str, Any], expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = {**claims, "exp": now + expires_delta, "iat": now}
    secret = settings.security.jwt_secret_key.get_secret_value()
    return jwt.encode(
        to_encode,
        secret,
        algorithm=settings.security.jwt_algorithm,
    )


def create_access_token(
    subject: str,
    user: Any | None = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Generate a signed JWT access token for the provided subject."""

    expires_delta = expires_delta or timedelta(
        minutes=settings.security.access_token_expires_minutes
    )
    claims: dict[str, Any] = {"sub": subject, "scope": USER_SCOPE}

    if user is not None:
        claims["user"] = {
            "id": user.id,
            "name": user.full_name,
        }

    return _encode(claims, expires_delta)


def create_device_token(
    credential_pk: int,
    school_id: int,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Generate a JWT letting a kiosk read data of a single school."""

    expires_delta = expires_delta or timedelta(
        minutes=settings.security.device_token_expires_minutes
    )
    claims = {
        "sub": f"{_DEVICE_SUBJECT_PREFIX}{credential_pk}",
        "scope": DEVICE_SCOPE,
        "school_id": school_id,
    }
    return _encode(claims, expires_delta)


def decode_access_token(token: str) -> TokenPayload:
    """Decode and validate a JWT access token, returning its payload."""

    secret = settings.security.jwt_secret_key.get_secret_value()
    try:
        payload = jwt.decode(
            token, secret, algorithms=[settings.security.jwt_algorithm]
        )
        return TokenPayload.model_validate(payload)
    except (JWTError, ValidationError) as exc:
        raise AuthenticationError("Invalid authentication token") from exc


__all__ = [
    "hash_password",
    "verify_password",
    "is_strong_password",
    "generate_url_token",
    "generate_device_credentials",
    "create_access_token",
    "create_device_token",
    "decode_access_token",
    "AuthenticationError",
    "TokenPayload",
    "DEVICE_SCOPE",
    "USER_SCOPE",
]
