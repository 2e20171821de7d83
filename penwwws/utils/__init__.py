"""Utility helpers for the Penwwws backend."""

from .security import (
    DEVICE_SCOPE,
    USER_SCOPE,
    AuthenticationError,
    TokenPayload,
    create_access_token,
    create_device_token,
    decode_access_token,
    generate_device_credentials,
    generate_url_token,
    hash_password,
    is_strong_password,
    verify_password,
)

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
