"""Service layer helpers for external integrations and the group hierarchy."""

from .email import (
    EmailServiceError,
    frontend_link,
    send_email,
    send_link_email,
    try_send_link_email,
)
from .oauth import OAuthProviderError, ProviderProfile, fetch_google_profile
from .storage import StorageError, delete_document, upload_document

__all__ = [
    "EmailServiceError",
    "send_email",
    "send_link_email",
    "try_send_link_email",
    "frontend_link",
    "OAuthProviderError",
    "ProviderProfile",
    "fetch_google_profile",
    "StorageError",
    "upload_document",
    "delete_document",
]
