"""Telemetry helpers and metrics."""

from .metrics import (
    DETACHED_GROUPS_COUNTER,
    DOCUMENT_UPLOADS,
    ERROR_COUNTER,
    LOGIN_COUNTER,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    increment_detached_groups,
    increment_login,
    observe_document_upload,
    observe_request,
)

__all__ = [
    "DETACHED_GROUPS_COUNTER",
    "DOCUMENT_UPLOADS",
    "ERROR_COUNTER",
    "LOGIN_COUNTER",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "increment_detached_groups",
    "increment_login",
    "observe_document_upload",
    "observe_request",
]
