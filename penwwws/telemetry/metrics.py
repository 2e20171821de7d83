"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "penwwws_http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "penwwws_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

ERROR_COUNTER = Counter(
    "penwwws_internal_errors_total",
    "Requests that ended in a 5xx response",
    ("method", "route"),
)

LOGIN_COUNTER = Counter(
    "penwwws_logins_total",
    "Successful logins",
    ("kind",),
)

DETACHED_GROUPS_COUNTER = Counter(
    "penwwws_groups_detached_total",
    "Groups moved to the top level by cycle-forming re-parent operations",
)

DOCUMENT_UPLOADS = Counter(
    "penwwws_document_uploads_total",
    "Topic document uploads by outcome",
    ("outcome",),
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    method = method or "UNKNOWN"
    route = route or "unknown"
    REQUEST_COUNT.labels(method=method, route=route, status=str(status_code)).inc()
    REQUEST_LATENCY.labels(method=method, route=route).observe(max(duration_seconds, 0))

    if status_code >= 500:
        ERROR_COUNTER.labels(method=method, route=route).inc()


def increment_login(kind: str = "user") -> None:
    """Count a successful login of a user (``user``) or kiosk (``device``)."""

    LOGIN_COUNTER.labels(kind=kind).inc()


def increment_detached_groups(count: int) -> None:
    if count > 0:
        DETACHED_GROUPS_COUNTER.inc(count)


def observe_document_upload(outcome: str) -> None:
    """``outcome`` is ``stored``, ``rejected`` (bad input) or ``failed`` (storage)."""

    DOCUMENT_UPLOADS.labels(outcome=outcome).inc()
