"""S3 storage helpers for topic documents."""

from __future__ import annotations

import logging
import re
from typing import Any
from uuid import uuid4

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from penwwws.config.settings import settings

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class StorageError(RuntimeError):
    """Raised when S3 asset persistence fails."""


_s3_client = None


def _get_client():
    """Return the shared S3 client, using explicit credentials when configured."""

    global _s3_client
    if _s3_client is None:
        client_kwargs: dict[str, Any] = {"region_name": settings.s3.region}
        if settings.s3.access_key and settings.s3.secret_key:
            client_kwargs["aws_access_key_id"] = settings.s3.access_key
            client_kwargs["aws_secret_access_key"] = settings.s3.secret_key
        _s3_client = boto3.client("s3", **client_kwargs)
    return _s3_client


def _object_url(bucket: str, key: str) -> str:
    if settings.s3.public_base_url:
        return f"{settings.s3.public_base_url.rstrip('/')}/{key}"
    region = settings.s3.region
    if region == "us-east-1":
        return f"https://{bucket}.s3.amazonaws.com/{key}"
    return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"


def build_document_key(school_id: int, topic_id: int, filename: str) -> str:
    """Return a collision-free object key for an uploaded document."""

    safe_name = _UNSAFE_KEY_CHARS.sub("-", filename).strip("-.") or "document"
    return f"schools/{school_id}/topics/{topic_id}/{uuid4().hex}-{safe_name[:100]}"


async def upload_document(
    school_id: int,
    topic_id: int,
    data: bytes,
    *,
    filename: str,
    content_type: str | None,
) -> tuple[str, str]:
    """Upload a document to S3 and return (object_key, public_url)."""

    if not data:
        raise StorageError("Document payload for upload was empty.")
    bucket = settings.s3.bucket_name
    if not bucket:
        raise StorageError("S3 bucket name is not configured.")

    object_key = build_document_key(school_id, topic_id, filename)
    try:
        await run_in_threadpool(
            _get_client().put_object,
            Bucket=bucket,
            Key=object_key,
            Body=data,
            ContentType=content_type or "application/octet-stream",
        )
    except (BotoCoreError, ClientError) as exc:
        raise StorageError(f"Failed to upload document: {exc}") from exc

    logger.info("Uploaded document %s (%d bytes)", object_key, len(data))
    return object_key, _object_url(bucket, object_key)


async def delete_document(object_key: str) -> None:
    """Remove a previously uploaded document from S3."""

    bucket = settings.s3.bucket_name
    if not bucket:
        raise StorageError("S3 bucket name is not configured.")

    try:
        await run_in_threadpool(
            _get_client().delete_object,
            Bucket=bucket,
            Key=object_key,
        )
    except (BotoCoreError, ClientError) as exc:
        raise StorageError(f"Failed to delete document: {exc}") from exc


__all__ = ["upload_document", "delete_document", "build_document_key", "StorageError"]
