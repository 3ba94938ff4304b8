"""MinIO client helpers for storing profile pictures."""
from __future__ import annotations

from minio import Minio

from .config import settings


def get_minio_client() -> Minio:
    """Return a configured MinIO client."""
    return Minio(
        settings.MINIO_ENDPOINT,
        access_key=settings.MINIO_ACCESS_KEY,
        secret_key=settings.MINIO_SECRET_KEY,
        secure=settings.MINIO_SECURE,
    )


def public_object_url(bucket: str, object_name: str) -> str:
    """Build the public preview URL for an object in ``bucket``."""

    endpoint = settings.MINIO_PUBLIC_ENDPOINT
    if not endpoint:
        scheme = "https" if settings.MINIO_SECURE else "http"
        endpoint = f"{scheme}://{settings.MINIO_ENDPOINT}"
    return f"{endpoint.rstrip('/')}/{bucket}/{object_name}"
