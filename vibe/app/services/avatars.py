"""Profile picture upload to object storage."""
from __future__ import annotations

import asyncio
import io
import logging
import uuid
from typing import Any, Callable, Optional

from ..core.config import settings
from ..core.s3 import get_minio_client, public_object_url
from ..directory.base import USERS, Directory

logger = logging.getLogger(__name__)


class AvatarUploadError(Exception):
    """Upload failure reported to the user with a blocking alert."""


class AvatarService:
    def __init__(
        self,
        directory: Directory,
        *,
        client_factory: Callable[[], Any] = get_minio_client,
        bucket: Optional[str] = None,
    ) -> None:
        self._directory = directory
        self._client_factory = client_factory
        self.bucket = bucket or settings.MINIO_BUCKET

    def preview_url(self, object_name: str) -> str:
        return public_object_url(self.bucket, object_name)

    def object_name_from_url(self, url: Optional[str]) -> Optional[str]:
        """Recover the stored object name from a preview URL built by this service."""

        prefix = self.preview_url("")
        if url and url.startswith(prefix):
            return url[len(prefix):] or None
        return None

    async def upload_avatar(self, actor: str, image: bytes, *, content_type: Optional[str] = None) -> str:
        """Store ``image`` as the caller's profile picture and return its preview URL."""

        if not image:
            raise AvatarUploadError("No image selected")
        if len(image) > settings.AVATAR_MAX_BYTES:
            raise AvatarUploadError("Image is too large")
        profile = await self._directory.get_document(USERS, actor)
        if profile is None:
            raise AvatarUploadError("Profile not found")

        previous = self.object_name_from_url(profile.get("avatarUrl"))
        object_name = f"{actor}-{uuid.uuid4().hex}.jpg"
        client = self._client_factory()
        try:
            if not await asyncio.to_thread(client.bucket_exists, self.bucket):
                await asyncio.to_thread(client.make_bucket, self.bucket)
            await asyncio.to_thread(
                client.put_object,
                self.bucket,
                object_name,
                io.BytesIO(image),
                len(image),
                content_type=content_type or settings.AVATAR_CONTENT_TYPE,
            )
        except Exception as exc:
            logger.exception("Profile picture upload failed for %s", actor)
            raise AvatarUploadError("Failed to upload profile picture") from exc

        url = self.preview_url(object_name)
        await self._directory.update_document(USERS, actor, {"avatarUrl": url}, actor=actor)
        logger.info("Profile picture for %s stored as %s", actor, object_name)

        if previous and previous != object_name:
            try:
                await asyncio.to_thread(client.remove_object, self.bucket, previous)
            except Exception as exc:
                logger.warning("Could not delete previous profile picture %s: %s", previous, exc)
        return url
