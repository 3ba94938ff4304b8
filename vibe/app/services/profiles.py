"""User profile reads and owner-only edits."""
from __future__ import annotations

import logging
from typing import List, Optional

from ..directory.base import USERS, Directory, PermissionDenied, Query
from ..directory.records import ContentFilter, UserProfile

logger = logging.getLogger(__name__)


class ProfileService:
    def __init__(self, directory: Directory) -> None:
        self._directory = directory

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        document = await self._directory.get_document(USERS, user_id)
        return UserProfile.model_validate(document) if document is not None else None

    async def update_profile(
        self,
        actor: str,
        user_id: str,
        *,
        display_name: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> UserProfile:
        """Edit the caller's own display name and bio."""

        if actor != user_id:
            raise PermissionDenied("users may only edit their own profile")
        changes = {}
        if display_name is not None:
            changes["displayName"] = display_name.strip()
        if bio is not None:
            changes["bio"] = bio
        if not changes:
            profile = await self.get_profile(user_id)
            if profile is None:
                raise LookupError(f"no profile for {user_id}")
            return profile
        document = await self._directory.update_document(USERS, user_id, changes, actor=actor)
        logger.info("Updated profile %s fields=%s", user_id, sorted(changes))
        return UserProfile.model_validate(document)

    async def set_content_filter(self, actor: str, level: ContentFilter | str) -> ContentFilter:
        level = ContentFilter(level)
        await self._directory.update_document(
            USERS, actor, {"contentFilter": level.value}, actor=actor
        )
        logger.info("Content filter for %s changed to %s", actor, level.value)
        return level

    async def content_filter(self, user_id: Optional[str]) -> str:
        """Current stored preference, read fresh; ``off`` when unavailable."""

        if not user_id:
            return ContentFilter.OFF.value
        try:
            document = await self._directory.get_document(USERS, user_id)
        except Exception as exc:
            logger.error("Error fetching user settings for %s: %s", user_id, exc)
            return ContentFilter.OFF.value
        level = (document or {}).get("contentFilter") or ContentFilter.OFF.value
        try:
            return ContentFilter(level).value
        except ValueError:
            logger.warning("Ignoring unknown content filter %r for %s", level, user_id)
            return ContentFilter.OFF.value

    async def search_users(self, prefix: str, *, exclude: Optional[str] = None) -> List[UserProfile]:
        """Profiles whose display name starts with ``prefix``, without ``exclude``."""

        query = Query(USERS).where("displayName", "starts_with", prefix or "")
        documents = await self._directory.list_documents(query)
        return [
            UserProfile.model_validate(document)
            for document in documents
            if document.get("id") != exclude
        ]
