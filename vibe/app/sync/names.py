"""Display name resolution for participant and sender ids."""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, Optional

from ..directory.base import USERS, Directory

logger = logging.getLogger(__name__)

UNKNOWN_USER = "Unknown User"


class DisplayNameResolver:
    """Map user ids to display names with one parallel lookup per distinct id.

    A failed or missing lookup yields ``UNKNOWN_USER`` for that id only; the
    result always covers every requested id, and an empty id maps to
    ``UNKNOWN_USER`` without a lookup. With ``memoize`` enabled,
    successfully resolved names are kept for the resolver's lifetime.
    """

    def __init__(self, directory: Directory, *, memoize: bool = False) -> None:
        self._directory = directory
        self._memo: Optional[Dict[str, str]] = {} if memoize else None

    async def resolve(self, user_ids: Iterable[str]) -> Dict[str, str]:
        distinct = list(dict.fromkeys(user_ids))
        pending = [
            user_id for user_id in distinct if user_id and (self._memo is None or user_id not in self._memo)
        ]
        fetched = await asyncio.gather(*(self._lookup(user_id) for user_id in pending))
        resolved = dict(zip(pending, fetched))
        if self._memo is not None:
            self._memo.update(
                (user_id, name) for user_id, name in resolved.items() if name is not None
            )
            resolved = {**{user_id: self._memo.get(user_id) for user_id in distinct}, **resolved}
        return {user_id: resolved.get(user_id) or UNKNOWN_USER for user_id in distinct}

    async def _lookup(self, user_id: str) -> Optional[str]:
        try:
            document = await self._directory.get_document(USERS, user_id)
        except Exception as exc:
            logger.warning("Display name lookup for %s failed: %s", user_id, exc)
            return None
        if document is None:
            return None
        return document.get("displayName") or None
