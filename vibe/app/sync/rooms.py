"""Live list of the rooms the current user participates in."""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional

from pydantic import ValidationError

from ..directory.base import CHATROOMS, Directory, Document, Query, Subscription
from ..directory.records import ChatRoom
from .names import DisplayNameResolver
from .state import FeedState, Publisher, RoomListView

logger = logging.getLogger(__name__)


class RoomMembershipFeed:
    """Subscribe to ``chatrooms`` containing the user and republish rooms with names.

    Every snapshot replaces the room list, resolves the union of all
    participant ids in a single resolver call, and publishes a
    ``RoomListView``. Each snapshot carries a version; a resolution that
    completes after a newer snapshot arrived is dropped. On backends that do
    not push every change the feed also refetches every ``poll_interval``
    seconds.
    """

    def __init__(
        self,
        directory: Directory,
        user_id: str,
        *,
        resolver: Optional[DisplayNameResolver] = None,
        poll_interval: Optional[float] = None,
    ) -> None:
        self._directory = directory
        self._resolver = resolver or DisplayNameResolver(directory)
        self._poll_interval = poll_interval
        self.user_id = user_id
        self.state = FeedState.IDLE
        self.last_error: Optional[Exception] = None
        self._subscription: Optional[Subscription] = None
        self._poller: Optional[asyncio.Task] = None
        self._version = 0
        self._publisher: Publisher[RoomListView] = Publisher()

    @property
    def view(self) -> Optional[RoomListView]:
        return self._publisher.current

    @property
    def rooms(self) -> List[ChatRoom]:
        return list(self.view.rooms) if self.view is not None else []

    def listen(self, callback: Callable[[RoomListView], None]) -> Callable[[], None]:
        return self._publisher.listen(callback)

    def query(self) -> Query:
        return Query(CHATROOMS).where("participants", "array_contains", self.user_id)

    def start(self) -> None:
        if self._subscription is not None:
            return
        self._subscription = self._directory.subscribe(self.query(), self._on_snapshot, self._on_error)
        self.state = FeedState.SUBSCRIBED
        if self._poll_interval:
            self._poller = asyncio.get_running_loop().create_task(self._poll())
        logger.debug("Room feed subscribed for %s", self.user_id)

    def stop(self) -> None:
        """Tear the subscription down; calling it again is a no-op."""

        if self._poller is not None:
            self._poller.cancel()
            self._poller = None
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
            logger.debug("Room feed for %s unsubscribed", self.user_id)
        self._version += 1
        self.state = FeedState.IDLE

    def switch_user(self, user_id: Optional[str]) -> None:
        """Follow another user's rooms, or stop entirely when ``user_id`` is ``None``."""

        self.stop()
        if user_id is None:
            return
        self.user_id = user_id
        self.start()

    async def refresh(self) -> None:
        if self._subscription is not None:
            await self._subscription.refresh()

    async def settled(self) -> None:
        if self._subscription is not None:
            await self._subscription.settled()

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            if self._subscription is not None:
                self._subscription.notify()

    async def _on_snapshot(self, documents: List[Document]) -> None:
        self._version += 1
        version = self._version
        rooms = []
        for document in documents:
            try:
                rooms.append(ChatRoom.model_validate(document))
            except ValidationError as exc:
                logger.warning("Skipping malformed room %s: %s", document.get("id"), exc)
        participant_ids = {user_id for room in rooms for user_id in room.participants}
        names = await self._resolver.resolve(sorted(participant_ids))
        if version != self._version:
            logger.debug("Dropping stale room names for snapshot %s", version)
            return
        self.state = FeedState.SUBSCRIBED
        self.last_error = None
        self._publisher.publish(RoomListView(tuple(rooms), names))

    def _on_error(self, exc: Exception) -> None:
        logger.error("Room feed for %s failed: %s", self.user_id, exc)
        self.state = FeedState.ERROR
        self.last_error = exc
