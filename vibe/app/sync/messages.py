"""Live, ordered message list for the selected room."""
from __future__ import annotations

import logging
from typing import Callable, List, Optional, Union

from pydantic import ValidationError

from ..directory.base import (
    SERVER_TIMESTAMP,
    Directory,
    Document,
    PermissionDenied,
    Query,
    Subscription,
    messages_path,
)
from ..directory.records import Message
from .names import DisplayNameResolver
from .state import FeedState, MessageListView, NoRoomSelected, Publisher

logger = logging.getLogger(__name__)

MessageFeedView = Union[MessageListView, NoRoomSelected]


class MessageFeed:
    """Follow the messages of one room at a time, ordered by timestamp.

    Selecting a room always tears the previous subscription down first, so a
    feed never holds two room subscriptions. With no room selected the feed is
    idle and publishes ``NoRoomSelected``. Sends are not appended locally: on
    backends that push every change the next snapshot carries the message,
    otherwise the feed refetches once the write is acknowledged. Identical
    snapshots are published only once.
    """

    def __init__(self, directory: Directory, *, resolver: Optional[DisplayNameResolver] = None) -> None:
        self._directory = directory
        self._resolver = resolver or DisplayNameResolver(directory)
        self.room_id: Optional[str] = None
        self.state = FeedState.IDLE
        self.last_error: Optional[Exception] = None
        self._subscription: Optional[Subscription] = None
        self._version = 0
        self._publisher: Publisher[MessageFeedView] = Publisher()
        self._publisher.publish(NoRoomSelected())

    @property
    def view(self) -> MessageFeedView:
        return self._publisher.current

    @property
    def messages(self) -> List[Message]:
        view = self.view
        return list(view.messages) if isinstance(view, MessageListView) else []

    def listen(self, callback: Callable[[MessageFeedView], None]) -> Callable[[], None]:
        return self._publisher.listen(callback)

    def select_room(self, room_id: Optional[str]) -> None:
        if room_id == self.room_id and (room_id is None or self._subscription is not None):
            return
        self._teardown()
        self.room_id = room_id
        if room_id is None:
            self.state = FeedState.IDLE
            self._publisher.publish(NoRoomSelected())
            return
        query = Query(messages_path(room_id)).ordered_by("timestamp")
        self._subscription = self._directory.subscribe(query, self._on_snapshot, self._on_error)
        self.state = FeedState.SUBSCRIBED
        logger.debug("Message feed subscribed to room %s", room_id)

    def close(self) -> None:
        """Stop following the current room; safe to call more than once."""

        if self._subscription is None and self.room_id is None:
            return
        self._teardown()
        self.room_id = None
        self.state = FeedState.IDLE
        self._publisher.publish(NoRoomSelected())

    async def refresh(self) -> None:
        if self._subscription is not None:
            await self._subscription.refresh()

    async def settled(self) -> None:
        if self._subscription is not None:
            await self._subscription.settled()

    async def send_gif(self, sender_id: str, gif_url: str) -> Message:
        """Post ``gif_url`` to the selected room as ``sender_id``."""

        if self.room_id is None:
            raise RuntimeError("No room selected")
        if not gif_url or not gif_url.strip():
            raise ValueError("a message needs a GIF URL")
        room_id = self.room_id
        document = await self._directory.create_document(
            messages_path(room_id),
            {"senderId": sender_id, "gifUrl": gif_url, "timestamp": SERVER_TIMESTAMP},
            actor=sender_id,
        )
        logger.info("Sent GIF to room %s as %s", room_id, sender_id)
        await self._reconcile_write(room_id)
        return Message.model_validate(document)

    async def delete_message(self, message: Message, actor: str) -> None:
        """Delete ``message``; only its sender may do so."""

        if message.sender_id != actor:
            raise PermissionDenied("only the sender may delete a message")
        await self._directory.delete_document(messages_path(message.room_id), message.id, actor=actor)
        logger.info("Deleted message %s from room %s", message.id, message.room_id)
        await self._reconcile_write(message.room_id)

    async def _reconcile_write(self, room_id: str) -> None:
        if self._directory.pushes_every_change or room_id != self.room_id:
            return
        await self.refresh()

    def _teardown(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
            logger.debug("Message feed unsubscribed from room %s", self.room_id)
        self._version += 1

    async def _on_snapshot(self, documents: List[Document]) -> None:
        self._version += 1
        version = self._version
        room_id = self.room_id
        messages = []
        seen = set()
        for document in documents:
            if document.get("id") in seen:
                continue
            try:
                message = Message.model_validate(document)
            except ValidationError as exc:
                logger.warning("Skipping unrenderable message %s: %s", document.get("id"), exc)
                continue
            seen.add(message.id)
            messages.append(message)
        names = await self._resolver.resolve(message.sender_id for message in messages)
        if version != self._version or room_id != self.room_id:
            logger.debug("Dropping stale message names for snapshot %s", version)
            return
        self.state = FeedState.SUBSCRIBED
        self.last_error = None
        self._publisher.publish(MessageListView(room_id, tuple(messages), names))

    def _on_error(self, exc: Exception) -> None:
        logger.error("Message feed for room %s failed: %s", self.room_id, exc)
        self.state = FeedState.ERROR
        self.last_error = exc
