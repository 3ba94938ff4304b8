"""Feed states and the views published to listeners."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Generic, List, Optional, Tuple, TypeVar

from ..directory.records import ChatRoom, Message
from .names import UNKNOWN_USER

logger = logging.getLogger(__name__)

V = TypeVar("V")


class FeedState(str, Enum):
    IDLE = "idle"
    SUBSCRIBED = "subscribed"
    ERROR = "error"


@dataclass(frozen=True)
class RoomListView:
    rooms: Tuple[ChatRoom, ...]
    names: Dict[str, str] = field(default_factory=dict)

    def name_of(self, user_id: str) -> str:
        return self.names.get(user_id, UNKNOWN_USER)

    def participant_names(self, room: ChatRoom, viewer_id: Optional[str]) -> List[str]:
        """Names of the room's participants other than the viewer."""

        return [self.name_of(user_id) for user_id in room.other_participants(viewer_id)]


@dataclass(frozen=True)
class NoRoomSelected:
    """Published by a message feed that has no room to follow."""

    room_id: None = None


@dataclass(frozen=True)
class MessageListView:
    room_id: str
    messages: Tuple[Message, ...]
    names: Dict[str, str] = field(default_factory=dict)

    def sender_name(self, message: Message) -> str:
        return self.names.get(message.sender_id, UNKNOWN_USER)

    def is_mine(self, message: Message, viewer_id: Optional[str]) -> bool:
        return viewer_id is not None and message.sender_id == viewer_id


Listener = Callable[[V], None]


class Publisher(Generic[V]):
    """Fan a view out to listeners, skipping views equal to the last one sent."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []
        self.current: Optional[V] = None

    def listen(self, callback: Listener) -> Callable[[], None]:
        self._listeners.append(callback)
        if self.current is not None:
            callback(self.current)

        def _remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _remove

    def publish(self, view: V) -> bool:
        if view == self.current:
            return False
        self.current = view
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                logger.exception("Feed listener raised")
        return True
