"""Realtime room and message feeds."""
from .messages import MessageFeed
from .names import UNKNOWN_USER, DisplayNameResolver
from .rooms import RoomMembershipFeed
from .state import FeedState, MessageListView, NoRoomSelected, RoomListView

__all__ = [
    "DisplayNameResolver",
    "FeedState",
    "MessageFeed",
    "MessageListView",
    "NoRoomSelected",
    "RoomListView",
    "RoomMembershipFeed",
    "UNKNOWN_USER",
]
