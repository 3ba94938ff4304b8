"""SQLAlchemy declarative base for the directory tables."""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Import models so that Base.metadata knows every table.
# The imports are intentionally placed at the end of the module to avoid
# circular import issues when the individual model modules import ``Base``.
from .chat_rooms import ChatRoom  # noqa: F401  (re-export for convenience)
from .credentials import Credential  # noqa: F401
from .messages import Message  # noqa: F401
from .room_participants import RoomParticipant  # noqa: F401
from .users import User  # noqa: F401


__all__ = [
    "Base",
    "ChatRoom",
    "Credential",
    "Message",
    "RoomParticipant",
    "User",
]
