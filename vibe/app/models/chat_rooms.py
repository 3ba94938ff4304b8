"""Chat room model definition."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship

from . import Base


class ChatRoom(Base):
    """A named conversation between a set of participants."""

    __tablename__ = "chat_rooms"

    id = Column(String(64), primary_key=True)
    name = Column(String, nullable=False, default="")
    created_by = Column(String(64), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=True)

    participants = relationship(
        "RoomParticipant",
        back_populates="room",
        cascade="all, delete-orphan",
        order_by="RoomParticipant.position",
    )
    messages = relationship("Message", back_populates="room", cascade="all, delete-orphan")

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"ChatRoom(id={self.id!r}, name={self.name!r})"
