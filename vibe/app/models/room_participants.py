"""Room membership association model."""
from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from . import Base


class RoomParticipant(Base):
    """Association between a room and one of its participants."""

    __tablename__ = "room_participants"
    __table_args__ = (UniqueConstraint("room_id", "user_id", name="uq_room_participant"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    room_id = Column(
        String(64),
        ForeignKey("chat_rooms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(String(64), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    room = relationship("ChatRoom", back_populates="participants")

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"RoomParticipant(room_id={self.room_id!r}, user_id={self.user_id!r})"
