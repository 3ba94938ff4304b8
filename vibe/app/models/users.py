"""User profile model definition."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, String, Text

from . import Base


class User(Base):
    """Directory profile of a chat user."""

    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    email = Column(String, nullable=False, default="", index=True)
    display_name = Column(String, nullable=False, default="", index=True)
    bio = Column(Text, nullable=False, default="")
    avatar_url = Column(String, nullable=True)
    content_filter = Column(String(16), nullable=False, default="off")
    created_at = Column(DateTime(timezone=True), nullable=True)
    last_active = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"User(id={self.id!r}, email={self.email!r})"
