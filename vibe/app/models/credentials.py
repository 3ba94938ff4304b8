"""Email/password credentials for the local identity provider."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, String, func

from . import Base


class Credential(Base):
    """Hashed password registered for an email address."""

    __tablename__ = "credentials"

    user_id = Column(String(64), primary_key=True)
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"Credential(user_id={self.user_id!r}, email={self.email!r})"
