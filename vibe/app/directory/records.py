"""Typed views over directory documents."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class ContentFilter(str, Enum):
    """Permissiveness of GIF search results forwarded to the provider."""

    OFF = "off"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class _Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, use_enum_values=True, validate_default=True
    )

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="python")


class UserProfile(_Record):
    id: str
    email: str = ""
    display_name: str = ""
    bio: str = ""
    avatar_url: Optional[str] = None
    content_filter: ContentFilter = ContentFilter.OFF
    created_at: Optional[datetime] = None
    last_active: Optional[datetime] = None


class ChatRoom(_Record):
    id: str
    name: str = ""
    participants: List[str] = Field(default_factory=list)
    created_by: str
    created_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _creator_participates(self) -> "ChatRoom":
        if not self.participants:
            raise ValueError("a chat room needs at least one participant")
        if self.created_by not in self.participants:
            raise ValueError("the room creator must be a participant")
        return self

    def other_participants(self, viewer_id: str | None) -> List[str]:
        """Participants excluding ``viewer_id``, in stored order."""

        return [user_id for user_id in self.participants if user_id != viewer_id]


class Message(_Record):
    id: str
    room_id: str
    sender_id: str
    gif_url: str
    timestamp: Optional[datetime] = None

    @field_validator("gif_url")
    @classmethod
    def _gif_url_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("a message needs a GIF URL")
        return value
