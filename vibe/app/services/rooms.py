"""Chat room creation and membership management."""
from __future__ import annotations

import logging
from typing import Iterable, List

from ..directory.base import CHATROOMS, SERVER_TIMESTAMP, Directory, DocumentNotFound, InvalidDocument
from ..directory.records import ChatRoom

logger = logging.getLogger(__name__)


def _participant_list(creator: str, selected: Iterable[str]) -> List[str]:
    return list(dict.fromkeys([creator, *(user_id for user_id in selected if user_id)]))


class RoomService:
    def __init__(self, directory: Directory) -> None:
        self._directory = directory

    async def get_room(self, room_id: str) -> ChatRoom:
        document = await self._directory.get_document(CHATROOMS, room_id)
        if document is None:
            raise DocumentNotFound(CHATROOMS, room_id)
        return ChatRoom.model_validate(document)

    async def create_room(self, actor: str, name: str, participant_ids: Iterable[str]) -> ChatRoom:
        """Create a named room holding the creator and at least one other user."""

        name = (name or "").strip()
        if not name:
            raise InvalidDocument("a chat room needs a name")
        participants = _participant_list(actor, participant_ids)
        if len(participants) < 2:
            raise InvalidDocument("select at least one other participant")
        document = await self._directory.create_document(
            CHATROOMS,
            {
                "name": name,
                "participants": participants,
                "createdBy": actor,
                "createdAt": SERVER_TIMESTAMP,
            },
            actor=actor,
        )
        logger.info("Chat room %s created by %s", document["id"], actor)
        return ChatRoom.model_validate(document)

    async def update_room(
        self, actor: str, room_id: str, name: str, participant_ids: Iterable[str]
    ) -> ChatRoom:
        """Rename the room and replace its participant selection; the creator always stays."""

        room = await self.get_room(room_id)
        name = (name or "").strip()
        if not name:
            raise InvalidDocument("a chat room needs a name")
        participants = _participant_list(room.created_by, participant_ids)
        document = await self._directory.update_document(
            CHATROOMS, room_id, {"name": name, "participants": participants}, actor=actor
        )
        logger.info("Chat room %s updated by %s", room_id, actor)
        return ChatRoom.model_validate(document)

    async def rename_room(self, actor: str, room_id: str, name: str) -> ChatRoom:
        room = await self.get_room(room_id)
        return await self.update_room(actor, room_id, name, room.participants)

    async def add_participant(self, actor: str, room_id: str, user_id: str) -> ChatRoom:
        room = await self.get_room(room_id)
        if user_id in room.participants:
            return room
        return await self.update_room(actor, room_id, room.name, [*room.participants, user_id])

    async def remove_participant(self, actor: str, room_id: str, user_id: str) -> ChatRoom:
        room = await self.get_room(room_id)
        if user_id == room.created_by:
            raise InvalidDocument("the room creator cannot be removed")
        remaining = [member for member in room.participants if member != user_id]
        return await self.update_room(actor, room_id, room.name, remaining)

    async def delete_room(self, actor: str, room_id: str) -> None:
        await self._directory.delete_document(CHATROOMS, room_id, actor=actor)
        logger.info("Chat room %s deleted by %s", room_id, actor)
