"""SQLAlchemy-backed directory whose realtime channel only announces new rows."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Type

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload, sessionmaker

from .. import models
from ..core.db import SessionLocal
from .base import (
    CHATROOMS,
    USERS,
    Directory,
    DirectoryError,
    DocumentNotFound,
    Document,
    Filter,
    Query,
    parent_room_id,
)

logger = logging.getLogger(__name__)

_USER_FIELDS = {
    "id": "id",
    "email": "email",
    "displayName": "display_name",
    "bio": "bio",
    "avatarUrl": "avatar_url",
    "contentFilter": "content_filter",
    "createdAt": "created_at",
    "lastActive": "last_active",
}
_ROOM_FIELDS = {
    "id": "id",
    "name": "name",
    "createdBy": "created_by",
    "createdAt": "created_at",
}
_MESSAGE_FIELDS = {
    "id": "id",
    "roomId": "room_id",
    "senderId": "sender_id",
    "gifUrl": "gif_url",
    "timestamp": "timestamp",
}


class SqlDirectory(Directory):
    """Relational directory.

    Creates are announced to subscribers on the next loop iteration, separately
    from the write itself; updates and deletes are never announced, so callers
    that need to see their own write must refresh explicitly.
    """

    broadcast_events = frozenset({"create"})
    defer_broadcast = True

    def __init__(self, session_factory: Optional[sessionmaker[Session]] = None) -> None:
        super().__init__()
        self._session_factory = session_factory or SessionLocal

    async def _fetch(self, path: str, document_id: str) -> Optional[Document]:
        model, fields, room_id = _target(path)
        with self._session_factory() as session:
            stmt = _base_statement(model, room_id).where(model.id == document_id)
            row = session.execute(stmt).scalar_one_or_none()
            return _to_document(row, fields) if row is not None else None

    async def _select(self, query: Query) -> List[Document]:
        model, fields, room_id = _target(query.path)
        stmt = _base_statement(model, room_id)
        for item in query.filters:
            stmt = stmt.where(_condition(model, fields, item))
        if query.order_by is not None:
            column_name = fields.get(query.order_by)
            if column_name is None:
                raise DirectoryError(f"Cannot order {query.path} by {query.order_by!r}")
            stmt = stmt.order_by(getattr(model, column_name).asc())
        stmt = stmt.order_by(*_creation_order(model))
        with self._session_factory() as session:
            rows = session.execute(stmt).scalars().all()
            return [_to_document(row, fields) for row in rows]

    async def _insert(self, path: str, document: Document) -> Document:
        model, fields, _ = _target(path)
        values = {fields[key]: value for key, value in document.items() if key in fields}
        ignored = set(document) - set(fields) - {"participants"}
        if ignored:
            logger.debug("Ignoring unmapped fields for %s: %s", path, sorted(ignored))
        with self._session_factory() as session:
            row = model(**values)
            if model is models.ChatRoom:
                _sync_participants(row, document.get("participants", []))
            session.add(row)
            session.flush()
            session.refresh(row)
            stored = _to_document(row, fields)
            session.commit()
        return stored

    async def _replace(self, path: str, document_id: str, document: Document) -> Document:
        model, fields, room_id = _target(path)
        with self._session_factory() as session:
            stmt = _base_statement(model, room_id).where(model.id == document_id)
            row = session.execute(stmt).scalar_one_or_none()
            if row is None:
                raise DocumentNotFound(path, document_id)
            for key, value in document.items():
                if key in fields and key != "id":
                    setattr(row, fields[key], value)
            if model is models.ChatRoom and "participants" in document:
                _sync_participants(row, document["participants"])
            session.flush()
            session.refresh(row)
            stored = _to_document(row, fields)
            session.commit()
        return stored

    async def _remove(self, path: str, document_id: str) -> None:
        model, _, room_id = _target(path)
        with self._session_factory() as session:
            stmt = _base_statement(model, room_id).where(model.id == document_id)
            row = session.execute(stmt).scalar_one_or_none()
            if row is None:
                raise DocumentNotFound(path, document_id)
            session.delete(row)
            session.commit()


def _target(path: str) -> Tuple[Type[Any], Dict[str, str], Optional[str]]:
    if path == USERS:
        return models.User, _USER_FIELDS, None
    if path == CHATROOMS:
        return models.ChatRoom, _ROOM_FIELDS, None
    room_id = parent_room_id(path)
    if room_id is not None:
        return models.Message, _MESSAGE_FIELDS, room_id
    raise DirectoryError(f"Unknown collection {path!r}")


def _base_statement(model: Type[Any], room_id: Optional[str]):
    stmt = select(model)
    if room_id is not None:
        stmt = stmt.where(model.room_id == room_id)
    if model is models.ChatRoom:
        stmt = stmt.options(selectinload(models.ChatRoom.participants))
    return stmt


def _creation_order(model: Type[Any]) -> tuple:
    if model is models.Message:
        return (models.Message.seq.asc(),)
    if model is models.ChatRoom:
        return (models.ChatRoom.created_at.asc(), models.ChatRoom.id.asc())
    return (model.id.asc(),)


def _condition(model: Type[Any], fields: Dict[str, str], item: Filter):
    if model is models.ChatRoom and item.field == "participants":
        if item.op != "array_contains":
            raise DirectoryError("participants only supports array_contains")
        return models.ChatRoom.participants.any(models.RoomParticipant.user_id == item.value)
    column_name = fields.get(item.field)
    if column_name is None or item.op == "array_contains":
        raise DirectoryError(f"Cannot filter on {item.field!r} with {item.op!r}")
    column = getattr(model, column_name)
    if item.op == "==":
        return column == item.value
    return column.startswith(str(item.value), autoescape=True)


def _sync_participants(row: models.ChatRoom, user_ids: List[str]) -> None:
    existing = {participant.user_id: participant for participant in row.participants}
    ordered = []
    for position, user_id in enumerate(dict.fromkeys(user_ids)):
        participant = existing.pop(user_id, None) or models.RoomParticipant(user_id=user_id)
        participant.position = position
        ordered.append(participant)
    row.participants = ordered


def _normalize(value: Any) -> Any:
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_document(row: Any, fields: Dict[str, str]) -> Document:
    document = {key: _normalize(getattr(row, attribute)) for key, attribute in fields.items()}
    if isinstance(row, models.ChatRoom):
        ordered = sorted(row.participants, key=lambda participant: participant.position or 0)
        document["participants"] = [participant.user_id for participant in ordered]
    return document
