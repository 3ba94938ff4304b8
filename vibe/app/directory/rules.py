"""Ownership and integrity rules evaluated by the directory on every write.

Integrity checks always run. Ownership checks run when the write carries an
acting user id; ``actor=None`` is the trusted service context (seeding,
maintenance scripts).
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from .base import CHATROOMS, USERS, InvalidDocument, PermissionDenied, parent_room_id
from .records import ContentFilter

Document = Dict[str, Any]

MESSAGE_FIELDS = frozenset({"id", "roomId", "senderId", "gifUrl", "timestamp"})
_CONTENT_FILTERS = frozenset(level.value for level in ContentFilter)


def check_create(path: str, document: Document, actor: Optional[str], room: Optional[Document]) -> None:
    if path == USERS:
        _check_user(document)
        if actor is not None and document["id"] != actor:
            raise PermissionDenied("users may only create their own profile")
    elif path == CHATROOMS:
        _check_room(document)
        if actor is not None:
            if document.get("createdBy") != actor:
                raise PermissionDenied("rooms must be created by the acting user")
            if actor not in document["participants"]:
                raise PermissionDenied("the creator must be a participant")
    elif room is not None:
        _check_message(document, room)
        if actor is not None:
            if document.get("senderId") != actor:
                raise PermissionDenied("messages must be sent by the acting user")
            if actor not in room.get("participants", []):
                raise PermissionDenied("only participants may post to a room")
    else:
        raise PermissionDenied(f"writes to {path!r} are not allowed")


def check_update(
    path: str, existing: Document, merged: Document, actor: Optional[str], room: Optional[Document]
) -> None:
    if path == USERS:
        _check_user(merged)
        if actor is not None and existing["id"] != actor:
            raise PermissionDenied("users may only edit their own profile")
    elif path == CHATROOMS:
        if merged.get("createdBy") != existing.get("createdBy"):
            raise InvalidDocument("the room creator cannot change")
        _check_room(merged)
        if actor is not None and actor not in existing.get("participants", []):
            raise PermissionDenied("only participants may edit a room")
    elif parent_room_id(path) is not None:
        raise PermissionDenied("messages are immutable")
    else:
        raise PermissionDenied(f"writes to {path!r} are not allowed")


def check_delete(path: str, existing: Document, actor: Optional[str], room: Optional[Document]) -> None:
    if path == USERS:
        if actor is not None:
            raise PermissionDenied("profiles cannot be deleted by users")
    elif path == CHATROOMS:
        if actor is not None and actor not in existing.get("participants", []):
            raise PermissionDenied("only participants may delete a room")
    elif parent_room_id(path) is not None:
        if actor is not None and existing.get("senderId") != actor:
            raise PermissionDenied("only the sender may delete a message")
    else:
        raise PermissionDenied(f"writes to {path!r} are not allowed")


def _check_user(document: Document) -> None:
    level = document.get("contentFilter")
    if level is not None and level not in _CONTENT_FILTERS:
        raise InvalidDocument(f"unknown content filter {level!r}")


def _check_room(document: Document) -> None:
    participants = document.get("participants")
    if not isinstance(participants, list) or not participants:
        raise InvalidDocument("a chat room needs at least one participant")
    if document.get("createdBy") not in participants:
        raise InvalidDocument("the room creator must be a participant")


def _check_message(document: Document, room: Document) -> None:
    extra = set(document) - MESSAGE_FIELDS
    if extra:
        raise InvalidDocument(f"unexpected message fields: {', '.join(sorted(extra))}")
    gif_url = document.get("gifUrl")
    if not isinstance(gif_url, str) or not gif_url.strip():
        raise InvalidDocument("a message needs a GIF URL")
    if not document.get("senderId"):
        raise InvalidDocument("a message needs a sender")
    if document.get("roomId") != room["id"]:
        raise InvalidDocument("message room does not match its collection")
