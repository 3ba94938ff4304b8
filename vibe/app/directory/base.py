"""Capability interface shared by every directory backend.

A directory is the remote document store the client talks to: it hands out
documents by collection path, applies simple equality / membership / prefix
queries, and pushes fresh snapshots to subscribers when a collection changes.
Writes carry the acting user id so the backend can enforce ownership rules
itself instead of trusting the caller.
"""
from __future__ import annotations

import abc
import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Optional, Tuple

logger = logging.getLogger(__name__)

USERS = "users"
CHATROOMS = "chatrooms"
MESSAGES = "messages"

CHANGE_EVENTS: FrozenSet[str] = frozenset({"create", "update", "delete"})
FILTER_OPERATORS = ("==", "array_contains", "starts_with")

Document = Dict[str, Any]
SnapshotHandler = Callable[[List[Document]], Awaitable[None]]
ErrorHandler = Callable[[Exception], None]


def messages_path(room_id: str) -> str:
    """Collection path of the message sub-collection of ``room_id``."""

    return f"{CHATROOMS}/{room_id}/{MESSAGES}"


def parent_room_id(path: str) -> Optional[str]:
    """Return the room id for a message collection path, ``None`` otherwise."""

    parts = path.split("/")
    if len(parts) == 3 and parts[0] == CHATROOMS and parts[2] == MESSAGES and parts[1]:
        return parts[1]
    return None


class DirectoryError(Exception):
    """Base class for failures reported by a directory backend."""


class DocumentNotFound(DirectoryError):
    def __init__(self, path: str, document_id: str) -> None:
        super().__init__(f"{path}/{document_id} does not exist")
        self.path = path
        self.document_id = document_id


class DocumentExists(DirectoryError):
    def __init__(self, path: str, document_id: str) -> None:
        super().__init__(f"{path}/{document_id} already exists")
        self.path = path
        self.document_id = document_id


class PermissionDenied(DirectoryError):
    """Raised when a write violates the directory's ownership rules."""


class InvalidDocument(DirectoryError):
    """Raised when a write would break a record invariant."""


class _ServerTimestamp:
    """Placeholder replaced by the backend clock when a write is applied."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"

    def __copy__(self) -> "_ServerTimestamp":
        return self

    def __deepcopy__(self, memo: dict) -> "_ServerTimestamp":
        return self


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class Filter:
    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator {self.op!r}")

    def matches(self, document: Document) -> bool:
        current = document.get(self.field)
        if self.op == "==":
            return current == self.value
        if self.op == "array_contains":
            return isinstance(current, (list, tuple)) and self.value in current
        return isinstance(current, str) and current.startswith(str(self.value))


@dataclass(frozen=True)
class Query:
    """A collection path plus optional filters and a single ascending sort key."""

    path: str
    filters: Tuple[Filter, ...] = ()
    order_by: Optional[str] = None

    def where(self, field: str, op: str, value: Any) -> "Query":
        return Query(self.path, self.filters + (Filter(field, op, value),), self.order_by)

    def ordered_by(self, field: str) -> "Query":
        return Query(self.path, self.filters, field)

    def matches(self, document: Document) -> bool:
        return all(item.matches(document) for item in self.filters)

    def apply(self, documents: List[Document]) -> List[Document]:
        """Filter ``documents`` and sort them when an order is requested."""

        selected = [document for document in documents if self.matches(document)]
        if self.order_by is None:
            return selected
        key = self.order_by

        def _sort_key(document: Document) -> tuple:
            value = document.get(key)
            return (value is None, value if value is not None else "")

        # Stable: ties keep the backend's creation order.
        return sorted(selected, key=_sort_key)


class Subscription:
    """Live query handle delivering snapshots in order on its own task."""

    def __init__(
        self,
        directory: "Directory",
        query: Query,
        on_snapshot: SnapshotHandler,
        on_error: Optional[ErrorHandler] = None,
    ) -> None:
        self.query = query
        self._directory = directory
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._queue: asyncio.Queue[Optional[asyncio.Future]] = asyncio.Queue()
        self._current: Optional[asyncio.Future] = None
        self._closed = False
        self._task = asyncio.get_running_loop().create_task(self._deliver())
        self.notify()

    @property
    def active(self) -> bool:
        return not self._closed

    def notify(self) -> None:
        """Schedule a refetch of the query; the snapshot is delivered asynchronously."""

        if not self._closed:
            self._queue.put_nowait(None)

    async def refresh(self) -> None:
        """Refetch now and return once the resulting snapshot has been handled."""

        if self._closed:
            return
        waiter = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(waiter)
        await waiter

    async def settled(self) -> None:
        """Wait until every snapshot queued so far has been handled."""

        await asyncio.sleep(0)
        if not self._closed:
            await self._queue.join()

    def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._directory._detach(self)
        self._task.cancel()
        while not self._queue.empty():
            _release(self._queue.get_nowait())
            self._queue.task_done()
        _release(self._current)
        logger.debug("Unsubscribed from %s", self.query.path)

    async def _deliver(self) -> None:
        while True:
            waiter = await self._queue.get()
            self._current = waiter
            try:
                try:
                    documents = await self._directory.list_documents(self.query)
                except Exception as exc:
                    logger.error("Snapshot fetch for %s failed: %s", self.query.path, exc)
                    if self._on_error is not None:
                        self._on_error(exc)
                else:
                    try:
                        await self._on_snapshot(documents)
                    except Exception:
                        logger.exception("Snapshot handler for %s raised", self.query.path)
            finally:
                self._current = None
                _release(waiter)
                self._queue.task_done()


def _release(waiter: Optional[asyncio.Future]) -> None:
    if waiter is not None and not waiter.done():
        waiter.set_result(None)


def _resolve_server_values(data: Document, now: datetime) -> Document:
    return {key: (now if value is SERVER_TIMESTAMP else value) for key, value in data.items()}


class Directory(abc.ABC):
    """Document store with realtime subscriptions and backend-side authorization."""

    #: Change kinds that trigger a push to subscribers.
    broadcast_events: FrozenSet[str] = CHANGE_EVENTS
    #: Push on the next loop iteration instead of inline with the write.
    defer_broadcast: bool = False

    def __init__(self) -> None:
        self._subscriptions: List[Subscription] = []

    @property
    def pushes_every_change(self) -> bool:
        return CHANGE_EVENTS <= self.broadcast_events

    async def get_document(self, path: str, document_id: str) -> Optional[Document]:
        return await self._fetch(path, document_id)

    async def list_documents(self, query: Query) -> List[Document]:
        return await self._select(query)

    async def create_document(
        self,
        path: str,
        data: Document,
        *,
        actor: Optional[str],
        document_id: Optional[str] = None,
    ) -> Document:
        from . import rules

        document = _resolve_server_values(data, self._now())
        document["id"] = document_id or document.get("id") or uuid.uuid4().hex
        room = await self._parent_room(path)
        if room is not None:
            document.setdefault("roomId", room["id"])
        rules.check_create(path, document, actor, room)
        if await self._fetch(path, document["id"]) is not None:
            raise DocumentExists(path, document["id"])
        stored = await self._insert(path, document)
        logger.debug("Created %s/%s by %s", path, stored["id"], actor or "system")
        self._changed(path, "create")
        return stored

    async def update_document(
        self, path: str, document_id: str, changes: Document, *, actor: Optional[str]
    ) -> Document:
        from . import rules

        existing = await self._require(path, document_id)
        room = await self._parent_room(path)
        updates = _resolve_server_values(changes, self._now())
        updates.pop("id", None)
        merged = {**existing, **updates}
        rules.check_update(path, existing, merged, actor, room)
        stored = await self._replace(path, document_id, merged)
        logger.debug("Updated %s/%s by %s", path, document_id, actor or "system")
        self._changed(path, "update")
        return stored

    async def delete_document(self, path: str, document_id: str, *, actor: Optional[str]) -> None:
        from . import rules

        existing = await self._require(path, document_id)
        room = await self._parent_room(path)
        rules.check_delete(path, existing, actor, room)
        await self._remove(path, document_id)
        logger.debug("Deleted %s/%s by %s", path, document_id, actor or "system")
        self._changed(path, "delete")
        if path == CHATROOMS:
            self._changed(messages_path(document_id), "delete")

    def subscribe(
        self,
        query: Query,
        on_snapshot: SnapshotHandler,
        on_error: Optional[ErrorHandler] = None,
    ) -> Subscription:
        """Start a live query; the first snapshot is delivered right away."""

        subscription = Subscription(self, query, on_snapshot, on_error)
        self._subscriptions.append(subscription)
        return subscription

    def close(self) -> None:
        for subscription in list(self._subscriptions):
            subscription.unsubscribe()

    def _detach(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def _changed(self, path: str, event: str) -> None:
        if event not in self.broadcast_events:
            return
        if self.defer_broadcast:
            asyncio.get_running_loop().call_soon(self._broadcast, path)
        else:
            self._broadcast(path)

    def _broadcast(self, path: str) -> None:
        for subscription in list(self._subscriptions):
            if subscription.query.path == path:
                subscription.notify()

    async def _require(self, path: str, document_id: str) -> Document:
        document = await self._fetch(path, document_id)
        if document is None:
            raise DocumentNotFound(path, document_id)
        return document

    async def _parent_room(self, path: str) -> Optional[Document]:
        room_id = parent_room_id(path)
        if room_id is None:
            return None
        room = await self._fetch(CHATROOMS, room_id)
        if room is None:
            raise DocumentNotFound(CHATROOMS, room_id)
        return room

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    @abc.abstractmethod
    async def _fetch(self, path: str, document_id: str) -> Optional[Document]:
        ...

    @abc.abstractmethod
    async def _select(self, query: Query) -> List[Document]:
        ...

    @abc.abstractmethod
    async def _insert(self, path: str, document: Document) -> Document:
        ...

    @abc.abstractmethod
    async def _replace(self, path: str, document_id: str, document: Document) -> Document:
        ...

    @abc.abstractmethod
    async def _remove(self, path: str, document_id: str) -> None:
        ...
