from __future__ import annotations

import asyncio
from datetime import timezone

import pytest

from vibe.app.directory import (
    CHATROOMS,
    SERVER_TIMESTAMP,
    USERS,
    DirectoryError,
    DocumentExists,
    DocumentNotFound,
    Query,
    messages_path,
)


@pytest.mark.asyncio
async def test_user_round_trip_with_server_timestamps(sql_directory, add_user) -> None:
    created = await add_user(sql_directory, "u1", "Alice", bio="hi")

    fetched = await sql_directory.get_document(USERS, "u1")

    assert fetched == created
    assert fetched["createdAt"].tzinfo is timezone.utc
    assert fetched["avatarUrl"] is None
    with pytest.raises(DocumentExists):
        await add_user(sql_directory, "u1", "Again")


@pytest.mark.asyncio
async def test_room_participants_keep_their_order(sql_directory) -> None:
    await sql_directory.create_document(
        CHATROOMS,
        {"name": "R", "participants": ["u3", "u1", "u2"], "createdBy": "u3", "createdAt": SERVER_TIMESTAMP},
        actor="u3",
        document_id="R",
    )

    room = await sql_directory.update_document(CHATROOMS, "R", {"participants": ["u3", "u2", "u4"]}, actor="u1")

    assert room["participants"] == ["u3", "u2", "u4"]
    member_of = await sql_directory.list_documents(Query(CHATROOMS).where("participants", "array_contains", "u4"))
    assert [document["id"] for document in member_of] == ["R"]
    assert await sql_directory.list_documents(Query(CHATROOMS).where("participants", "array_contains", "u1")) == []


@pytest.mark.asyncio
async def test_only_creates_are_broadcast(sql_directory) -> None:
    await sql_directory.create_document(
        CHATROOMS,
        {"name": "R", "participants": ["u1", "u2"], "createdBy": "u1"},
        actor="u1",
        document_id="R",
    )
    snapshots = []

    async def _record(documents):
        snapshots.append([document["id"] for document in documents])

    subscription = sql_directory.subscribe(Query(messages_path("R")), _record)
    await subscription.settled()

    message = await sql_directory.create_document(messages_path("R"), {"senderId": "u1", "gifUrl": "https://x/g.gif"}, actor="u1")
    assert snapshots == [[]]
    await subscription.settled()
    assert snapshots == [[], [message["id"]]]

    await sql_directory.delete_document(messages_path("R"), message["id"], actor="u1")
    await asyncio.sleep(0)
    await subscription.settled()
    assert snapshots == [[], [message["id"]]]
    assert sql_directory.pushes_every_change is False

    await subscription.refresh()
    assert snapshots[-1] == []
    subscription.unsubscribe()
    subscription.unsubscribe()


@pytest.mark.asyncio
async def test_unknown_collections_and_rooms(sql_directory) -> None:
    with pytest.raises(DirectoryError):
        await sql_directory.list_documents(Query("secrets"))
    with pytest.raises(DocumentNotFound):
        await sql_directory.create_document(messages_path("nope"), {"senderId": "u1", "gifUrl": "https://x/g.gif"}, actor="u1")
    with pytest.raises(DocumentNotFound):
        await sql_directory.update_document(USERS, "ghost", {"bio": "x"}, actor="ghost")
