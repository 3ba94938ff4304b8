from __future__ import annotations

import asyncio

import pytest

from vibe.app.directory import CHATROOMS, SERVER_TIMESTAMP, MemoryDirectory
from vibe.app.sync import DisplayNameResolver, FeedState, RoomMembershipFeed


class RecordingResolver(DisplayNameResolver):
    def __init__(self, directory) -> None:
        super().__init__(directory)
        self.calls: list[list[str]] = []

    async def resolve(self, user_ids):
        ids = list(user_ids)
        self.calls.append(ids)
        return await super().resolve(ids)


class BlockingResolver(DisplayNameResolver):
    def __init__(self, directory) -> None:
        super().__init__(directory)
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def resolve(self, user_ids):
        self.started.set()
        await self.release.wait()
        return await super().resolve(user_ids)


class BrokenDirectory(MemoryDirectory):
    async def _select(self, query):
        raise ConnectionError("listen failed")


async def _add_room(directory, room_id: str, participants: list[str], name: str = "") -> dict:
    return await directory.create_document(
        CHATROOMS,
        {
            "name": name or room_id,
            "participants": participants,
            "createdBy": participants[0],
            "createdAt": SERVER_TIMESTAMP,
        },
        actor=None,
        document_id=room_id,
    )


@pytest.mark.asyncio
async def test_names_resolved_once_for_participant_union(directory, add_user) -> None:
    for user_id, name in (("U1", "Una"), ("U2", "Dos"), ("U3", "Tres")):
        await add_user(directory, user_id, name)
    await _add_room(directory, "A", ["U1", "U2"])
    await _add_room(directory, "B", ["U1", "U3"])
    resolver = RecordingResolver(directory)
    feed = RoomMembershipFeed(directory, "U1", resolver=resolver)

    feed.start()
    await feed.settled()

    assert resolver.calls == [["U1", "U2", "U3"]]
    assert [room.id for room in feed.rooms] == ["A", "B"]
    assert feed.view.names == {"U1": "Una", "U2": "Dos", "U3": "Tres"}
    assert feed.state is FeedState.SUBSCRIBED
    feed.stop()


@pytest.mark.asyncio
async def test_participant_names_exclude_viewer(memory_directory, add_user) -> None:
    await add_user(memory_directory, "U1", "Una")
    await add_user(memory_directory, "U2", "Dos")
    await _add_room(memory_directory, "A", ["U2", "U1"])
    feed = RoomMembershipFeed(memory_directory, "U1")

    feed.start()
    await feed.settled()

    room = feed.rooms[0]
    assert feed.view.participant_names(room, "U1") == ["Dos"]
    assert feed.view.participant_names(room, "U2") == ["Una"]
    feed.stop()


@pytest.mark.asyncio
async def test_new_room_is_pushed(memory_directory) -> None:
    feed = RoomMembershipFeed(memory_directory, "U1")
    views = []
    feed.listen(views.append)
    feed.start()
    await feed.settled()

    await _add_room(memory_directory, "A", ["U1", "U2"])
    await _add_room(memory_directory, "elsewhere", ["U2", "U3"])
    await feed.settled()

    assert [len(view.rooms) for view in views] == [0, 1]
    assert [room.id for room in feed.rooms] == ["A"]
    feed.stop()


@pytest.mark.asyncio
async def test_sql_rename_is_picked_up_by_polling(sql_directory) -> None:
    await _add_room(sql_directory, "A", ["U1", "U2"], name="Old")
    feed = RoomMembershipFeed(sql_directory, "U1", poll_interval=0.01)
    feed.start()
    await feed.settled()

    await sql_directory.update_document(CHATROOMS, "A", {"name": "New"}, actor="U1")
    for _ in range(100):
        await asyncio.sleep(0.01)
        if feed.rooms and feed.rooms[0].name == "New":
            break

    assert feed.rooms[0].name == "New"
    feed.stop()


@pytest.mark.asyncio
async def test_stop_during_name_resolution_publishes_nothing(memory_directory) -> None:
    await _add_room(memory_directory, "A", ["U1", "U2"])
    resolver = BlockingResolver(memory_directory)
    feed = RoomMembershipFeed(memory_directory, "U1", resolver=resolver)

    feed.start()
    await resolver.started.wait()
    feed.stop()
    resolver.release.set()
    await asyncio.sleep(0)

    assert feed.view is None
    assert feed.state is FeedState.IDLE


@pytest.mark.asyncio
async def test_stop_is_idempotent(memory_directory) -> None:
    feed = RoomMembershipFeed(memory_directory, "U1")
    feed.start()
    await feed.settled()

    feed.stop()
    feed.stop()

    assert feed.state is FeedState.IDLE
    assert memory_directory._subscriptions == []


@pytest.mark.asyncio
async def test_switch_user_follows_new_user(memory_directory) -> None:
    await _add_room(memory_directory, "A", ["U1", "U2"])
    await _add_room(memory_directory, "B", ["U3", "U2"])
    feed = RoomMembershipFeed(memory_directory, "U1")
    feed.start()
    await feed.settled()

    feed.switch_user("U3")
    await feed.settled()
    assert [room.id for room in feed.rooms] == ["B"]
    assert len(memory_directory._subscriptions) == 1

    feed.switch_user(None)
    assert memory_directory._subscriptions == []
    assert feed.state is FeedState.IDLE


@pytest.mark.asyncio
async def test_subscription_error_sets_error_state() -> None:
    directory = BrokenDirectory()
    feed = RoomMembershipFeed(directory, "U1")

    feed.start()
    await feed.settled()

    assert feed.state is FeedState.ERROR
    assert isinstance(feed.last_error, ConnectionError)
    assert feed.rooms == []
    feed.stop()
