from __future__ import annotations

import pytest

from vibe.app.directory import CHATROOMS, InvalidDocument, PermissionDenied, Query, messages_path
from vibe.app.services import ProfileService, RoomService


@pytest.mark.asyncio
async def test_create_room_includes_creator(directory) -> None:
    rooms = RoomService(directory)

    room = await rooms.create_room("u1", "  Friends ", ["u2", "u2", "u3"])

    assert room.name == "Friends"
    assert room.participants == ["u1", "u2", "u3"]
    assert room.created_by == "u1"
    assert room.created_at is not None


@pytest.mark.asyncio
@pytest.mark.parametrize(("name", "participants"), [("", ["u2"]), ("Solo", []), ("Solo", ["u1"])])
async def test_create_room_validation(memory_directory, name, participants) -> None:
    with pytest.raises(InvalidDocument):
        await RoomService(memory_directory).create_room("u1", name, participants)


@pytest.mark.asyncio
async def test_membership_changes(directory) -> None:
    rooms = RoomService(directory)
    room = await rooms.create_room("u1", "Friends", ["u2"])

    room = await rooms.add_participant("u2", room.id, "u3")
    assert room.participants == ["u1", "u2", "u3"]

    room = await rooms.remove_participant("u1", room.id, "u2")
    assert room.participants == ["u1", "u3"]

    room = await rooms.rename_room("u3", room.id, "Besties")
    assert room.name == "Besties"

    with pytest.raises(InvalidDocument):
        await rooms.remove_participant("u3", room.id, "u1")
    with pytest.raises(PermissionDenied):
        await rooms.rename_room("u2", room.id, "Hijacked")


@pytest.mark.asyncio
async def test_update_room_keeps_creator(memory_directory) -> None:
    rooms = RoomService(memory_directory)
    room = await rooms.create_room("u1", "Friends", ["u2"])

    room = await rooms.update_room("u2", room.id, "Friends", ["u2", "u4"])

    assert room.participants == ["u1", "u2", "u4"]


@pytest.mark.asyncio
async def test_delete_room_drops_messages(directory) -> None:
    rooms = RoomService(directory)
    room = await rooms.create_room("u1", "Friends", ["u2"])
    await directory.create_document(
        messages_path(room.id), {"senderId": "u2", "gifUrl": "https://x/g.gif"}, actor="u2"
    )

    with pytest.raises(PermissionDenied):
        await rooms.delete_room("outsider", room.id)
    await rooms.delete_room("u2", room.id)

    assert await directory.get_document(CHATROOMS, room.id) is None
    assert await directory.list_documents(Query(messages_path(room.id))) == []


@pytest.mark.asyncio
async def test_room_rules_are_enforced_by_directory(memory_directory) -> None:
    with pytest.raises(PermissionDenied):
        await memory_directory.create_document(
            CHATROOMS, {"name": "Fake", "participants": ["u2", "u3"], "createdBy": "u2"}, actor="u1"
        )
    with pytest.raises(InvalidDocument):
        await memory_directory.create_document(
            CHATROOMS, {"name": "Orphan", "participants": ["u2"], "createdBy": "u1"}, actor=None
        )


@pytest.mark.asyncio
async def test_profiles_owner_only_edits(directory, add_user) -> None:
    await add_user(directory, "u1", "Alice")
    await add_user(directory, "u2", "Bob")
    profiles = ProfileService(directory)

    updated = await profiles.update_profile("u1", "u1", display_name=" Ally ", bio="gifs only")

    assert updated.display_name == "Ally"
    assert updated.bio == "gifs only"
    with pytest.raises(PermissionDenied):
        await profiles.update_profile("u2", "u1", bio="hacked")
    with pytest.raises(PermissionDenied):
        await directory.update_document("users", "u1", {"bio": "hacked"}, actor="u2")


@pytest.mark.asyncio
async def test_content_filter_defaults_to_off(directory, add_user) -> None:
    await add_user(directory, "u1", "Alice")
    profiles = ProfileService(directory)

    assert await profiles.content_filter(None) == "off"
    assert await profiles.content_filter("missing") == "off"
    assert await profiles.set_content_filter("u1", "medium") == "medium"
    assert await profiles.content_filter("u1") == "medium"
    with pytest.raises(ValueError):
        await profiles.set_content_filter("u1", "extreme")


@pytest.mark.asyncio
async def test_search_users_by_prefix(directory, add_user) -> None:
    await add_user(directory, "u1", "Alice")
    await add_user(directory, "u2", "Alina")
    await add_user(directory, "u3", "Bob")
    await add_user(directory, "u4", "Al_x")

    found = await ProfileService(directory).search_users("Ali", exclude="u1")
    underscore = await ProfileService(directory).search_users("Al_")

    assert [profile.id for profile in found] == ["u2"]
    assert [profile.id for profile in underscore] == ["u4"]
