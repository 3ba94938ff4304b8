"""Seed the development database with two users and a shared room."""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from vibe.app.core.db import create_tables
from vibe.app.directory import CHATROOMS, SERVER_TIMESTAMP, USERS, Query, SqlDirectory, SqlIdentityProvider
from vibe.app.directory.identity import AuthError

DEV_PASSWORD = "devpass"


async def _get_or_create_user(directory: SqlDirectory, identity: SqlIdentityProvider, email: str, display_name: str) -> str:
    try:
        session = await identity.sign_up(email, DEV_PASSWORD)
    except AuthError as exc:
        if exc.code != "email-already-in-use":
            raise
        session = await identity.sign_in(email, DEV_PASSWORD)
    if await directory.get_document(USERS, session.user_id) is None:
        await directory.create_document(
            USERS,
            {
                "email": email,
                "displayName": display_name,
                "bio": "",
                "avatarUrl": None,
                "contentFilter": "off",
                "createdAt": SERVER_TIMESTAMP,
                "lastActive": SERVER_TIMESTAMP,
            },
            actor=None,
            document_id=session.user_id,
        )
    return session.user_id


async def _get_or_create_room(directory: SqlDirectory, name: str, creator: str, other: str) -> str:
    query = Query(CHATROOMS).where("participants", "array_contains", creator)
    for room in await directory.list_documents(query):
        if room.get("name") == name:
            return room["id"]
    room = await directory.create_document(
        CHATROOMS,
        {"name": name, "participants": [creator, other], "createdBy": creator, "createdAt": SERVER_TIMESTAMP},
        actor=None,
    )
    return room["id"]


async def _seed() -> None:
    create_tables()
    directory = SqlDirectory()
    identity = SqlIdentityProvider()
    alice = await _get_or_create_user(directory, identity, "alice@example.com", "Alice")
    bob = await _get_or_create_user(directory, identity, "bob@example.com", "Bob")
    room_id = await _get_or_create_room(directory, "General", alice, bob)

    print("Seeded development data:")
    print(f"  Alice ID: {alice}")
    print(f"  Bob ID: {bob}")
    print(f"  Room ID: {room_id}")
    print(f"  Password for both: {DEV_PASSWORD}")


def main() -> None:
    """Entry point for seeding data."""

    asyncio.run(_seed())


if __name__ == "__main__":
    main()
