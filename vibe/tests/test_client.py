from __future__ import annotations

import httpx
import pytest

from vibe.app.client import VibeClient, build_client
from vibe.app.core.config import Settings
from vibe.app.core.theme import ThemePreference, ThemeStore
from vibe.app.directory import MemoryDirectory, MemoryIdentityProvider, SqlDirectory
from vibe.app.gifs import KlipyClient, RelayGifProvider
from vibe.app.sync import NoRoomSelected


def test_build_client_from_settings(tmp_path) -> None:
    config = Settings(
        DIRECTORY_BACKEND="memory",
        GIF_TRANSPORT="direct",
        KLIPY_API_KEY="KEY",
        THEME_STORE_PATH=str(tmp_path / "prefs.json"),
        DEFAULT_THEME="light",
    )

    client = build_client(config)

    assert isinstance(client.directory, MemoryDirectory)
    assert isinstance(client.gif_provider, KlipyClient)
    assert client.gif_provider.api_key == "KEY"
    assert client.theme.theme == "light"


@pytest.mark.asyncio
async def test_direct_gif_searches_carry_signed_in_user(tmp_path) -> None:
    config = Settings(
        DIRECTORY_BACKEND="memory",
        GIF_TRANSPORT="direct",
        KLIPY_API_KEY="KEY",
        THEME_STORE_PATH=str(tmp_path / "prefs.json"),
    )
    client = build_client(config)

    _, anonymous = client.gif_provider.request_for("cats", "off", 1)
    session = await client.sign_in("a@b.com", "secret123")
    _, signed_in = client.gif_provider.request_for("cats", "off", 1)

    assert "customer_id" not in anonymous
    assert signed_in["customer_id"] == session.user_id
    client.close()


def test_build_client_rejects_unknown_backend(tmp_path) -> None:
    with pytest.raises(ValueError):
        build_client(Settings(DIRECTORY_BACKEND="cloud", THEME_STORE_PATH=str(tmp_path / "prefs.json")))


@pytest.mark.asyncio
async def test_signed_in_client_wires_feeds_and_relay_token(tmp_path) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"result": True, "data": {"data": []}})

    directory = MemoryDirectory()
    client = VibeClient(directory, MemoryIdentityProvider(), theme=ThemePreference(ThemeStore(tmp_path / "p.json")))
    client.gif_provider = RelayGifProvider(
        "https://relay.test/functions/klipy", token=client._session_token, transport=httpx.MockTransport(handler)
    )

    session = await client.sign_in("a@b.com", "secret123")
    await client.profiles.set_content_filter(session.user_id, "high")
    other = await client.accounts.sign_up("c@d.com", "secret123")
    room = await client.rooms.create_room(session.user_id, "Pair", [other.user_id])

    rooms = client.room_feed()
    rooms.start()
    await rooms.settled()
    messages = client.message_feed()
    assert isinstance(messages.view, NoRoomSelected)
    messages.select_room(room.id)
    await messages.send_gif(session.user_id, "https://x/g.gif")
    await messages.settled()
    await client.gif_search().search("cats")

    assert [item.id for item in rooms.rooms] == [room.id]
    assert len(messages.messages) == 1
    assert seen[0].headers["Authorization"] == f"Bearer {session.token}"
    assert b'"contentFilter":"high"' in seen[0].content.replace(b" ", b"")

    await client.sign_out()
    assert client.user_id is None
    rooms.stop()
    messages.close()
    client.close()


def test_room_feed_polls_only_on_partial_push_backends(session_factory, tmp_path) -> None:
    theme = ThemePreference(ThemeStore(tmp_path / "p.json"))
    memory_client = VibeClient(MemoryDirectory(), MemoryIdentityProvider(), theme=theme, poll_interval=2.0)
    sql_client = VibeClient(SqlDirectory(session_factory), MemoryIdentityProvider(), theme=theme, poll_interval=2.0)

    assert memory_client.room_feed("u1")._poll_interval is None
    assert sql_client.room_feed("u1")._poll_interval == 2.0
    with pytest.raises(RuntimeError):
        memory_client.room_feed()
