"""Client-side composition: one directory, its identity provider and the GIF gateway."""
from __future__ import annotations

import logging
from typing import Optional

from .core.config import Settings, settings as default_settings
from .core.theme import ThemePreference, ThemeStore
from .directory.base import Directory
from .directory.identity import AuthSession, IdentityProvider, MemoryIdentityProvider, SqlIdentityProvider
from .directory.memory import MemoryDirectory
from .directory.sql import SqlDirectory
from .gifs.klipy import GifProvider, KlipyClient
from .gifs.relay import RelayGifProvider
from .gifs.search import GifSearch
from .services import AccountService, AvatarService, ProfileService, RoomService
from .sync import DisplayNameResolver, MessageFeed, RoomMembershipFeed

logger = logging.getLogger(__name__)


class VibeClient:
    """Everything a signed-in screen needs, wired against a single directory."""

    def __init__(
        self,
        directory: Directory,
        identity: IdentityProvider,
        *,
        gif_provider: Optional[GifProvider] = None,
        theme: Optional[ThemePreference] = None,
        poll_interval: Optional[float] = None,
        avatars: Optional[AvatarService] = None,
    ) -> None:
        self.directory = directory
        self.identity = identity
        self.session: Optional[AuthSession] = None
        self.theme = theme or ThemePreference(ThemeStore())
        self.accounts = AccountService(identity, directory)
        self.profiles = ProfileService(directory)
        self.rooms = RoomService(directory)
        self.avatars = avatars or AvatarService(directory)
        self.gif_provider = gif_provider or RelayGifProvider(token=self._session_token)
        self._poll_interval = poll_interval

    async def sign_in(self, email: str, password: str) -> AuthSession:
        self.session = await self.accounts.sign_in_or_sign_up(email, password)
        return self.session

    async def sign_out(self) -> None:
        if self.session is None:
            return
        session, self.session = self.session, None
        await self.accounts.sign_out(session)

    @property
    def user_id(self) -> Optional[str]:
        return self.session.user_id if self.session is not None else None

    def room_feed(self, user_id: Optional[str] = None) -> RoomMembershipFeed:
        """Room list for ``user_id`` (default: the signed-in user), not yet started."""

        target = user_id or self.user_id
        if target is None:
            raise RuntimeError("Not signed in")
        interval = None if self.directory.pushes_every_change else self._poll_interval
        return RoomMembershipFeed(
            self.directory,
            target,
            resolver=DisplayNameResolver(self.directory),
            poll_interval=interval,
        )

    def message_feed(self) -> MessageFeed:
        return MessageFeed(self.directory, resolver=DisplayNameResolver(self.directory))

    def gif_search(self) -> GifSearch:
        async def _content_filter() -> str:
            return await self.profiles.content_filter(self.user_id)

        return GifSearch(self.gif_provider, _content_filter)

    def close(self) -> None:
        self.directory.close()

    def _session_token(self) -> Optional[str]:
        return self.session.token if self.session is not None else None


def build_client(config: Optional[Settings] = None) -> VibeClient:
    """Create a client from settings: memory or SQL directory, relay or direct GIFs."""

    config = config or default_settings
    backend = config.DIRECTORY_BACKEND.lower()
    if backend == "sql":
        from .core.db import create_tables

        create_tables()
        directory: Directory = SqlDirectory()
        identity: IdentityProvider = SqlIdentityProvider(
            secret=config.SESSION_SECRET, max_age=config.SESSION_MAX_AGE
        )
    elif backend == "memory":
        directory = MemoryDirectory()
        identity = MemoryIdentityProvider(secret=config.SESSION_SECRET, max_age=config.SESSION_MAX_AGE)
    else:
        raise ValueError(f"Unknown directory backend {config.DIRECTORY_BACKEND!r}")

    client = VibeClient(
        directory,
        identity,
        theme=ThemePreference(ThemeStore(config.THEME_STORE_PATH, default=config.DEFAULT_THEME)),
        poll_interval=config.ROOM_POLL_INTERVAL,
    )
    transport = config.GIF_TRANSPORT.lower()
    if transport == "direct":
        client.gif_provider = KlipyClient(
            config.KLIPY_API_KEY,
            base_url=config.KLIPY_BASE_URL,
            per_page=config.KLIPY_PER_PAGE,
            customer_id=lambda: client.user_id,
        )
    elif transport == "relay":
        client.gif_provider = RelayGifProvider(config.GIF_RELAY_URL, token=client._session_token)
    else:
        raise ValueError(f"Unknown GIF transport {config.GIF_TRANSPORT!r}")
    client.theme.load()
    logger.info("Client ready: directory=%s gifs=%s", backend, transport)
    return client
