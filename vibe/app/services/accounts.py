"""Sign-in, sign-up and session lifecycle on top of the identity provider."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Union

from ..core.config import settings
from ..directory.base import SERVER_TIMESTAMP, USERS, Directory
from ..directory.identity import AuthError, AuthSession, IdentityProvider
from ..directory.records import ContentFilter

logger = logging.getLogger(__name__)

SessionCallback = Callable[[Optional[AuthSession]], Union[None, Awaitable[None]]]


class AccountService:
    def __init__(self, identity: IdentityProvider, directory: Directory) -> None:
        self._identity = identity
        self._directory = directory

    async def sign_up(self, email: str, password: str) -> AuthSession:
        """Register credentials and create the matching directory profile."""

        session = await self._identity.sign_up(email, password)
        await self._directory.create_document(
            USERS,
            {
                "email": session.email,
                "displayName": "",
                "bio": "",
                "avatarUrl": None,
                "contentFilter": ContentFilter.OFF.value,
                "createdAt": SERVER_TIMESTAMP,
                "lastActive": SERVER_TIMESTAMP,
            },
            actor=session.user_id,
            document_id=session.user_id,
        )
        logger.info("Account created and profile added for %s", session.user_id)
        return session

    async def sign_in(self, email: str, password: str) -> AuthSession:
        session = await self._identity.sign_in(email, password)
        await self._touch(session.user_id)
        return session

    async def sign_in_or_sign_up(self, email: str, password: str) -> AuthSession:
        """Sign in, creating the account first when none exists for ``email``."""

        try:
            return await self.sign_in(email, password)
        except AuthError as exc:
            if exc.code != "user-not-found":
                raise
        logger.info("No account for login attempt, signing up instead")
        return await self.sign_up(email, password)

    async def sign_out(self, session: AuthSession) -> None:
        await self._touch(session.user_id)
        await self._identity.sign_out(session)

    async def current_user_id(self, session: Optional[AuthSession]) -> Optional[str]:
        if session is None:
            return None
        return await self._identity.verify(session.token)

    async def watch_session(
        self,
        session: AuthSession,
        on_change: SessionCallback,
        *,
        interval: Optional[float] = None,
    ) -> None:
        """Re-check ``session`` periodically and report once when it lapses.

        Runs until the session is no longer valid or the task is cancelled.
        """

        period = settings.SESSION_CHECK_INTERVAL if interval is None else interval
        while True:
            await asyncio.sleep(period)
            user_id = await self.current_user_id(session)
            if user_id == session.user_id:
                continue
            logger.info("Session for %s is no longer active", session.user_id)
            result = on_change(None)
            if asyncio.iscoroutine(result):
                await result
            return

    async def _touch(self, user_id: str) -> None:
        try:
            await self._directory.update_document(
                USERS, user_id, {"lastActive": SERVER_TIMESTAMP}, actor=user_id
            )
        except Exception as exc:
            logger.warning("Could not update lastActive for %s: %s", user_id, exc)
