"""Email/password identity with signed session tokens."""
from __future__ import annotations

import abc
import logging
import re
import uuid
from dataclasses import dataclass
from typing import Dict, Optional, Set

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from .. import models
from ..core.config import settings
from ..core.db import SessionLocal
from ..core.security import hash_password, issue_session_token, read_session_token, verify_password

logger = logging.getLogger(__name__)

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AuthError(Exception):
    """Authentication failure shown to the user as inline text."""

    MESSAGES = {
        "invalid-email": "The email address is badly formatted.",
        "weak-password": "Password should be at least {min_length} characters.",
        "email-already-in-use": "The email address is already in use by another account.",
        "user-not-found": "There is no account for this email address.",
        "wrong-password": "The password is invalid.",
        "invalid-session": "Your session has expired. Please sign in again.",
    }

    def __init__(self, code: str) -> None:
        message = self.MESSAGES.get(code, code).format(min_length=settings.PASSWORD_MIN_LENGTH)
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class AuthSession:
    user_id: str
    email: str
    token: str


@dataclass(frozen=True)
class _StoredCredential:
    user_id: str
    email: str
    password_hash: str


def _normalize_email(email: str) -> str:
    normalized = (email or "").strip().lower()
    if not _EMAIL_PATTERN.match(normalized):
        raise AuthError("invalid-email")
    return normalized


class IdentityProvider(abc.ABC):
    """Sign-up, sign-in and session lifecycle over a credential store."""

    def __init__(self, *, secret: Optional[str] = None, max_age: Optional[int] = None) -> None:
        self._secret = secret
        self._max_age = max_age
        self._revoked: Set[str] = set()

    async def sign_up(self, email: str, password: str) -> AuthSession:
        normalized = _normalize_email(email)
        if len(password or "") < settings.PASSWORD_MIN_LENGTH:
            raise AuthError("weak-password")
        if self._find(normalized) is not None:
            raise AuthError("email-already-in-use")
        credential = _StoredCredential(uuid.uuid4().hex, normalized, hash_password(password))
        self._store(credential)
        logger.info("Registered account %s", credential.user_id)
        return self._issue(credential.user_id, normalized)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        normalized = _normalize_email(email)
        credential = self._find(normalized)
        if credential is None:
            raise AuthError("user-not-found")
        if not verify_password(password or "", credential.password_hash):
            raise AuthError("wrong-password")
        logger.info("Signed in %s", credential.user_id)
        return self._issue(credential.user_id, normalized)

    async def sign_out(self, session: AuthSession) -> None:
        self._revoked.add(session.token)
        logger.info("Signed out %s", session.user_id)

    async def verify(self, token: str) -> Optional[str]:
        """Return the user id behind ``token`` when it is valid and not revoked."""

        if not token or token in self._revoked:
            return None
        return read_session_token(token, max_age=self._max_age, secret=self._secret)

    async def refresh(self, session: AuthSession) -> AuthSession:
        """Exchange a still-valid session for a freshly dated token."""

        user_id = await self.verify(session.token)
        if user_id is None or user_id != session.user_id:
            raise AuthError("invalid-session")
        self._revoked.add(session.token)
        return self._issue(session.user_id, session.email)

    def _issue(self, user_id: str, email: str) -> AuthSession:
        return AuthSession(user_id, email, issue_session_token(user_id, secret=self._secret))

    @abc.abstractmethod
    def _find(self, email: str) -> Optional[_StoredCredential]:
        ...

    @abc.abstractmethod
    def _store(self, credential: _StoredCredential) -> None:
        ...


class MemoryIdentityProvider(IdentityProvider):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._credentials: Dict[str, _StoredCredential] = {}

    def _find(self, email: str) -> Optional[_StoredCredential]:
        return self._credentials.get(email)

    def _store(self, credential: _StoredCredential) -> None:
        self._credentials[credential.email] = credential


class SqlIdentityProvider(IdentityProvider):
    def __init__(self, session_factory: Optional[sessionmaker[Session]] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self._session_factory = session_factory or SessionLocal

    def _find(self, email: str) -> Optional[_StoredCredential]:
        with self._session_factory() as session:
            row = session.execute(
                select(models.Credential).where(models.Credential.email == email)
            ).scalar_one_or_none()
            if row is None:
                return None
            return _StoredCredential(row.user_id, row.email, row.password_hash)

    def _store(self, credential: _StoredCredential) -> None:
        with self._session_factory() as session:
            session.add(
                models.Credential(
                    user_id=credential.user_id,
                    email=credential.email,
                    password_hash=credential.password_hash,
                )
            )
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise AuthError("email-already-in-use") from exc
