"""Password hashing and signed session tokens."""
from __future__ import annotations

import logging

import itsdangerous
from passlib.context import CryptContext

from .config import settings

logger = logging.getLogger(__name__)

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

_TOKEN_SALT = "vibe-session"


def hash_password(password: str) -> str:
    """Hash a plain-text password."""

    return _pwd_context.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    """Verify that ``password`` matches ``hashed_password``."""

    try:
        return _pwd_context.verify(password, hashed_password)
    except ValueError:
        logger.warning("Stored password hash could not be parsed")
        return False


def _serializer(secret: str | None = None) -> itsdangerous.URLSafeTimedSerializer:
    return itsdangerous.URLSafeTimedSerializer(secret or settings.SESSION_SECRET, salt=_TOKEN_SALT)


def issue_session_token(user_id: str, *, secret: str | None = None) -> str:
    """Return a signed, timestamped token carrying ``user_id``."""

    return _serializer(secret).dumps({"uid": user_id})


def read_session_token(
    token: str, *, max_age: int | None = None, secret: str | None = None
) -> str | None:
    """Return the user id stored in ``token`` or ``None`` when invalid or expired."""

    try:
        payload = _serializer(secret).loads(
            token, max_age=settings.SESSION_MAX_AGE if max_age is None else max_age
        )
    except itsdangerous.SignatureExpired:
        logger.info("Session token expired")
        return None
    except itsdangerous.BadSignature:
        logger.warning("Rejected session token with a bad signature")
        return None
    user_id = payload.get("uid") if isinstance(payload, dict) else None
    return str(user_id) if user_id else None
