"""Remote directory capability interface and its backends."""
from .base import (
    CHATROOMS,
    MESSAGES,
    SERVER_TIMESTAMP,
    USERS,
    Directory,
    DirectoryError,
    DocumentExists,
    DocumentNotFound,
    Filter,
    InvalidDocument,
    PermissionDenied,
    Query,
    Subscription,
    messages_path,
)
from .identity import AuthError, AuthSession, IdentityProvider, MemoryIdentityProvider, SqlIdentityProvider
from .memory import MemoryDirectory
from .records import ChatRoom, ContentFilter, Message, UserProfile
from .sql import SqlDirectory

__all__ = [
    "AuthError",
    "AuthSession",
    "CHATROOMS",
    "ChatRoom",
    "ContentFilter",
    "Directory",
    "DirectoryError",
    "DocumentExists",
    "DocumentNotFound",
    "Filter",
    "IdentityProvider",
    "InvalidDocument",
    "MESSAGES",
    "MemoryDirectory",
    "MemoryIdentityProvider",
    "Message",
    "PermissionDenied",
    "Query",
    "SERVER_TIMESTAMP",
    "SqlDirectory",
    "SqlIdentityProvider",
    "Subscription",
    "USERS",
    "UserProfile",
    "messages_path",
]
