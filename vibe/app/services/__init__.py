"""Account, profile, room and avatar operations used by the client screens."""
from .accounts import AccountService
from .avatars import AvatarService, AvatarUploadError
from .profiles import ProfileService
from .rooms import RoomService

__all__ = [
    "AccountService",
    "AvatarService",
    "AvatarUploadError",
    "ProfileService",
    "RoomService",
]
